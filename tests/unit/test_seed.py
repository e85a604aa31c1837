from datetime import datetime, timezone

from flowsim.persistence import seed_default

NOW = datetime(2026, 5, 1, 9, 30, tzinfo=timezone.utc)


def _definitions(state, workspace_id):
    ws = state.workspaces[workspace_id]
    return {
        slug: [step.model_dump() for step in flow.steps] for slug, flow in ws.flows.items()
    }


def test_seed_default_basics():
    state = seed_default("ws-acme")

    assert state.version == 1
    assert state.tick == 0
    assert list(state.workspaces) == ["ws-acme"]
    ws = state.workspaces["ws-acme"]
    assert ws.id == "ws-acme"
    assert set(ws.flows) == {"subscription-renewal", "daily-sales-report", "order-processor"}
    assert ws.registry and ws.connections and ws.triggers
    assert ws.purchases and ws.entitlements and ws.payouts
    assert ws.revenue_events and ws.demand_top
    assert ws.waits == {} and ws.instances == {}


def test_subscription_renewal_has_five_ordered_steps():
    flow = seed_default("ws-acme").workspaces["ws-acme"].flows["subscription-renewal"]

    assert [s.id for s in flow.steps] == [
        "fetch-customer",
        "fetch-payment-method",
        "process-card",
        "wait-payment-status",
        "send-receipt",
    ]
    assert [s.type for s in flow.steps] == ["http", "http", "http", "wait", "notify"]


def test_seed_is_deterministic():
    assert seed_default("ws-acme", now=NOW) == seed_default("ws-acme", now=NOW)
    assert _definitions(seed_default("ws-acme"), "ws-acme") == _definitions(
        seed_default("ws-acme", now=NOW), "ws-acme"
    )


def test_seed_timestamps_are_relative_to_now():
    ws = seed_default("ws-acme", now=NOW).workspaces["ws-acme"]

    assert ws.updated_at == NOW
    assert all(run.started_at < NOW for run in ws.runs.values())


def test_seed_runs_follow_state_machine_rules():
    ws = seed_default("ws-acme", now=NOW).workspaces["ws-acme"]
    assert set(ws.runs) == {"4821", "4799"}

    completed = ws.runs["4821"]
    assert completed.status == "completed"
    assert completed.completed_at is not None
    assert all(s.status == "completed" for s in completed.steps)
    assert completed.steps[1].attempt == 2
    assert completed.steps[0].input_preview == completed.input_preview
    for previous, following in zip(completed.steps, completed.steps[1:]):
        assert following.input_preview == previous.result_preview
        assert following.started_at >= previous.completed_at
    for step in completed.steps:
        elapsed = step.completed_at - step.started_at
        assert int(elapsed.total_seconds() * 1000) == step.duration_ms

    failed = ws.runs["4799"]
    assert failed.status == "failed"
    assert failed.error == "card_declined"
    assert [s.status for s in failed.steps] == [
        "completed",
        "completed",
        "failed",
        "cancelled",
        "cancelled",
    ]
    assert failed.steps[2].input_preview == failed.steps[1].result_preview


def test_seed_uses_workspace_id():
    state = seed_default("ws-other")
    assert list(state.workspaces) == ["ws-other"]
    assert state.workspaces["ws-other"].id == "ws-other"
