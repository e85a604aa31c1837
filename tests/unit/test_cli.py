import json

import pytest
from typer.testing import CliRunner

from flowsim.cli import app
from flowsim.persistence import load_state


@pytest.fixture
def state_path(tmp_path, monkeypatch):
    monkeypatch.setenv("FLOWSIM_CONFIG", str(tmp_path / "missing.yaml"))
    monkeypatch.delenv("FLOWSIM_STATE", raising=False)
    monkeypatch.delenv("FLOWSIM_WORKSPACE", raising=False)
    return tmp_path / "state" / "state.json"


def _invoke(state_path, *args):
    runner = CliRunner()
    return runner.invoke(app, ["--state", str(state_path), *args])


def test_flows_list_seeds_state_on_first_use(state_path):
    result = _invoke(state_path, "flows", "list")

    assert (
        result.exit_code == 0
    ), f"Command failed with exit code {result.exit_code}. Output: {result.output}"
    lines = result.output.strip().splitlines()
    assert [line.split("\t")[0] for line in lines] == [
        "daily-sales-report",
        "order-processor",
        "subscription-renewal",
    ]
    assert "v4\t5 steps" in lines[2]
    assert state_path.exists()


def test_flows_show_and_missing(state_path):
    result = _invoke(state_path, "flows", "show", "order-processor")
    assert result.exit_code == 0, result.output
    assert "Flow order-processor" in result.output
    assert "3. approval [wait]" in result.output

    missing = _invoke(state_path, "flows", "show", "nope")
    assert missing.exit_code == 1
    assert "flow not found: nope" in missing.output


def test_runs_list_and_show_seeded_history(state_path):
    result = _invoke(state_path, "runs", "list")
    assert result.exit_code == 0, result.output
    lines = result.output.strip().splitlines()
    assert lines[0].startswith("4821\tsubscription-renewal\tcompleted")
    assert lines[1].startswith("4799\tsubscription-renewal\tfailed")

    shown = _invoke(state_path, "runs", "show", "4799")
    assert shown.exit_code == 0, shown.output
    assert "Run 4799 (subscription-renewal v4): failed" in shown.output
    assert "Error: card_declined" in shown.output
    assert "- wait-payment-status [wait]: cancelled" in shown.output

    as_json = _invoke(state_path, "runs", "show", "4821", "--json")
    assert as_json.exit_code == 0, as_json.output
    assert json.loads(as_json.output)["workflowId"] == "4821"


def test_runs_show_missing_run(state_path):
    result = _invoke(state_path, "runs", "show", "missing-id")

    assert result.exit_code == 1
    assert "run not found: missing-id" in result.output


def test_start_and_advance_run_to_completion(state_path):
    started = _invoke(
        state_path, "runs", "start", "--flow", "daily-sales-report", "--input", '{"day": "mon"}'
    )
    assert started.exit_code == 0, started.output
    first_line, current = started.output.strip().splitlines()
    assert first_line.endswith("(daily-sales-report v3)")
    assert current == "Current step: fetch-sales"
    run_id = first_line.split()[2]
    assert run_id.startswith("wf-")

    advanced = _invoke(state_path, "dev", "advance", "--ticks", "4")
    assert advanced.exit_code == 0, advanced.output
    assert advanced.output.strip() == "Advanced to tick 4"

    run = load_state(state_path).workspaces["ws-acme"].runs[run_id]
    assert run.status == "completed"
    assert run.steps[0].input_preview == {"day": "mon"}
    assert run.result_preview == {"status": "completed"}

    step = _invoke(state_path, "runs", "step", run_id, "calculate-metrics")
    assert step.exit_code == 0, step.output
    payload = json.loads(step.output)
    assert payload["runId"] == run_id
    assert payload["step"]["status"] == "completed"
    assert payload["definition"]["type"] == "code"


def test_runs_start_rejects_bad_input(state_path):
    result = _invoke(state_path, "runs", "start", "--flow", "order-processor", "--input", "{")
    assert result.exit_code == 1
    assert "Invalid --input JSON" in result.output

    unknown = _invoke(state_path, "runs", "start", "--flow", "nope")
    assert unknown.exit_code == 1
    assert "flow not found: nope" in unknown.output


def test_runs_step_missing_step(state_path):
    result = _invoke(state_path, "runs", "step", "4821", "no-such-step")
    assert result.exit_code == 1
    assert "step not found" in result.output


def test_replay_creates_new_run(state_path):
    result = _invoke(state_path, "runs", "replay", "4799")
    assert result.exit_code == 0, result.output
    new_id = result.output.strip().split()[-1]

    ws = load_state(state_path).workspaces["ws-acme"]
    replayed = ws.runs[new_id]
    assert replayed.triggered_by == "replay"
    assert replayed.status == "running"
    assert replayed.input_preview == {"subscriptionId": "sub_119"}


def test_dev_seed_resets_state(state_path):
    assert _invoke(state_path, "dev", "advance", "--ticks", "2").exit_code == 0
    assert load_state(state_path).tick == 2

    result = _invoke(state_path, "dev", "seed")
    assert result.exit_code == 0, result.output
    assert result.output.strip() == "Seeded workspace ws-acme (tick 0)"
    assert load_state(state_path).tick == 0


def test_workspace_option(state_path):
    result = _invoke(state_path, "dev", "seed")
    assert result.exit_code == 0

    other = _invoke(state_path, "--workspace", "ws-other", "flows", "list")
    assert other.exit_code == 1
    assert "workspace not found: ws-other" in other.output


def test_malformed_state_is_reported(state_path):
    state_path.parent.mkdir(parents=True)
    state_path.write_text("{not json")

    result = _invoke(state_path, "runs", "list")
    assert result.exit_code == 1
    assert "malformed state file" in result.output


def test_runs_watch_prints_initial_frame(state_path):
    result = _invoke(state_path, "runs", "watch", "--interval", "0.05", "--lifespan", "0.2")

    assert result.exit_code == 0, result.output
    assert result.output.startswith("-- tick 0\n")
    assert "4821\tsubscription-renewal\tcompleted\t-" in result.output


def _start(state_path, flow="order-processor", *extra):
    result = _invoke(state_path, "runs", "start", "--flow", flow, *extra)
    assert result.exit_code == 0, result.output
    return result.output.splitlines()[0].split()[2]


def test_runs_start_keeps_null_input(state_path):
    run_id = _start(state_path, "order-processor", "--input", "null")

    run = load_state(state_path).workspaces["ws-acme"].runs[run_id]
    assert run.input_preview is None


def test_runs_cancel_stops_run(state_path):
    run_id = _start(state_path)

    result = _invoke(state_path, "runs", "cancel", run_id, "--reason", "wrong input")
    assert result.exit_code == 0, result.output
    assert result.output.strip() == f"Run {run_id} cancelled"

    assert _invoke(state_path, "dev", "advance", "--ticks", "3").exit_code == 0
    run = load_state(state_path).workspaces["ws-acme"].runs[run_id]
    assert run.status == "cancelled"
    assert run.error == "wrong input"
    assert run.current_step == ""
    assert run.steps[0].status == "running"


def test_runs_cancel_force_and_terminal_runs(state_path):
    run_id = _start(state_path)

    forced = _invoke(state_path, "runs", "cancel", run_id, "--force")
    assert forced.exit_code == 0, forced.output
    assert forced.output.strip() == f"Run {run_id} terminated"

    before = state_path.read_text()
    again = _invoke(state_path, "runs", "cancel", "4821")
    assert again.exit_code == 0, again.output
    assert again.output.strip() == "Run 4821 is already terminal (completed)"
    assert state_path.read_text() == before

    missing = _invoke(state_path, "runs", "cancel", "missing-id")
    assert missing.exit_code == 1
    assert "run not found: missing-id" in missing.output


def test_runs_retry_creates_new_run(state_path):
    result = _invoke(state_path, "runs", "retry", "4799")
    assert result.exit_code == 0, result.output
    assert result.output.startswith("Retried 4799 as wf-")
    new_id = result.output.strip().split()[-1]

    retried = load_state(state_path).workspaces["ws-acme"].runs[new_id]
    assert retried.triggered_by == "retry"
    assert retried.version == 4
    assert retried.status == "running"


def test_runs_events_timeline(state_path):
    result = _invoke(state_path, "runs", "events", "4799")
    assert result.exit_code == 0, result.output
    lines = result.output.strip().splitlines()
    assert [line.split("\t")[1] for line in lines] == [
        "run_started",
        "step_started",
        "step_completed",
        "step_started",
        "step_completed",
        "step_started",
        "step_completed",
        "run_completed",
    ]
    assert lines[1].endswith("\tfetch-customer")
    assert lines[-1].endswith("\tfailed")

    as_json = _invoke(state_path, "runs", "events", "4799", "--json")
    assert as_json.exit_code == 0, as_json.output
    events = json.loads(as_json.output)
    assert events[6]["error"] == "card_declined"
    assert events[-1]["result"] == {"status": "failed", "reason": "card_declined"}


def test_invalid_log_level_is_reported(monkeypatch, state_path):
    monkeypatch.setenv("FLOWSIM_LOG_LEVEL", "chatty")

    result = _invoke(state_path, "flows", "list")

    assert result.exit_code == 1
    assert "Error: invalid configuration" in result.output
