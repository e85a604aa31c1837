"""Deterministic demo universe used when no snapshot exists yet."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from ..constants import (
    STATE_SCHEMA_VERSION,
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    STATUS_FAILED,
)
from .models import (
    Connection,
    DemandCluster,
    DemandItem,
    DemandQuery,
    Entitlement,
    Flow,
    FlowStep,
    Payout,
    Pricing,
    Purchase,
    RegistryEntry,
    RegistryStats,
    RegistryVersion,
    RevenueEvent,
    Run,
    State,
    StepExecution,
    Trigger,
    Workspace,
)

DEMO_OWNER = "dev@flowsim.test"


def seed_default(workspace_id: str, now: Optional[datetime] = None) -> State:
    """Build a complete demo ``State`` with a single workspace.

    Flow and step definitions depend only on ``workspace_id``. Timestamps are
    offsets from ``now`` (the wall clock when omitted).
    """
    now = now or datetime.now(timezone.utc)
    flows = _seed_flows(now)
    ws = Workspace(
        id=workspace_id,
        name="Demo Workspace",
        plan="Creator",
        owner=DEMO_OWNER,
        updated_at=now,
        flows={flow.slug: flow for flow in flows},
    )

    for run in _seed_runs(now, ws.flows["subscription-renewal"]):
        ws.runs[run.workflow_id] = run

    ws.connections = {
        "conn-slack-1": Connection(
            id="conn-slack-1",
            name="Slack: #sales",
            type="slack",
            status="ready",
            updated_at=now - timedelta(hours=48),
            config={"workspace": "demo", "channel": "#sales"},
        ),
        "conn-stripe-1": Connection(
            id="conn-stripe-1",
            name="Stripe: production",
            type="stripe",
            status="ready",
            updated_at=now - timedelta(hours=24),
            config={"account": "acct_123"},
        ),
    }
    ws.triggers = {
        "trg-subscription-renewal-nightly": Trigger(
            id="trg-subscription-renewal-nightly",
            flow_slug="subscription-renewal",
            type="schedule",
            name="Nightly renewals",
            enabled=True,
            updated_at=now - timedelta(hours=6),
            config={"cron": "0 2 * * *", "timezone": "UTC"},
        )
    }
    _seed_marketplace(ws, now)
    _seed_demand(ws, now)

    return State(version=STATE_SCHEMA_VERSION, tick=0, workspaces={workspace_id: ws})


# ---------------------------------------------------------------------------
# Flows


def _seed_flows(now: datetime) -> list[Flow]:
    subscription_renewal = Flow(
        slug="subscription-renewal",
        name="Subscription Renewal",
        description=(
            "Renews subscriptions with retries, wait states, and payment "
            "method branching."
        ),
        tags=["billing", "payments", "revenue"],
        active_version=4,
        updated_at=now - timedelta(hours=3),
        spine=[
            "1. Trigger: Billing cycle",
            "2. Fetch customer + payment method",
            "3. Process card",
            "4. Wait: payment_status (24h timeout)",
            "5. Send receipt",
        ],
        steps=[
            FlowStep(
                id="fetch-customer",
                type="http",
                title="Fetch Customer",
                input_schema="{subscriptionId: string}",
                output_schema="{status: number, body: {customerId: string, email: string}}",
                definition=(
                    '(step :http :fetch-customer {:connection :billing-api '
                    ':path (str "/subscriptions/" subscription-id "/customer")})'
                ),
            ),
            FlowStep(
                id="fetch-payment-method",
                type="http",
                title="Fetch Payment Method",
                input_schema="{customerId: string}",
                output_schema='{status: number, body: {type: "card"|"invoice", cardLast4?: string}}',
                definition=(
                    '(step :http :fetch-payment-method {:connection :billing-api '
                    ':path (str "/customers/" customer-id "/payment-method") '
                    ":retry {:max-attempts 3 :initial-interval-ms 1000}})"
                ),
            ),
            FlowStep(
                id="process-card",
                type="http",
                title="Process Card Payment",
                input_schema="{customerId: string, amountCents: number, currency: string}",
                output_schema="{status: number, body: {paymentIntentId: string, status: string}}",
                definition=(
                    "(step :http :process-card {:connection :payments-api :method :post "
                    ':path "/payment_intents" :json {...} '
                    ":retry {:max-attempts 3 :initial-interval-ms 2000}})"
                ),
            ),
            FlowStep(
                id="wait-payment-status",
                type="wait",
                title="Wait for payment_status",
                input_schema="{signalKey: string}",
                output_schema="{status: string, paymentIntentId?: string}",
                definition=(
                    '(step :wait :payment-status {:source :webhook :event-name "payment.status" '
                    ':signal-key (str "sub-" subscription-id) :timeout 86400})'
                ),
            ),
            FlowStep(
                id="send-receipt",
                type="notify",
                title="Send Receipt",
                input_schema="{email: string, receiptUrl: string}",
                output_schema="{success: boolean}",
                definition=(
                    '(step :notify :send-receipt {:channel :email :target email '
                    ':subject "Receipt" :message (str "Download: " receipt-url)})'
                ),
            ),
        ],
    )

    daily_sales_report = Flow(
        slug="daily-sales-report",
        name="Daily Sales Report",
        description="Fetches sales data, calculates metrics, and posts a report.",
        tags=["analytics", "reporting"],
        active_version=3,
        updated_at=now - timedelta(hours=2),
        spine=[
            "1. Trigger: schedule/manual",
            "2. Fetch sales",
            "3. Calculate metrics",
            "4. Send report",
        ],
        steps=[
            FlowStep(
                id="fetch-sales",
                type="http",
                title="Fetch Yesterday's Sales",
                input_schema="{triggeredAt: string}",
                output_schema="{status: number, body: {count: number, items: any[]}}",
                definition='(step :http :fetch-sales {:connection :sales-api :path "/sales?period=yesterday"})',
            ),
            FlowStep(
                id="calculate-metrics",
                type="code",
                title="Calculate Sales Metrics",
                input_schema="{sales: any[]}",
                output_schema="{totalSales: number, transactionCount: number, averageOrder: number}",
                definition="(step :code :calculate-metrics {:input {:sales sales} :code '(fn [input] ...)})",
            ),
            FlowStep(
                id="send-report",
                type="notify",
                title="Send Report",
                input_schema="{message: string}",
                output_schema="{success: boolean}",
                definition='(step :notify :send-report {:channel :slack :target "#sales" :message msg})',
            ),
        ],
    )

    order_processor = Flow(
        slug="order-processor",
        name="Order Processor",
        description=(
            "Processes orders with fraud check and human approval for "
            "high-value transactions."
        ),
        tags=["ops", "approval", "fraud"],
        active_version=7,
        updated_at=now - timedelta(hours=7),
        spine=[
            "1. Trigger: webhook/manual",
            "2. Fetch order",
            "3. Fraud check",
            "4. Wait for approval",
            "5. Fulfill order",
        ],
        steps=[
            FlowStep(
                id="get-order",
                type="http",
                title="Fetch Order Details",
                input_schema="{orderId: string}",
                output_schema="{status: number, body: {orderId: string, total: number}}",
                definition='(step :http :get-order {:connection :shop-api :path (str "/orders/" order-id)})',
            ),
            FlowStep(
                id="fraud-check",
                type="http",
                title="Fraud Check",
                input_schema="{orderId: string, total: number}",
                output_schema="{status: number, body: {riskScore: number}}",
                definition='(step :http :fraud-check {:connection :fraud-api :method :post :path "/analyze" :json {...}})',
            ),
            FlowStep(
                id="approval",
                type="wait",
                title="Wait for Approval",
                input_schema="{signalKey: string}",
                output_schema="{approved: boolean, approverId: string}",
                definition='(step :wait :approval {:source :api :signal-key (str "approve-" order-id) :timeout 86400})',
            ),
            FlowStep(
                id="fulfill",
                type="http",
                title="Fulfill Order",
                input_schema="{orderId: string, approvedBy: string}",
                output_schema="{status: number}",
                definition='(step :http :fulfill {:connection :shop-api :method :post :path (str "/orders/" order-id "/fulfill")})',
            ),
        ],
    )

    return [subscription_renewal, daily_sales_report, order_processor]


# ---------------------------------------------------------------------------
# Run history


def _finished_step(
    step: FlowStep,
    started_at: datetime,
    duration_ms: int,
    input_preview: Any,
    result_preview: Any,
    status: str = STATUS_COMPLETED,
    attempt: int = 1,
    error: Optional[str] = None,
) -> StepExecution:
    return StepExecution(
        step_id=step.id,
        step_type=step.type,
        title=step.title,
        status=status,
        attempt=attempt,
        started_at=started_at,
        completed_at=started_at + timedelta(milliseconds=duration_ms),
        duration_ms=duration_ms,
        input_preview=input_preview,
        result_preview=result_preview,
        error=error,
    )


def _skipped_step(step: FlowStep) -> StepExecution:
    return StepExecution(
        step_id=step.id,
        step_type=step.type,
        title=step.title,
        status=STATUS_CANCELLED,
        attempt=0,
    )


def _seed_runs(now: datetime, renewal: Flow) -> list[Run]:
    fetch_customer, fetch_payment, process_card, wait_status, send_receipt = (
        renewal.steps
    )

    # Completed run: fetch-payment-method needed a second attempt.
    started = now - timedelta(minutes=12)
    run_input = {"subscriptionId": "sub_123"}
    customer = {"status": 200, "body": {"customerId": "cus_42", "email": "a@company.com"}}
    payment_method = {"status": 200, "body": {"type": "card", "cardLast4": "4242"}}
    payment = {"status": 200, "body": {"paymentIntentId": "pi_abc", "status": "requires_action"}}
    signal = {"status": "succeeded", "paymentIntentId": "pi_abc"}
    receipt = {"success": True}
    completed_steps = [
        _finished_step(fetch_customer, started, 180, run_input, customer),
        _finished_step(
            fetch_payment,
            now - timedelta(minutes=11),
            920,
            customer,
            payment_method,
            attempt=2,
        ),
        _finished_step(process_card, now - timedelta(minutes=10), 1250, payment_method, payment),
        _finished_step(wait_status, now - timedelta(minutes=9), 30000, payment, signal),
        _finished_step(send_receipt, now - timedelta(minutes=8), 500, signal, receipt),
    ]
    completed_at = completed_steps[-1].completed_at
    completed_run = Run(
        workflow_id="4821",
        flow_slug="subscription-renewal",
        version=4,
        status=STATUS_COMPLETED,
        triggered_by="schedule",
        started_at=started,
        updated_at=completed_at,
        completed_at=completed_at,
        input_preview=run_input,
        result_preview={"status": "success", "receiptSent": True},
        steps=completed_steps,
    )

    # Failed run from three days ago: the card was declined.
    failed_at = now - timedelta(days=3)
    run_input = {"subscriptionId": "sub_119"}
    customer = {"status": 200, "body": {"customerId": "cus_19", "email": "billing@startup.com"}}
    payment_method = {"status": 200, "body": {"type": "card", "cardLast4": "0005"}}
    declined = {"status": 402, "body": {"error": "card_declined"}}
    failed_steps = [
        _finished_step(fetch_customer, failed_at - timedelta(minutes=3), 200, run_input, customer),
        _finished_step(
            fetch_payment, failed_at - timedelta(minutes=2), 400, customer, payment_method
        ),
        _finished_step(
            process_card,
            failed_at - timedelta(seconds=50, milliseconds=800),
            800,
            payment_method,
            declined,
            status=STATUS_FAILED,
            error="card_declined",
        ),
        _skipped_step(wait_status),
        _skipped_step(send_receipt),
    ]
    failed_run = Run(
        workflow_id="4799",
        flow_slug="subscription-renewal",
        version=4,
        status=STATUS_FAILED,
        triggered_by="schedule",
        started_at=failed_at - timedelta(minutes=3),
        updated_at=failed_at - timedelta(seconds=50),
        completed_at=failed_at - timedelta(seconds=50),
        input_preview=run_input,
        result_preview={"status": "failed", "reason": "card_declined"},
        error="card_declined",
        steps=failed_steps,
    )

    return [completed_run, failed_run]


# ---------------------------------------------------------------------------
# Marketplace and demand fixtures


def _seed_marketplace(ws: Workspace, now: datetime) -> None:
    published = now - timedelta(days=10)
    ws.registry = {
        "wrk-subscription-renewal": RegistryEntry(
            id="wrk-subscription-renewal",
            slug="subscription-renewal",
            title="Subscription Renewal",
            summary="Renew subscriptions with retries, waits, and receipts.",
            description=(
                "A production-grade renewal workflow with retries for transient "
                "failures and receipt delivery."
            ),
            creator=DEMO_OWNER,
            category="billing",
            tags=["billing", "payments", "revenue"],
            pricing=Pricing(model="per_success", currency="USD", amount_cents=1000),
            updated_at=now - timedelta(hours=3),
            published_at=published,
            versions=[
                RegistryVersion(
                    version=1,
                    published_at=published,
                    note="Initial listing",
                    flow_slug="subscription-renewal",
                    flow_version=2,
                ),
                RegistryVersion(
                    version=2,
                    published_at=published + timedelta(days=4),
                    note="Add wait state + receipt",
                    flow_slug="subscription-renewal",
                    flow_version=4,
                ),
            ],
            stats=RegistryStats(
                views=1240,
                installs=47,
                active=19,
                success_rate=0.93,
                rating=4.8,
                reviews=12,
                revenue_cents=18700,
            ),
        ),
        "wrk-daily-sales-report": RegistryEntry(
            id="wrk-daily-sales-report",
            slug="daily-sales-report",
            title="Daily Sales Report",
            summary="Fetch sales, compute metrics, post a report.",
            description="A simple reporting workflow. Great starter for analytics automation.",
            creator=DEMO_OWNER,
            category="analytics",
            tags=["analytics", "reporting"],
            pricing=Pricing(
                model="subscription", currency="USD", amount_cents=1500, interval="month"
            ),
            updated_at=now - timedelta(hours=2),
            published_at=published + timedelta(days=2),
            versions=[
                RegistryVersion(
                    version=1,
                    published_at=published + timedelta(days=2),
                    note="Launch",
                    flow_slug="daily-sales-report",
                    flow_version=3,
                )
            ],
            stats=RegistryStats(
                views=980,
                installs=31,
                active=14,
                success_rate=0.98,
                rating=4.6,
                reviews=7,
                revenue_cents=46500,
            ),
        ),
        "wrk-order-processor": RegistryEntry(
            id="wrk-order-processor",
            slug="order-processor",
            title="Order Processor",
            summary="Fraud check + approval + fulfillment.",
            description=(
                "Handle orders with fraud scoring and optional human approval for "
                "high-value purchases."
            ),
            creator=DEMO_OWNER,
            category="ops",
            tags=["ops", "approval", "fraud"],
            pricing=Pricing(model="per_run", currency="USD", amount_cents=250),
            updated_at=now - timedelta(hours=7),
            published_at=published + timedelta(days=6),
            versions=[
                RegistryVersion(
                    version=1,
                    published_at=published + timedelta(days=6),
                    note="Launch",
                    flow_slug="order-processor",
                    flow_version=7,
                )
            ],
            stats=RegistryStats(
                views=530,
                installs=18,
                active=6,
                success_rate=0.87,
                rating=4.2,
                reviews=4,
                revenue_cents=9200,
            ),
        ),
    }

    paid_at = now - timedelta(days=9)
    ws.purchases = {
        "pur-001": Purchase(
            id="pur-001",
            listing_id="wrk-subscription-renewal",
            buyer="buyer@demo.test",
            status="paid",
            created_at=paid_at - timedelta(minutes=2),
            paid_at=paid_at,
            amount_cents=1000,
            currency="USD",
        )
    }
    ws.entitlements = {
        "ent-001": Entitlement(
            id="ent-001",
            listing_id="wrk-subscription-renewal",
            buyer="buyer@demo.test",
            status="active",
            created_at=paid_at,
            expires_at=now + timedelta(days=21),
            limits={"runsPerMonth": 200},
        )
    }
    period = now.strftime("%Y-%m")
    ws.payouts = {
        f"pay-{period}": Payout(
            id=f"pay-{period}",
            creator=DEMO_OWNER,
            period=period,
            amount_cents=61200,
            currency="USD",
            status="pending",
            created_at=now - timedelta(days=2),
        )
    }


def _seed_demand(ws: Workspace, now: datetime) -> None:
    ws.revenue_events = [
        RevenueEvent(
            at=now - timedelta(days=1),
            amount_cents=9900,
            source="flow-run",
            flow_slug="subscription-renewal",
            run_id="4821",
        ),
        RevenueEvent(
            at=now - timedelta(days=3),
            amount_cents=9900,
            source="flow-run",
            flow_slug="subscription-renewal",
            run_id="4799",
        ),
        RevenueEvent(
            at=now - timedelta(days=8),
            amount_cents=2500,
            source="subscription",
            flow_slug="daily-sales-report",
        ),
    ]
    ws.demand_top = [
        DemandItem(
            query="renew subscriptions and email receipts",
            count=42,
            window="30d",
            suggested_price="$10 / successful renewal",
            matched_flows=["subscription-renewal"],
        ),
        DemandItem(
            query="weekly slack report from sales data",
            count=27,
            window="30d",
            suggested_price="$5 / run",
            matched_flows=["daily-sales-report"],
        ),
        DemandItem(
            query="high value order approval workflow",
            count=18,
            window="30d",
            suggested_price="$15 / run",
            matched_flows=["order-processor"],
        ),
    ]
    ws.demand_queries = [
        DemandQuery(
            query="Send me a daily Slack summary of Stripe refunds",
            at=now - timedelta(hours=2),
            window="30d",
            offer_cents=1000,
            currency="USD",
            normalized_to="daily stripe refund summary",
        ),
        DemandQuery(
            query="Renew subscriptions and retry payment if card fails",
            at=now - timedelta(hours=5),
            window="30d",
            offer_cents=1000,
            currency="USD",
            normalized_to="subscription renewal with retries",
        ),
        DemandQuery(
            query="Fraud check orders and require approval for large orders",
            at=now - timedelta(hours=10),
            window="30d",
            offer_cents=500,
            currency="USD",
            normalized_to="order fraud + approval",
        ),
    ]
    ws.demand_clusters = [
        DemandCluster(
            id="dem-001",
            title="Subscription renewal with retries",
            count=42,
            window="30d",
            examples=[
                "Renew subscriptions and retry payment if card fails",
                "Handle invoice vs card billing automatically",
            ],
            suggested_price="$10 / success",
            matched_listings=["wrk-subscription-renewal"],
        ),
        DemandCluster(
            id="dem-002",
            title="Daily sales reporting",
            count=27,
            window="30d",
            examples=["Daily sales report to Slack", "Weekly revenue summary email"],
            suggested_price="$15 / month",
            matched_listings=["wrk-daily-sales-report"],
        ),
        DemandCluster(
            id="dem-003",
            title="Order fraud + approval",
            count=18,
            window="30d",
            examples=["Fraud check orders and require approval for large orders"],
            suggested_price="$2.50 / run",
            matched_listings=["wrk-order-processor"],
        ),
    ]
