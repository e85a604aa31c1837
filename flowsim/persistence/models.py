"""Data models for the persisted simulator snapshot."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import (
    AwareDatetime,
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
)
from pydantic.alias_generators import to_camel

from ..constants import ACTIVE_STEP_STATUSES, STATE_SCHEMA_VERSION, STATUS_PENDING


class SnapshotModel(BaseModel):
    """Base for all snapshot records: camelCase on disk, snake_case in code."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FlowStep(SnapshotModel):
    """One step definition of a flow. Never mutated after seeding."""

    id: str
    type: str
    title: str = ""
    input_schema: str = ""
    output_schema: str = ""
    definition: str = ""


class Flow(SnapshotModel):
    slug: str
    name: str = ""
    description: str = ""
    tags: list[str] = Field(default_factory=list)
    archived: bool = False
    active_version: int = 1
    updated_at: Optional[AwareDatetime] = None
    spine: list[str] = Field(default_factory=list)
    steps: list[FlowStep] = Field(default_factory=list)


class StepExecution(SnapshotModel):
    """Per-run execution record of one flow step.

    Step id, type and title are copied from the flow when the run starts so
    the history stays readable if the flow changes later.
    """

    step_id: str
    step_type: str = ""
    title: str = ""
    status: str = STATUS_PENDING
    attempt: int = 0
    started_at: Optional[AwareDatetime] = None
    completed_at: Optional[AwareDatetime] = None
    duration_ms: int = 0
    input_preview: Any = None
    result_preview: Any = None
    error: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STEP_STATUSES


class Run(SnapshotModel):
    """One execution instance of a flow."""

    workflow_id: str
    flow_slug: str
    version: int = 0
    status: str = STATUS_PENDING
    triggered_by: str = ""
    started_at: AwareDatetime
    updated_at: AwareDatetime
    completed_at: Optional[AwareDatetime] = None
    current_step: str = ""
    input_preview: Any = None
    result_preview: Any = None
    error: Optional[str] = None
    steps: list[StepExecution] = Field(default_factory=list)

    def active_step(self) -> Optional[StepExecution]:
        """Return the step currently running or waiting to retry."""
        return next((s for s in self.steps if s.is_active), None)

    def next_pending_step(self) -> Optional[StepExecution]:
        return next((s for s in self.steps if s.status == STATUS_PENDING), None)

    def step(self, step_id: str) -> Optional[StepExecution]:
        return next((s for s in self.steps if s.step_id == step_id), None)


# ---------------------------------------------------------------------------
# Auxiliary workspace collections. The simulator never mutates these; they are
# seeded for the marketplace and demand views.


class Connection(SnapshotModel):
    id: str
    name: str = ""
    type: str = ""
    status: str = ""
    updated_at: Optional[AwareDatetime] = None
    config: Any = None


class Trigger(SnapshotModel):
    id: str
    flow_slug: str = ""
    type: str = ""  # schedule, webhook, manual
    name: str = ""
    enabled: bool = False
    updated_at: Optional[AwareDatetime] = None
    config: Any = None


class Profile(SnapshotModel):
    id: str
    flow_slug: str = ""
    version: int = 0
    name: str = ""
    enabled: bool = False
    profile_type: str = ""
    user_id: Optional[str] = None
    updated_at: Optional[AwareDatetime] = None
    bindings: Any = None


class Wait(SnapshotModel):
    id: str
    run_id: str = ""
    step_id: str = ""
    type: str = ""  # input, secret, approve
    status: str = ""
    prompt: str = ""
    created_at: Optional[AwareDatetime] = None
    payload: Any = None


class Pricing(SnapshotModel):
    model: str = ""  # per_run | per_success | subscription
    currency: str = "USD"
    amount_cents: int = 0
    interval: Optional[str] = None


class RegistryStats(SnapshotModel):
    views: int = 0
    installs: int = 0
    active: int = 0
    success_rate: float = 0.0
    rating: float = 0.0
    reviews: int = 0
    revenue_cents: int = 0


class RegistryVersion(SnapshotModel):
    version: int
    published_at: Optional[AwareDatetime] = None
    note: Optional[str] = None
    flow_slug: str = ""
    flow_version: int = 0


class RegistryEntry(SnapshotModel):
    """Marketplace listing for a flow."""

    id: str
    slug: str = ""
    title: str = ""
    summary: str = ""
    description: Optional[str] = None
    creator: str = ""
    category: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    pricing: Pricing = Field(default_factory=Pricing)
    updated_at: Optional[AwareDatetime] = None
    published_at: Optional[AwareDatetime] = None
    versions: list[RegistryVersion] = Field(default_factory=list)
    stats: RegistryStats = Field(default_factory=RegistryStats)


class Purchase(SnapshotModel):
    id: str
    listing_id: str = ""
    buyer: str = ""
    status: str = ""  # created | paid | cancelled | refunded
    created_at: Optional[AwareDatetime] = None
    paid_at: Optional[AwareDatetime] = None
    amount_cents: int = 0
    currency: str = "USD"


class Entitlement(SnapshotModel):
    id: str
    listing_id: str = ""
    buyer: str = ""
    status: str = ""  # active | expired | revoked
    created_at: Optional[AwareDatetime] = None
    expires_at: Optional[AwareDatetime] = None
    limits: dict[str, Any] = Field(default_factory=dict)


class Payout(SnapshotModel):
    id: str
    creator: str = ""
    period: str = ""
    amount_cents: int = 0
    currency: str = "USD"
    status: str = ""  # pending | paid
    created_at: Optional[AwareDatetime] = None
    paid_at: Optional[AwareDatetime] = None


class RevenueEvent(SnapshotModel):
    at: AwareDatetime
    currency: str = "USD"
    amount_cents: int = 0
    source: str = ""  # flow-run, subscription
    flow_slug: str = ""
    run_id: Optional[str] = None


class DemandItem(SnapshotModel):
    query: str
    count: int = 0
    window: str = ""
    suggested_price: str = ""
    matched_flows: list[str] = Field(default_factory=list)


class DemandQuery(SnapshotModel):
    query: str
    at: Optional[AwareDatetime] = None
    window: Optional[str] = None
    offer_cents: int = 0
    currency: Optional[str] = None
    normalized_to: Optional[str] = None


class DemandCluster(SnapshotModel):
    id: str
    title: str = ""
    count: int = 0
    window: str = ""
    examples: list[str] = Field(default_factory=list)
    suggested_price: str = ""
    matched_listings: list[str] = Field(default_factory=list)


_COLLECTION_FIELDS = (
    "flows",
    "runs",
    "connections",
    "triggers",
    "registry",
    "purchases",
    "entitlements",
    "payouts",
    "instances",
    "profiles",
    "waits",
    "revenue_events",
    "demand_top",
    "demand_queries",
    "demand_clusters",
)
_LIST_FIELDS = frozenset(
    {"revenue_events", "demand_top", "demand_queries", "demand_clusters"}
)


class Workspace(SnapshotModel):
    id: str
    name: str = ""
    plan: str = ""
    owner: str = ""
    updated_at: Optional[AwareDatetime] = None
    flows: dict[str, Flow] = Field(default_factory=dict)
    runs: dict[str, Run] = Field(default_factory=dict)

    connections: dict[str, Connection] = Field(default_factory=dict)
    triggers: dict[str, Trigger] = Field(default_factory=dict)
    registry: dict[str, RegistryEntry] = Field(default_factory=dict)
    purchases: dict[str, Purchase] = Field(default_factory=dict)
    entitlements: dict[str, Entitlement] = Field(default_factory=dict)
    payouts: dict[str, Payout] = Field(default_factory=dict)
    instances: dict[str, dict[str, Any]] = Field(default_factory=dict)
    profiles: dict[str, Profile] = Field(default_factory=dict)
    waits: dict[str, Wait] = Field(default_factory=dict)

    revenue_events: list[RevenueEvent] = Field(default_factory=list)
    demand_top: list[DemandItem] = Field(default_factory=list)
    demand_queries: list[DemandQuery] = Field(default_factory=list)
    demand_clusters: list[DemandCluster] = Field(default_factory=list)

    @field_validator(*_COLLECTION_FIELDS, mode="before")
    @classmethod
    def _ensure_collection(cls, value: Any, info: ValidationInfo) -> Any:
        # Older or hand-edited snapshots may carry explicit nulls.
        if value is None:
            return [] if info.field_name in _LIST_FIELDS else {}
        return value


class State(SnapshotModel):
    """Root aggregate persisted as a single JSON document."""

    version: int = STATE_SCHEMA_VERSION
    tick: int = 0
    workspaces: dict[str, Workspace] = Field(default_factory=dict)

    @field_validator("workspaces", mode="before")
    @classmethod
    def _ensure_workspaces(cls, value: Any) -> Any:
        return {} if value is None else value

    def to_json(self) -> str:
        """Serialize the snapshot as indented JSON with a trailing newline."""
        return self.model_dump_json(by_alias=True, indent=2) + "\n"

    @classmethod
    def from_json(cls, data: str | bytes) -> "State":
        return cls.model_validate_json(data)
