"""Shared constants for the flow simulator."""

STATUS_QUEUED = "queued"
STATUS_PENDING = "pending"
STATUS_RUNNING = "running"
STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"
STATUS_CANCELLED = "cancelled"
STATUS_WAITING = "waiting"
STATUS_RETRYING = "retrying"
STATUS_TERMINATED = "terminated"

ACTIVE_STEP_STATUSES = (STATUS_RUNNING, STATUS_RETRYING)
TERMINAL_RUN_STATUSES = (
    STATUS_COMPLETED,
    STATUS_FAILED,
    STATUS_CANCELLED,
    STATUS_TERMINATED,
)

STEP_TYPE_HTTP = "http"
STEP_TYPE_CODE = "code"
STEP_TYPE_WAIT = "wait"
STEP_TYPE_NOTIFY = "notify"
STEP_TYPE_LLM = "llm"

STATE_SCHEMA_VERSION = 1
DEFAULT_WORKSPACE_ID = "ws-acme"
APP_DIR_NAME = "flowsim"

RUN_ID_PREFIX = "wf-"
RUN_ID_BYTES = 6

FAULT_TICK_INTERVAL = 7
TRANSIENT_ERROR_MESSAGE = "transient network error"

DEFAULT_WATCH_INTERVAL = 0.5
