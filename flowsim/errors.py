"""Exception hierarchy for flowsim."""

from __future__ import annotations


class FlowSimError(Exception):
    """Base class for all flowsim errors."""


class NotFoundError(FlowSimError, LookupError):
    """A workspace, flow, run, step or snapshot does not exist."""


class WorkspaceNotFoundError(NotFoundError):
    def __init__(self, workspace_id: str) -> None:
        super().__init__(f"workspace not found: {workspace_id}")
        self.workspace_id = workspace_id


class FlowNotFoundError(NotFoundError):
    def __init__(self, slug: str) -> None:
        super().__init__(f"flow not found: {slug}")
        self.slug = slug


class RunNotFoundError(NotFoundError):
    def __init__(self, run_id: str) -> None:
        super().__init__(f"run not found: {run_id}")
        self.run_id = run_id


class StepNotFoundError(NotFoundError):
    def __init__(self, run_id: str, step_id: str) -> None:
        super().__init__(f"step not found: {step_id} (run {run_id})")
        self.run_id = run_id
        self.step_id = step_id


class StateNotFoundError(NotFoundError):
    """No snapshot exists at the given path."""

    def __init__(self, path: str) -> None:
        super().__init__(f"state file not found: {path}")
        self.path = path


class MalformedStateError(FlowSimError, ValueError):
    """The snapshot exists but cannot be parsed as a ``State`` document."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"malformed state file {path}: {reason}")
        self.path = path
        self.reason = reason


class ConfigError(FlowSimError, ValueError):
    """The configuration file or environment holds invalid settings."""

    def __init__(self, source: str, reason: str) -> None:
        super().__init__(f"invalid configuration in {source}: {reason}")
        self.source = source
        self.reason = reason
