"""Command line interface for the flow simulator."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, NoReturn, Optional

import typer

from flowsim.config import load_config
from flowsim.errors import FlowSimError
from flowsim.persistence import Run, State
from flowsim.simulation import DEFAULT_INPUT
from flowsim.simulation.results import format_timestamp
from flowsim.session import SimulationSession
from flowsim.watch import StateWatcher

app = typer.Typer(help="CLI for simulating flow runs offline")

# Command groups
flows_app = typer.Typer(help="Inspect flow definitions")
runs_app = typer.Typer(help="Start, inspect and watch runs")
dev_app = typer.Typer(help="Reset and advance the simulated world")

app.add_typer(flows_app, name="flows")
app.add_typer(runs_app, name="runs")
app.add_typer(dev_app, name="dev")


@app.callback()
def main(
    ctx: typer.Context,
    state: Optional[Path] = typer.Option(
        None, "--state", help="Path to the simulator state JSON"
    ),
    workspace: Optional[str] = typer.Option(
        None, "--workspace", help="Workspace id"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """flowsim CLI entry point."""
    try:
        config = load_config()
    except FlowSimError as exc:
        _fail(exc)
    logging.basicConfig(
        level=logging.DEBUG if verbose else config.log_level,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = {
        "config": config,
        "state_path": state,
        "workspace_id": workspace,
    }


def _session(ctx: typer.Context) -> SimulationSession:
    obj = ctx.obj or {}
    return SimulationSession.from_config(
        config=obj.get("config"),
        state_path=obj.get("state_path"),
        workspace_id=obj.get("workspace_id"),
    )


def _fail(exc: Exception) -> NoReturn:
    typer.secho(f"Error: {exc}", fg=typer.colors.RED)
    raise typer.Exit(code=1)


def _dump(value: Any) -> str:
    return json.dumps(value, indent=2, default=str)


def _run_line(run: Run) -> str:
    return "\t".join(
        [run.workflow_id, run.flow_slug, run.status, run.current_step or "-"]
    )


@flows_app.command("list")
def flows_list(ctx: typer.Context) -> None:
    """
    List flows in the workspace, sorted by slug.

    Example:
        flowsim flows list
        # Output: daily-sales-report    v3    3 steps    Daily Sales Report
    """
    session = _session(ctx)
    try:
        st = session.ensure()
        flows = session.simulator.list_flows(st)
    except FlowSimError as exc:
        _fail(exc)
    if not flows:
        typer.echo("No flows found")
        return
    for flow in flows:
        typer.echo(
            f"{flow.slug}\tv{flow.active_version}\t{len(flow.steps)} steps\t{flow.name}"
        )


@flows_app.command("show")
def flows_show(ctx: typer.Context, slug: str) -> None:
    """Show a flow definition with its ordered steps."""
    session = _session(ctx)
    try:
        flow = session.simulator.get_flow(session.ensure(), slug)
    except FlowSimError as exc:
        _fail(exc)
    typer.echo(f"Flow {flow.slug}: {flow.name} (v{flow.active_version})")
    if flow.description:
        typer.echo(flow.description)
    if flow.tags:
        typer.echo(f"Tags: {', '.join(flow.tags)}")
    for index, step in enumerate(flow.steps, start=1):
        typer.echo(f"{index}. {step.id} [{step.type}] {step.title}")


@runs_app.command("list")
def runs_list(
    ctx: typer.Context,
    flow: Optional[str] = typer.Option(None, "--flow", help="Filter by flow slug"),
    limit: int = typer.Option(25, "--limit", help="Limit results (0 = all)"),
) -> None:
    """
    List runs, most recently started first.

    Returns:
        Tab-separated run id, flow slug, status and current step

    Example:
        flowsim runs list --flow subscription-renewal
        # Output: wf-1a2b3c4d5e6f    subscription-renewal    running    fetch-customer
        #         4821               subscription-renewal    completed  -
    """
    session = _session(ctx)
    try:
        runs = session.simulator.list_runs(session.ensure(), flow)
    except FlowSimError as exc:
        _fail(exc)
    if not runs:
        typer.echo("No runs found")
        return
    total = len(runs)
    if limit > 0:
        runs = runs[:limit]
    for run in runs:
        typer.echo(_run_line(run))
    if len(runs) < total:
        typer.echo(f"({len(runs)} of {total} shown; use --limit 0 to show all)")


@runs_app.command("show")
def runs_show(
    ctx: typer.Context,
    run_id: str,
    as_json: bool = typer.Option(False, "--json", help="Print the full run as JSON"),
) -> None:
    """
    Show a run with its step-by-step execution history.

    Example:
        flowsim runs show 4821
        # Output: Run 4821 (subscription-renewal v4): completed
        #         - fetch-customer [http]: completed (attempt 1, 180ms)
    """
    session = _session(ctx)
    try:
        run = session.simulator.get_run(session.ensure(), run_id)
    except FlowSimError as exc:
        _fail(exc)
    if as_json:
        typer.echo(run.model_dump_json(by_alias=True, indent=2))
        return
    typer.echo(f"Run {run.workflow_id} ({run.flow_slug} v{run.version}): {run.status}")
    typer.echo(f"Triggered by: {run.triggered_by}")
    if run.error:
        typer.echo(f"Error: {run.error}")
    for step in run.steps:
        detail = f"attempt {step.attempt}"
        if step.completed_at is not None:
            detail += f", {step.duration_ms}ms"
        if step.error:
            detail += f", error: {step.error}"
        typer.echo(f"- {step.step_id} [{step.step_type}]: {step.status} ({detail})")
    if run.result_preview is not None:
        typer.echo(f"Result: {_dump(run.result_preview)}")


@runs_app.command("start")
def runs_start(
    ctx: typer.Context,
    flow: str = typer.Option(..., "--flow", help="Flow slug"),
    version: int = typer.Option(0, "--version", help="Version (default active)"),
    input_json: Optional[str] = typer.Option(
        None, "--input", help="JSON object used as the run input"
    ),
) -> None:
    """
    Start a new run of a flow. The first step starts running immediately.

    Example:
        flowsim runs start --flow daily-sales-report
        flowsim runs start --flow order-processor --input '{"orderId": "o-1"}'
    """
    input_preview = DEFAULT_INPUT
    if input_json is not None:
        try:
            input_preview = json.loads(input_json)
        except json.JSONDecodeError as exc:
            typer.secho(f"Invalid --input JSON: {exc}", fg=typer.colors.RED)
            raise typer.Exit(code=1)
    session = _session(ctx)
    try:
        with session.transaction() as st:
            run = session.simulator.start_run(
                st, flow, version=version, input_preview=input_preview
            )
    except FlowSimError as exc:
        _fail(exc)
    typer.echo(f"Started run {run.workflow_id} ({run.flow_slug} v{run.version})")
    if run.current_step:
        typer.echo(f"Current step: {run.current_step}")


@runs_app.command("step")
def runs_step(ctx: typer.Context, run_id: str, step_id: str) -> None:
    """Show one step execution of a run together with its definition."""
    session = _session(ctx)
    try:
        execution, definition = session.simulator.get_step(
            session.ensure(), run_id, step_id
        )
    except FlowSimError as exc:
        _fail(exc)
    payload = {
        "runId": run_id,
        "step": execution.model_dump(by_alias=True, mode="json"),
        "definition": (
            definition.model_dump(by_alias=True, mode="json") if definition else None
        ),
    }
    typer.echo(_dump(payload))


@runs_app.command("replay")
def runs_replay(ctx: typer.Context, run_id: str) -> None:
    """Start a new run of the same flow and version with the original input."""
    session = _session(ctx)
    try:
        with session.transaction() as st:
            run = session.simulator.replay_run(st, run_id)
    except FlowSimError as exc:
        _fail(exc)
    typer.echo(f"Replayed {run_id} as {run.workflow_id}")


@runs_app.command("retry")
def runs_retry(ctx: typer.Context, run_id: str) -> None:
    """Run the flow of RUN_ID again from its first step."""
    session = _session(ctx)
    try:
        with session.transaction() as st:
            run = session.simulator.retry_run(st, run_id)
    except FlowSimError as exc:
        _fail(exc)
    typer.echo(f"Retried {run_id} as {run.workflow_id}")


@runs_app.command("cancel")
def runs_cancel(
    ctx: typer.Context,
    run_id: str,
    reason: str = typer.Option("", "--reason", help="Cancellation reason"),
    force: bool = typer.Option(False, "--force", help="Terminate the run immediately"),
) -> None:
    """
    Cancel a run so it is no longer advanced.

    Example:
        flowsim runs cancel wf-1a2b3c4d5e6f --reason "wrong input"
        # Output: Run wf-1a2b3c4d5e6f cancelled
    """
    session = _session(ctx)
    try:
        st = session.ensure()
        run, changed = session.simulator.cancel_run(
            st, run_id, reason=reason, force=force
        )
        if changed:
            session.store.save(st)
    except FlowSimError as exc:
        _fail(exc)
    if not changed:
        typer.echo(f"Run {run_id} is already terminal ({run.status})")
        return
    typer.echo(f"Run {run_id} {run.status}")


@runs_app.command("events")
def runs_events(
    ctx: typer.Context,
    run_id: str,
    as_json: bool = typer.Option(False, "--json", help="Print the events as JSON"),
) -> None:
    """
    Show the event timeline of a run, oldest first.

    Example:
        flowsim runs events 4821
        # Output: 2026-01-01T11:48:00Z    run_started
        #         2026-01-01T11:48:00Z    step_started    fetch-customer
    """
    session = _session(ctx)
    try:
        events = session.simulator.run_events(session.ensure(), run_id)
    except FlowSimError as exc:
        _fail(exc)
    if as_json:
        typer.echo(_dump([event.to_preview() for event in events]))
        return
    for event in events:
        preview = event.to_preview()
        detail = preview.get("stepId") or preview.get("status") or ""
        typer.echo("\t".join([format_timestamp(event.at), event.type, detail]).rstrip())

@runs_app.command("watch")
def runs_watch(
    ctx: typer.Context,
    interval: Optional[float] = typer.Option(
        None, "--interval", help="Polling interval in seconds"
    ),
    lifespan: Optional[float] = typer.Option(
        None, "--lifespan", help="Stop after this many seconds (default: run until stopped)"
    ),
) -> None:
    """
    Print run statuses whenever the state file changes.

    Pair with `flowsim dev advance` in another terminal to follow runs as
    they progress.
    """
    session = _session(ctx)
    config = (ctx.obj or {}).get("config") or load_config()
    try:
        st = session.ensure()
        _print_watch_frame(session, st)
        watcher = StateWatcher(session.store, interval or config.watch.interval)
        for st in watcher.watch(lifespan=lifespan):
            _print_watch_frame(session, st)
    except FlowSimError as exc:
        _fail(exc)


def _print_watch_frame(session: SimulationSession, st: State) -> None:
    typer.echo(f"-- tick {st.tick}")
    for run in session.simulator.list_runs(st):
        typer.echo(_run_line(run))


@dev_app.command("seed")
def dev_seed(ctx: typer.Context) -> None:
    """Reset the simulator state to the seeded defaults."""
    session = _session(ctx)
    st = session.reseed()
    typer.echo(f"Seeded workspace {session.workspace_id} (tick {st.tick})")


@dev_app.command("advance")
def dev_advance(
    ctx: typer.Context,
    ticks: int = typer.Option(1, "--ticks", help="How many ticks to advance"),
) -> None:
    """
    Advance every running run forward and save the result.

    Example:
        flowsim dev advance --ticks 3
        # Output: Advanced to tick 3
    """
    session = _session(ctx)
    try:
        with session.transaction() as st:
            tick = session.simulator.advance(st, ticks)
    except FlowSimError as exc:
        _fail(exc)
    typer.echo(f"Advanced to tick {tick}")


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    app()
