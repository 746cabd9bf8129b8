"""CLI tools: tasklane worker, tasklane scheduler, tasklane enqueue, tasklane next-run."""

from __future__ import annotations

import asyncio
import sys
from datetime import datetime
from importlib import metadata

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from tasklane.bootstrap import Runtime, build_broker, build_runtime
from tasklane.clock import utcnow
from tasklane.config import ConfigLoadError, TaskLaneConfig, load_config
from tasklane.cron import upcoming_runs
from tasklane.errors import CronExpressionError
from tasklane.logging_setup import configure_logging
from tasklane.queue.hatchet import HatchetBroker
from tasklane.queue.jobs import enqueue_immediate_task, enqueue_scheduled_task
from tasklane.queue.memory import InMemoryBroker

app = typer.Typer(
    name="tasklane",
    help="tasklane: queue-backed execution of email and webhook tasks.",
)

console = Console()

_CONFIG_OPTION_HELP = "Optional config file path (defaults to TASKLANE_CONFIG or ./tasklane.yaml)"


def _load_config(config: str | None) -> TaskLaneConfig:
    try:
        cfg = load_config(config_path=config)
    except (ConfigLoadError, ValidationError) as exc:
        console.print(f"[red]Error:[/red] invalid configuration: {escape(str(exc))}")
        raise typer.Exit(2) from exc
    configure_logging(cfg.logging)
    return cfg


def _require_durable_backend(cfg: TaskLaneConfig, command: str) -> None:
    if cfg.queue.backend != "hatchet":
        console.print(
            f"[red]Error:[/red] `tasklane {command}` needs queue.backend=hatchet; "
            "the memory backend only lives inside `tasklane worker`."
        )
        raise typer.Exit(2)


async def _run_local(runtime: Runtime) -> None:
    """Run the in-memory broker and the due-task scheduler in this process."""
    broker = runtime.broker
    if not isinstance(broker, InMemoryBroker):
        raise RuntimeError("local mode needs the in-memory broker")
    broker.start(runtime.worker.process)
    try:
        await runtime.scheduler.run()
    finally:
        runtime.scheduler.stop()
        await broker.stop()
        await runtime.aclose()


@app.command("worker")
def worker_command(
    config: str = typer.Option("", "--config", help=_CONFIG_OPTION_HELP),
) -> None:
    """Run the task worker against the configured broker."""
    cfg = _load_config(config or None)
    runtime = build_runtime(cfg)
    broker = runtime.broker
    if isinstance(broker, HatchetBroker):
        for job_type in runtime.worker.job_types:
            broker.register(job_type, runtime.worker.process)
        console.print(f"Starting Hatchet worker for {', '.join(runtime.worker.job_types)}")
        try:
            broker.start_worker()
        finally:
            asyncio.run(runtime.aclose())
        return
    console.print("Starting local worker with in-memory broker and due-task scheduler")
    asyncio.run(_run_local(runtime))


@app.command("scheduler")
def scheduler_command(
    config: str = typer.Option("", "--config", help=_CONFIG_OPTION_HELP),
) -> None:
    """Run the due-task scheduler loop, enqueueing scheduled tasks as they fall due."""
    cfg = _load_config(config or None)
    _require_durable_backend(cfg, "scheduler")
    runtime = build_runtime(cfg)

    async def _run() -> None:
        try:
            await runtime.scheduler.run()
        finally:
            await runtime.aclose()

    asyncio.run(_run())


@app.command("enqueue")
def enqueue_command(
    kind: str = typer.Argument(..., help="Task kind: immediate or scheduled"),
    task_id: int = typer.Argument(..., help="Id of the persisted task row"),
    config: str = typer.Option("", "--config", help=_CONFIG_OPTION_HELP),
) -> None:
    """Enqueue a job for an existing task row."""
    normalized = kind.strip().lower()
    if normalized not in {"immediate", "scheduled"}:
        console.print(f"[red]Error:[/red] unknown task kind {escape(repr(kind))}; use immediate or scheduled")
        raise typer.Exit(2)
    cfg = _load_config(config or None)
    _require_durable_backend(cfg, "enqueue")
    broker = build_broker(cfg)
    helper = enqueue_immediate_task if normalized == "immediate" else enqueue_scheduled_task
    job_id = asyncio.run(helper(broker, task_id))
    console.print(f"Enqueued {normalized} task {task_id} as job {job_id}")


@app.command("next-run")
def next_run_command(
    expression: str = typer.Argument(..., help="5-field cron expression"),
    count: int = typer.Option(5, "--count", "-n", min=1, max=100, help="Number of fire times to show"),
    start: str = typer.Option("", "--from", help="ISO 8601 reference time (default: now, UTC)"),
) -> None:
    """Print the next fire times of a cron expression."""
    try:
        reference = datetime.fromisoformat(start) if start else utcnow()
    except ValueError as exc:
        console.print(f"[red]Error:[/red] invalid --from value: {escape(start)}")
        raise typer.Exit(2) from exc
    try:
        runs = list(upcoming_runs(expression, reference, count))
    except CronExpressionError as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}")
        raise typer.Exit(2) from exc
    table = Table(title=f"Next runs for {escape(repr(expression))}")
    table.add_column("#", justify="right")
    table.add_column("Fire time (UTC)")
    for index, fire_at in enumerate(runs, start=1):
        table.add_row(str(index), fire_at.isoformat())
    console.print(table)


def _print_version_and_exit() -> None:
    """Print installed package version and exit."""
    try:
        version = metadata.version("tasklane")
    except metadata.PackageNotFoundError:
        version = "unknown"
    print(f"tasklane {version}")
    raise SystemExit(0)


def main() -> None:
    """CLI entry point."""
    if "--version" in sys.argv[1:2] or "-V" in sys.argv[1:2]:
        _print_version_and_exit()
    try:
        app()
    except KeyboardInterrupt:
        sys.exit(130)
