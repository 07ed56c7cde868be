"""Main CLI application."""

import logging
import sys
from datetime import date, datetime
from pathlib import Path
from typing import NoReturn, Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from time_ledger import __version__
from time_ledger.analysis.reports import ReportGenerator, format_duration
from time_ledger.cli.config_commands import config, get_config_manager
from time_ledger.core.config import ConfigManager
from time_ledger.core.errors import ConfigurationFatalError, LedgerError
from time_ledger.core.ledger import Ledger
from time_ledger.core.models import EventKind, utc_now
from time_ledger.core.storage import LedgerStore, StorageError

console = Console()
error_console = Console(stderr=True)

logger = logging.getLogger(__name__)


def fail(message: str) -> NoReturn:
    """Print an error and exit with status 1."""
    error_console.print(f"[red]Error:[/red] {message}")
    sys.exit(1)


class LedgerContext:
    """Config, store and loaded ledger for one command invocation."""

    def __init__(self, ctx: click.Context):
        self.config: ConfigManager = get_config_manager(ctx)
        ledger_path = ctx.obj.get("ledger_path")
        try:
            resolver = self.config.resolver()
        except (ConfigurationFatalError, ValueError) as e:
            fail(str(e))
        self.store = LedgerStore(
            Path(ledger_path) if ledger_path else self.config.ledger_path, resolver
        )
        try:
            self.ledger: Ledger = self.store.load()
        except StorageError as e:
            fail(f"{self.store.path}: {e}")
        self.show_seconds = bool(self.config.get("display.show_seconds", True))
        date_format = self.config.get("general.date_format", "%Y-%m-%d")
        time_format = self.config.get("general.time_format", "%H:%M")
        self.datetime_format = f"{date_format} {time_format}"

    def save(self) -> None:
        if self.config.get("advanced.backup_on_save", False):
            self.store.backup()
        self.store.save(self.ledger)

    def reports(self) -> ReportGenerator:
        return ReportGenerator(self.ledger, console, self.show_seconds)


def get_context(ctx: click.Context) -> LedgerContext:
    return LedgerContext(ctx)


def format_local(lc: LedgerContext, instant: datetime) -> str:
    """Format an instant in the ledger's local time."""
    return lc.ledger.resolver.to_local(instant).strftime(lc.datetime_format)


def parse_instant(lc: LedgerContext, value: str) -> datetime:
    """Parse an ISO 8601 timestamp. Naive values are read as local time."""
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        raise click.BadParameter(f"Invalid timestamp: {value}. Use ISO 8601, e.g. 2026-01-01T09:00")
    if parsed.tzinfo is None:
        return lc.ledger.resolver.local_to_utc(parsed)
    return parsed


def parse_day(lc: LedgerContext, value: Optional[str]) -> date:
    """Parse YYYY-MM-DD, 'today' or 'yesterday'. Defaults to the current ledger day."""
    today = lc.ledger.resolver.day_for_timestamp(utc_now())
    if value is None or value.lower() == "today":
        return today
    if value.lower() == "yesterday":
        return date.fromordinal(today.toordinal() - 1)
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        fail("Invalid date format. Use YYYY-MM-DD, 'today', or 'yesterday'")


class LedgerGroup(click.Group):
    """Command group that reports unresolvable day boundaries as errors."""

    def invoke(self, ctx: click.Context) -> object:
        try:
            return super().invoke(ctx)
        except ConfigurationFatalError as e:
            fail(str(e))


@click.group(cls=LedgerGroup)
@click.version_option(version=__version__)
@click.option("--ledger", "ledger_path", help="Ledger file", type=click.Path(dir_okay=False))
@click.option("--config", "config_path", help="Config file", type=click.Path(dir_okay=False))
@click.option("--log-level", type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]), help="Log level")
@click.option("--no-color", is_flag=True, help="Disable colored output")
@click.pass_context
def cli(
    ctx: click.Context,
    ledger_path: Optional[str],
    config_path: Optional[str],
    log_level: Optional[str],
    no_color: bool,
) -> None:
    """Time Ledger - event-sourced personal time tracking.

    Define projects, categories and tasks, start and stop them, and get
    per-day totals rebuilt from the event log.
    """
    ctx.ensure_object(dict)
    ctx.obj["ledger_path"] = ledger_path
    ctx.obj["config_path"] = config_path

    if log_level is None and ctx.invoked_subcommand is not None:
        log_level = get_config_manager(ctx).get("advanced.log_level", "WARNING")
    logging.basicConfig(
        level=getattr(logging, log_level or "WARNING"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if no_color:
        console.no_color = True


cli.add_command(config)


@cli.command()
@click.pass_context
def init(ctx: click.Context) -> None:
    """Create an empty ledger file if none exists.

    Example:
        time-ledger --ledger work.tl init
    """
    lc = get_context(ctx)
    if lc.store.path.exists():
        console.print(f"[yellow]Ledger already exists:[/yellow] {lc.store.path}")
        return
    lc.save()
    console.print(f"[green]✓[/green] Created ledger {lc.store.path}")


@cli.command("add-project")
@click.argument("name")
@click.option("--color", help="Color tag")
@click.pass_context
def add_project(ctx: click.Context, name: str, color: Optional[str]) -> None:
    """Create a project.

    Example:
        time-ledger add-project "Client work" --color blue
    """
    lc = get_context(ctx)
    project_id = lc.ledger.add_project(name, color)
    lc.save()
    console.print(f"[green]✓[/green] Created project {project_id}")


@cli.command("add-category")
@click.argument("name")
@click.option("-d", "--description", help="Category description")
@click.pass_context
def add_category(ctx: click.Context, name: str, description: Optional[str]) -> None:
    """Create a category.

    Example:
        time-ledger add-category Meetings -d "Calls and syncs"
    """
    lc = get_context(ctx)
    category_id = lc.ledger.add_category(name, description)
    lc.save()
    console.print(f"[green]✓[/green] Created category {category_id}")


@cli.command("add-task")
@click.argument("project_id")
@click.argument("description")
@click.option("-c", "--category", "category_id", help="Category id")
@click.pass_context
def add_task(
    ctx: click.Context, project_id: str, description: str, category_id: Optional[str]
) -> None:
    """Create a task in a project.

    Example:
        time-ledger add-task Ab3dE9xZ "Write report" -c Qm81LpTr
    """
    lc = get_context(ctx)
    try:
        task_id = lc.ledger.add_task(project_id, description, category_id)
    except LedgerError as e:
        fail(str(e))
    lc.save()
    console.print(f"[green]✓[/green] Created task {task_id}")


@cli.command("archive-task")
@click.argument("task_id")
@click.option("--restore", is_flag=True, help="Unarchive instead")
@click.pass_context
def archive_task(ctx: click.Context, task_id: str, restore: bool) -> None:
    """Archive (or restore) a task. Archived tasks cannot be started."""
    lc = get_context(ctx)
    try:
        task = lc.ledger.registry.update_task(task_id, archived=not restore)
    except LedgerError as e:
        fail(str(e))
    lc.save()
    state = "Restored" if restore else "Archived"
    console.print(f"[green]✓[/green] {state} task: {task.short_description}")


@cli.command()
@click.argument("task_id")
@click.option("-n", "--note", help="Session note")
@click.pass_context
def start(ctx: click.Context, task_id: str, note: Optional[str]) -> None:
    """Start tracking a task.

    Example:
        time-ledger start Xy12Ab34 -n "deep work"
    """
    lc = get_context(ctx)
    try:
        event = lc.ledger.start_task(task_id, utc_now(), note)
    except LedgerError as e:
        fail(str(e))
    lc.save()
    console.print(f"[green]▶[/green]  Started: {lc.ledger.task_label(task_id)}")
    console.print(f"  Started: {format_local(lc, event.timestamp)}")


@cli.command()
@click.argument("task_id")
@click.option("-n", "--note", help="Note for the stop event")
@click.pass_context
def stop(ctx: click.Context, task_id: str, note: Optional[str]) -> None:
    """Stop tracking a task.

    Example:
        time-ledger stop Xy12Ab34
    """
    lc = get_context(ctx)
    now = utc_now()
    try:
        active = lc.ledger.snapshot(now).active_sessions.get(task_id)
        lc.ledger.stop_task(task_id, now, note)
    except LedgerError as e:
        fail(str(e))
    lc.save()
    console.print(f"[yellow]⏹[/yellow]  Stopped: {lc.ledger.task_label(task_id)}")
    if active is not None:
        console.print(f"  Duration: {format_duration(now - active.started_at, lc.show_seconds)}")


@cli.command()
@click.argument("task_id")
@click.option("--start", "start_at", required=True, help="Start (ISO 8601, local if no offset)")
@click.option("--stop", "stop_at", required=True, help="Stop (ISO 8601, local if no offset)")
@click.option("-n", "--note", help="Session note")
@click.pass_context
def log(
    ctx: click.Context, task_id: str, start_at: str, stop_at: str, note: Optional[str]
) -> None:
    """Record a finished session.

    Example:
        time-ledger log Xy12Ab34 --start 2026-01-05T09:00 --stop 2026-01-05T10:30
    """
    lc = get_context(ctx)
    try:
        start_time = parse_instant(lc, start_at)
        stop_time = parse_instant(lc, stop_at)
        lc.ledger.add_manual_session(task_id, start_time, stop_time, note)
    except LedgerError as e:
        fail(str(e))
    lc.save()
    console.print(f"[green]✓[/green] Recorded session for {lc.ledger.task_label(task_id)}")
    console.print(f"  Duration: {format_duration(stop_time - start_time, lc.show_seconds)}")


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show running tasks."""
    lc = get_context(ctx)
    now = utc_now()
    snapshot = lc.ledger.snapshot(now)

    if not snapshot.active_sessions:
        console.print("[yellow]No task currently being tracked[/yellow]")
        return

    lines = []
    for task_id, active in sorted(snapshot.active_sessions.items(), key=lambda i: i[1].started_at):
        line = (
            f"[bold]{lc.ledger.task_label(task_id)}[/bold] [dim]({task_id})[/dim]\n"
            f"[dim]Started:[/dim] {format_local(lc, active.started_at)}  "
            f"[dim]Duration:[/dim] {format_duration(now - active.started_at, lc.show_seconds)}"
        )
        if active.note:
            line += f"\n[dim]Note:[/dim] {active.note}"
        lines.append(line)

    console.print(Panel("\n\n".join(lines), title="Currently Tracking", border_style="green"))


@cli.command()
@click.option("--all", "show_all", is_flag=True, help="Include archived tasks")
@click.pass_context
def tasks(ctx: click.Context, show_all: bool) -> None:
    """List tasks."""
    lc = get_context(ctx)
    registry = lc.ledger.registry
    rows = registry.tasks if show_all else registry.active_tasks()

    if not rows:
        console.print("[yellow]No tasks yet[/yellow]")
        return

    table = Table(title="Tasks")
    table.add_column("ID", style="dim")
    table.add_column("Project", style="blue")
    table.add_column("Category", style="green")
    table.add_column("Task", style="bold")
    for task in rows:
        project = registry.project(task.project_id)
        category = registry.category(task.category_id) if task.category_id else None
        title = task.short_description + (" [dim](archived)[/dim]" if task.archived else "")
        table.add_row(
            task.id,
            project.name if project else "Unknown project",
            category.name if category else "Uncategorized",
            title,
        )
    console.print(table)


@cli.command()
@click.pass_context
def projects(ctx: click.Context) -> None:
    """List projects."""
    lc = get_context(ctx)
    if not lc.ledger.registry.projects:
        console.print("[yellow]No projects yet[/yellow]")
        return

    table = Table(title="Projects")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="bold")
    table.add_column("Color", style="cyan")
    table.add_column("Tasks", justify="right")
    for project in lc.ledger.registry.projects:
        name = project.name + (" [dim](archived)[/dim]" if project.archived else "")
        count = len(lc.ledger.registry.tasks_for_project(project.id))
        table.add_row(project.id, name, project.color or "-", str(count))
    console.print(table)


@cli.command()
@click.pass_context
def categories(ctx: click.Context) -> None:
    """List categories."""
    lc = get_context(ctx)
    if not lc.ledger.registry.categories:
        console.print("[yellow]No categories yet[/yellow]")
        return

    table = Table(title="Categories")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="bold")
    table.add_column("Description")
    for category in lc.ledger.registry.categories:
        name = category.name + (" [dim](archived)[/dim]" if category.archived else "")
        table.add_row(category.id, name, category.description or "-")
    console.print(table)


@cli.command()
@click.option("-d", "--day", help="Day (YYYY-MM-DD, 'today', 'yesterday')")
@click.pass_context
def summary(ctx: click.Context, day: Optional[str]) -> None:
    """Totals for a day by task, project and category."""
    lc = get_context(ctx)
    lc.reports().summary_report(lc.ledger.snapshot(utc_now()), parse_day(lc, day))


@cli.command()
@click.option("-d", "--day", help="Any day of the week (YYYY-MM-DD)")
@click.pass_context
def week(ctx: click.Context, day: Optional[str]) -> None:
    """Statistics for the week containing a day."""
    lc = get_context(ctx)
    lc.reports().week_report(lc.ledger.snapshot(utc_now()), parse_day(lc, day))


@cli.command()
@click.option("-d", "--day", help="Day (YYYY-MM-DD, 'today', 'yesterday')")
@click.pass_context
def day(ctx: click.Context, day: Optional[str]) -> None:
    """Sessions of one day, with the event positions used by retime/delete."""
    lc = get_context(ctx)
    lc.reports().day_report(lc.ledger.sessions(utc_now()), parse_day(lc, day))


@cli.command()
@click.option(
    "-n",
    "--limit",
    type=click.IntRange(min=1),
    help="Number of events to show (default: display.recent_limit)",
)
@click.pass_context
def events(ctx: click.Context, limit: Optional[int]) -> None:
    """Show the most recent events of the log."""
    lc = get_context(ctx)
    if limit is None:
        limit = int(lc.config.get("display.recent_limit", 20))
    log_events = list(enumerate(lc.ledger.events))
    if not log_events:
        console.print("[yellow]No events yet[/yellow]")
        return

    table = Table(title=f"Events (last {min(limit, len(log_events))} of {len(log_events)})")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Time", style="cyan")
    table.add_column("Type", style="magenta")
    table.add_column("Task", style="bold")
    table.add_column("Note")
    for index, event in log_events[-limit:]:
        table.add_row(
            str(index),
            format_local(lc, event.timestamp),
            event.kind.value,
            lc.ledger.task_label(event.task_id),
            event.note or "",
        )
    console.print(table)


def retime(ctx: click.Context, index: int, clock: str, kind: EventKind) -> None:
    """Move the event at ``index`` to HHMM on its own local date."""
    if len(clock) != 4 or not clock.isdigit():
        fail(f"invalid time '{clock}', expected HHMM")

    lc = get_context(ctx)
    try:
        event = lc.ledger.events.get(index, kind)
        base_date = lc.ledger.resolver.to_local(event.timestamp).date()
        target = lc.ledger.resolver.local_clock_on_date_to_utc(
            base_date, int(clock[:2]), int(clock[2:])
        )
        if kind is EventKind.START:
            updated = lc.ledger.retime_start(index, target, utc_now())
        else:
            updated = lc.ledger.retime_stop(index, target, utc_now())
    except LedgerError as e:
        fail(str(e))
    lc.save()
    console.print(f"[green]✓[/green] Updated {updated.kind.value} to {format_local(lc, updated.timestamp)}")


@cli.command("retime-start")
@click.argument("index", type=int)
@click.argument("clock")
@click.pass_context
def retime_start(ctx: click.Context, index: int, clock: str) -> None:
    """Move a start event to HHMM on the same local date.

    INDEX is the event position shown by 'day' or 'events'.

    Example:
        time-ledger retime-start 12 0915
    """
    retime(ctx, index, clock, EventKind.START)


@cli.command("retime-stop")
@click.argument("index", type=int)
@click.argument("clock")
@click.pass_context
def retime_stop(ctx: click.Context, index: int, clock: str) -> None:
    """Move a stop event to HHMM on the same local date.

    Example:
        time-ledger retime-stop 13 1745
    """
    retime(ctx, index, clock, EventKind.STOP)


@cli.command("delete-interval")
@click.argument("start_index", type=int)
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
@click.pass_context
def delete_interval(ctx: click.Context, start_index: int, yes: bool) -> None:
    """Delete an interval by the position of its start event."""
    lc = get_context(ctx)
    try:
        event = lc.ledger.events.get(start_index)
    except LedgerError as e:
        fail(str(e))

    if not yes and not click.confirm(f"Delete interval of {lc.ledger.task_label(event.task_id)}?"):
        console.print("Cancelled")
        return

    try:
        removed = lc.ledger.delete_interval(start_index)
    except LedgerError as e:
        fail(str(e))
    lc.save()
    console.print(
        f"[green]✓[/green] Deleted interval: {lc.ledger.task_label(event.task_id)} "
        f"({len(removed)} events)"
    )


if __name__ == "__main__":
    cli(obj={})
