"""Summaries of tracked time built from ledger snapshots."""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Optional

from rich.console import Console  # type: ignore[import-not-found]
from rich.table import Table  # type: ignore[import-not-found]

from time_ledger.core.days import DayBoundaryResolver, week_start
from time_ledger.core.ledger import Ledger
from time_ledger.core.models import LedgerSnapshot, Session

UNKNOWN_PROJECT = "Unknown project"
UNCATEGORIZED = "Uncategorized"


def format_duration(duration: timedelta, show_seconds: bool = True) -> str:
    """Format a duration as HH:MM:SS (or HH:MM). Negative values show as zero."""
    total_seconds = max(0, int(duration.total_seconds()))
    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    seconds = total_seconds % 60
    if not show_seconds:
        return f"{hours:02d}:{minutes:02d}"
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def _sorted_by_duration(totals: dict[str, timedelta]) -> list[tuple[str, timedelta]]:
    return sorted(totals.items(), key=lambda item: (-item[1], item[0]))


@dataclass
class DaySummary:
    """Tracked time on one ledger day, broken down three ways."""

    day: date
    by_task: list[tuple[str, timedelta]] = field(default_factory=list)
    by_project: list[tuple[str, timedelta]] = field(default_factory=list)
    by_category: list[tuple[str, timedelta]] = field(default_factory=list)

    @property
    def total(self) -> timedelta:
        return sum((d for _, d in self.by_task), timedelta())


@dataclass
class WeekStats:
    """Monday-to-Sunday statistics for the week containing a day."""

    week_start: date
    daily: list[tuple[date, timedelta]]
    total: timedelta
    avg_per_day: timedelta
    max_day: timedelta
    active_days: int
    project_totals: dict[str, timedelta]
    top_projects: list[tuple[str, timedelta]]


@dataclass
class DayRow:
    """A session as shown on one day, clipped to the day's bounds."""

    session: Session
    title: str
    project_name: str
    display_start: datetime
    display_stop: datetime

    @property
    def duration(self) -> timedelta:
        return self.display_stop - self.display_start


def project_name_for_task(ledger: Ledger, task_id: str) -> str:
    task = ledger.task(task_id)
    project = ledger.project(task.project_id) if task else None
    return project.name if project else UNKNOWN_PROJECT


def category_name_for_task(ledger: Ledger, task_id: str) -> str:
    task = ledger.task(task_id)
    category = ledger.category(task.category_id) if task and task.category_id else None
    return category.name if category else UNCATEGORIZED


def day_summary(ledger: Ledger, snapshot: LedgerSnapshot, day: date) -> DaySummary:
    """Totals for a day by task, project name and category name.

    Each list is sorted longest first, ties by name (or task id).
    """
    by_task = snapshot.totals_for_day(day)
    by_project: dict[str, timedelta] = defaultdict(timedelta)
    by_category: dict[str, timedelta] = defaultdict(timedelta)

    for task_id, duration in by_task:
        by_project[project_name_for_task(ledger, task_id)] += duration
        by_category[category_name_for_task(ledger, task_id)] += duration

    return DaySummary(
        day=day,
        by_task=by_task,
        by_project=_sorted_by_duration(by_project),
        by_category=_sorted_by_duration(by_category),
    )


def week_stats(ledger: Ledger, snapshot: LedgerSnapshot, day: date) -> WeekStats:
    """Statistics for the Monday-based week containing ``day``."""
    start = week_start(day)
    daily = []
    total = timedelta()
    max_day = timedelta()
    active_days = 0
    project_totals: dict[str, timedelta] = defaultdict(timedelta)

    for offset in range(7):
        current = start + timedelta(days=offset)
        durations = snapshot.daily_task_totals.get(current, {})
        day_total = sum(durations.values(), timedelta())

        if day_total > timedelta():
            active_days += 1
        max_day = max(max_day, day_total)
        total += day_total
        daily.append((current, day_total))

        for task_id, duration in durations.items():
            task = ledger.task(task_id)
            project_totals[task.project_id if task else ""] += duration

    top_projects = []
    for project_id, duration in project_totals.items():
        project = ledger.project(project_id)
        top_projects.append((project.name if project else UNKNOWN_PROJECT, duration))
    top_projects.sort(key=lambda item: (-item[1], item[0]))

    return WeekStats(
        week_start=start,
        daily=daily,
        total=total,
        avg_per_day=timedelta(seconds=int(total.total_seconds()) // 7),
        max_day=max_day,
        active_days=active_days,
        project_totals=dict(project_totals),
        top_projects=top_projects,
    )


def day_rows(
    ledger: Ledger,
    sessions: list[Session],
    resolver: DayBoundaryResolver,
    day: date,
) -> list[DayRow]:
    """Sessions overlapping a day, clipped to it, in display order."""
    day_start, day_end = resolver.day_bounds_utc(day)
    rows = []
    for session in sessions:
        display_start = max(session.start, day_start)
        display_stop = min(session.stop, day_end)
        if display_stop <= display_start:
            continue
        rows.append(
            DayRow(
                session=session,
                title=ledger.task_label(session.task_id),
                project_name=project_name_for_task(ledger, session.task_id),
                display_start=display_start,
                display_stop=display_stop,
            )
        )

    rows.sort(key=lambda r: (r.display_start, r.display_stop, r.title))
    return rows


class ReportGenerator:
    """Render summaries to a rich console."""

    def __init__(
        self,
        ledger: Ledger,
        console: Optional[Console] = None,
        show_seconds: bool = True,
    ):
        """Initialize report generator.

        Args:
            ledger: Ledger the reports describe
            console: Rich console for output. Creates default if None.
            show_seconds: Include seconds in durations
        """
        self.ledger = ledger
        self.console = console or Console()
        self.show_seconds = show_seconds

    def _fmt(self, duration: timedelta) -> str:
        return format_duration(duration, self.show_seconds)

    def _local(self, instant: datetime) -> str:
        return self.ledger.resolver.to_local(instant).strftime("%H:%M")

    def summary_report(self, snapshot: LedgerSnapshot, day: date) -> None:
        """Print a day's totals by task, project and category."""
        summary = day_summary(self.ledger, snapshot, day)
        self.console.print(f"\n[bold cyan]Summary for {day:%Y-%m-%d}[/bold cyan]\n")

        if not summary.by_task:
            self.console.print("[yellow]No tracked sessions for this day[/yellow]")
            return

        task_table = Table(title="By Task")
        task_table.add_column("Duration", style="magenta", justify="right")
        task_table.add_column("Task ID", style="dim")
        task_table.add_column("Task", style="bold")
        for task_id, duration in summary.by_task:
            task = self.ledger.task(task_id)
            title = task.short_description if task else "Unknown task"
            task_table.add_row(self._fmt(duration), task_id, title)
        self.console.print(task_table)

        for title, rows in (("By Project", summary.by_project), ("By Category", summary.by_category)):
            table = Table(title=title)
            table.add_column("Duration", style="magenta", justify="right")
            table.add_column("Name", style="cyan")
            for name, duration in rows:
                table.add_row(self._fmt(duration), name)
            self.console.print(table)

        self.console.print(f"[dim]Total:[/dim] [bold]{self._fmt(summary.total)}[/bold]")

    def week_report(self, snapshot: LedgerSnapshot, day: date) -> None:
        """Print statistics for the week containing ``day``."""
        stats = week_stats(self.ledger, snapshot, day)

        daily_table = Table(title=f"Week of {stats.week_start:%Y-%m-%d}")
        daily_table.add_column("Day", style="cyan")
        daily_table.add_column("Duration", style="magenta", justify="right")
        for current, duration in stats.daily:
            daily_table.add_row(current.strftime("%a %Y-%m-%d"), self._fmt(duration))
        self.console.print(daily_table)

        overview = Table(show_header=False, box=None, padding=(0, 2))
        overview.add_column(style="dim")
        overview.add_column(style="bold")
        overview.add_row("Total:", self._fmt(stats.total))
        overview.add_row("Average/day:", self._fmt(stats.avg_per_day))
        overview.add_row("Busiest day:", self._fmt(stats.max_day))
        overview.add_row("Active days:", str(stats.active_days))
        self.console.print(overview)

        if stats.top_projects:
            project_table = Table(title="Top Projects")
            project_table.add_column("Project", style="cyan")
            project_table.add_column("Duration", style="magenta", justify="right")
            for name, duration in stats.top_projects:
                project_table.add_row(name, self._fmt(duration))
            self.console.print(project_table)

    def day_report(self, sessions: list[Session], day: date) -> None:
        """Print the sessions of one day with their event positions."""
        rows = day_rows(self.ledger, sessions, self.ledger.resolver, day)
        if not rows:
            self.console.print("[yellow]No sessions on this day[/yellow]")
            return

        table = Table(title=f"Sessions on {day:%Y-%m-%d}")
        table.add_column("Start", style="cyan")
        table.add_column("End", style="cyan")
        table.add_column("Duration", style="magenta", justify="right")
        table.add_column("Task", style="bold")
        table.add_column("Project", style="blue")
        table.add_column("Events", style="dim")

        total = timedelta()
        for row in rows:
            session = row.session
            running = session.is_running and row.display_stop == session.stop
            end = "running" if running else self._local(row.display_stop)
            stop_index = "-" if session.stop_index is None else str(session.stop_index)
            table.add_row(
                self._local(row.display_start),
                end,
                self._fmt(row.duration),
                row.title,
                row.project_name,
                f"{session.start_index}/{stop_index}",
            )
            total += row.duration

        self.console.print(table)
        self.console.print(f"[dim]Total:[/dim] [bold]{self._fmt(total)}[/bold]")
