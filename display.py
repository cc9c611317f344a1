import os
from typing import List, Optional

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text
from rich.theme import Theme

from config import TEST_TYPE_DISPLAY, BenchmarkConfig
from models import (
    Badge,
    LeaderboardEntry,
    PendingSubmission,
    ProgressSnapshot,
    SyncResult,
    TestRecord,
    UserProfile,
    VideoUploadResult,
)
from progress import level_progress

custom_theme = Theme({
    "done": "bold green",
    "error": "bold red",
    "pending": "dim",
    "excellent": "bold green",
    "good": "bold yellow",
    "average": "bold red",
    "warning": "bold yellow",
    "info": "bold cyan",
    "header": "bold magenta",
})

console = Console(theme=custom_theme)

BENCHMARK_STYLES = {"Excellent": "excellent", "Good": "good", "Average": "average"}


# ---------------------------------------------------------------------------
# General UI
# ---------------------------------------------------------------------------

def clear_screen() -> None:
    os.system("cls" if os.name == "nt" else "clear")


def show_banner() -> None:
    banner = Text()
    banner.append("  FitTrack Assessment  ", style="bold white on blue")
    console.print()
    console.print(Align.center(banner))
    console.print(Align.center(Text("Test, track and level up", style="dim")))
    console.print()


def show_menu(title: str, options: List[str]) -> int:
    """Show a numbered menu and return 1-indexed selection."""
    console.print(Rule(title, style="header"))
    console.print()
    for i, option in enumerate(options, 1):
        console.print(f"  [bold cyan]{i}.[/bold cyan] {option}")
    console.print()

    while True:
        try:
            raw = console.input("[bold]Choose an option: [/bold]").strip()
            choice = int(raw)
            if 1 <= choice <= len(options):
                return choice
            console.print(f"  Please enter a number between 1 and {len(options)}.", style="error")
        except (ValueError, EOFError):
            console.print(f"  Please enter a number between 1 and {len(options)}.", style="error")


def show_error(message: str) -> None:
    console.print(f"  [error]Error:[/error] {message}")


def show_success(message: str) -> None:
    console.print(f"  [done]{message}[/done]")


def show_info(message: str) -> None:
    console.print(f"  [info]{message}[/info]")


def show_warning(message: str) -> None:
    console.print(f"  [warning]Warning:[/warning] {message}")


def confirm(prompt: str) -> bool:
    while True:
        raw = console.input(f"  {prompt} [bold](y/n)[/bold]: ").strip().lower()
        if raw in ("y", "yes"):
            return True
        if raw in ("n", "no"):
            return False
        console.print("  Please enter y or n.", style="dim")


def prompt_text(prompt: str, default: str = "") -> str:
    suffix = f" [{default}]" if default else ""
    raw = console.input(f"  {prompt}{suffix}: ").strip()
    return raw if raw else default


def prompt_int(prompt: str, min_val: int = 0, max_val: int = 100) -> int:
    while True:
        try:
            raw = console.input(f"  {prompt} ({min_val}-{max_val}): ").strip()
            val = int(raw)
            if min_val <= val <= max_val:
                return val
            console.print(f"  Please enter a number between {min_val} and {max_val}.", style="error")
        except (ValueError, EOFError):
            console.print("  Please enter a valid number.", style="error")


def prompt_float(prompt: str, min_val: float = 0.0) -> float:
    while True:
        try:
            val = float(console.input(f"  {prompt}: ").strip())
            if val >= min_val:
                return val
            console.print(f"  Please enter a number of at least {min_val:g}.", style="error")
        except (ValueError, EOFError):
            console.print("  Please enter a valid number.", style="error")


def press_enter_to_continue() -> None:
    try:
        console.input("  [dim]Press Enter to continue...[/dim]")
    except EOFError:
        pass


# ---------------------------------------------------------------------------
# Test results
# ---------------------------------------------------------------------------

def show_test_intro(test_type: str, benchmarks: BenchmarkConfig) -> None:
    name = TEST_TYPE_DISPLAY.get(test_type, test_type.title())
    console.print()
    console.print(Panel(
        f"[bold]{name}[/bold]\n\n"
        f"Excellent: {benchmarks.excellent:g} {benchmarks.unit}\n"
        f"Good: {benchmarks.good:g} {benchmarks.unit}\n"
        f"Average: {benchmarks.average:g} {benchmarks.unit}",
        border_style="blue",
        padding=(1, 2),
        title="Benchmarks",
    ))
    console.print()


def show_result(record: TestRecord, message: str) -> None:
    name = TEST_TYPE_DISPLAY.get(record.test_type.value, record.test_type.value)
    style = BENCHMARK_STYLES.get(record.benchmark.value, "info")
    console.print()
    console.print(Panel(
        f"[bold]{name}[/bold]\n\n"
        f"Score: {record.score:g} {record.unit or ''}\n"
        f"Rating: [{style}]{record.benchmark.value}[/{style}]\n\n"
        f"{message}",
        border_style="green",
        padding=(1, 2),
        title="Result",
    ))


def show_new_badges(badges: List[Badge]) -> None:
    for badge in badges:
        console.print(Panel(
            f"[bold]{badge.name}[/bold]\n{badge.description}",
            border_style="magenta",
            padding=(0, 2),
            title="Badge Earned!",
        ))


def show_history(records: List[TestRecord]) -> None:
    """Table of logged results, newest first."""
    if not records:
        console.print("  No tests recorded yet.")
        return

    table = Table(show_header=True, border_style="dim", padding=(0, 1))
    table.add_column("Date", style="dim", width=12)
    table.add_column("Test", style="bold")
    table.add_column("Score", justify="right")
    table.add_column("Rating")
    table.add_column("Synced")

    for r in reversed(records):
        style = BENCHMARK_STYLES.get(r.benchmark.value, "info")
        table.add_row(
            r.date.date().isoformat(),
            TEST_TYPE_DISPLAY.get(r.test_type.value, r.test_type.value),
            f"{r.score:g}",
            f"[{style}]{r.benchmark.value}[/{style}]",
            "[done]yes[/done]" if r.submitted else "[pending]pending[/pending]",
        )

    console.print(table)


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------

def show_progress_dashboard(
    profile: Optional[UserProfile],
    snapshot: ProgressSnapshot,
    badges: List[Badge],
    insights: List[str],
) -> None:
    """Render level, badges and insights."""
    title = f"Progress - {profile.name}" if profile and profile.name else "Progress"
    console.print()
    console.print(Rule(title, style="header"))
    console.print()

    bar_width = 30
    filled = int(level_progress(snapshot) * bar_width)
    console.print(f"  Level {snapshot.level}  ({snapshot.xp}/{snapshot.next_level_xp} XP)")
    console.print(Text("  " + "█" * filled + "░" * (bar_width - filled), style="green"))
    console.print(f"  Tests Taken: {snapshot.total_tests}   Average Score: {snapshot.average_score}")
    console.print()

    console.print(Rule("Badges", style="dim"))
    show_badges(badges)
    console.print()

    console.print(Rule("Insights", style="dim"))
    for insight in insights:
        console.print(f"  - {insight}")
    console.print()
    console.print(Rule(style="dim"))


def show_badges(badges: List[Badge]) -> None:
    table = Table(show_header=True, border_style="dim", padding=(0, 1))
    table.add_column("Badge", style="bold")
    table.add_column("Description")
    table.add_column("Earned")

    for b in badges:
        earned = (
            f"[done]{b.earned_date.date().isoformat()}[/done]"
            if b.earned and b.earned_date else
            ("[done]yes[/done]" if b.earned else "[pending]-[/pending]")
        )
        table.add_row(b.name, b.description, earned)

    console.print(table)


def show_sync_result(result: SyncResult) -> None:
    if result.success:
        show_success(f"Synced {result.synced_count} result(s).")
        return
    if result.synced_count:
        show_info(f"Synced {result.synced_count} result(s).")
    for error in result.errors:
        show_warning(error)


# ---------------------------------------------------------------------------
# Leaderboard / saved results
# ---------------------------------------------------------------------------

MEDAL_STYLES = {"gold": "bold yellow", "silver": "bold white", "bronze": "bold red"}


def show_leaderboard(entries: List[LeaderboardEntry], title: str = "Leaderboard") -> None:
    console.print()
    console.print(Rule(title, style="header"))
    if not entries:
        console.print("  No rankings available.")
        return

    table = Table(show_header=True, border_style="dim", padding=(0, 1))
    table.add_column("Rank", justify="right")
    table.add_column("Athlete", style="bold")
    table.add_column("Region", style="dim")
    table.add_column("Score", justify="right")

    for e in entries:
        style = MEDAL_STYLES.get(e.medal)
        rank = f"[{style}]{e.rank}[/{style}]" if style else str(e.rank)
        table.add_row(rank, e.name, e.region, f"{e.score:g}")

    console.print(table)


def describe_pending(pending: PendingSubmission) -> str:
    """One-line label for a saved result in a menu."""
    r = pending.record
    name = TEST_TYPE_DISPLAY.get(r.test_type.value, r.test_type.value)
    error = f" - last error: {pending.last_error}" if pending.last_error else ""
    return (
        f"{name} {r.score:g} {r.unit or ''} ({r.date.date().isoformat()}), "
        f"{pending.attempts} attempt(s){error}"
    )


def show_video_upload(result: VideoUploadResult) -> None:
    if result.success:
        show_success(f"Video uploaded: {result.video_url}")
    else:
        show_warning(result.error or "Video upload failed.")
