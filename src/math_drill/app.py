"""Interactive CLI application."""
import time
from pathlib import Path

from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, IntPrompt, Prompt
from rich.table import Table

from math_drill.db import DEFAULT_DB_PATH, init_db
from math_drill.history import (
    get_mistakes, get_overall_accuracy, get_recent_sessions, get_total_sessions_played,
    record_session,
)
from math_drill.mastery import (
    get_error_prone_operands, get_mastery_grid, get_weakest_operands, mastery_color,
)
from math_drill.models import DrillSettings, Family, SessionStats
from math_drill.scheduler import Scheduler
from math_drill.settings import (
    apply_preset, apply_simplified_defaults, load_settings, normalize_settings, save_settings,
)
from math_drill.weights import SqliteWeightStore, clear_weights

console = Console()

EXIT_WORDS = ("q", "menu")


class SessionExitRequested(Exception):
    """Raised when the learner leaves a drill before the timer runs out."""


def session_prompt(prompt: str, **kwargs) -> str:
    answer = Prompt.ask(prompt, **kwargs)
    if answer.strip().lower() in EXIT_WORDS:
        raise SessionExitRequested()
    return answer


def configure_logging(db_path: str) -> None:
    logger.remove()
    logger.add(
        str(Path(db_path).parent / "drill.log"),
        level="DEBUG",
        rotation="1 MB",
        retention=3,
    )


def show_welcome():
    console.print(Panel(
        "[bold]Math Drill[/bold]\n[dim]Timed arithmetic practice that adapts to you[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu(settings: DrillSettings):
    profile = "simplified" if settings.profile_is_simplified else "standard"
    console.print(
        f"\n[dim]{settings.family.value.title()} | {describe_ranges(settings)} | "
        f"{settings.duration_seconds}s | adaptive {'on' if settings.adaptive_weighting_enabled else 'off'} "
        f"| {profile} profile[/dim]"
    )
    console.print("[bold]Commands:[/bold]")
    commands = [
        ("practice", "Start a timed drill"),
        ("settings", "Change family, ranges and duration"),
        ("preset", "Apply Class 2 ranges for this family"),
        ("simplified", "Toggle the simplified profile"),
        ("stats", "Mastery grid + progress"),
        ("history", "Recent sessions"),
        ("study", "Squares reference table"),
        ("reset", "Forget learned weights"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def describe_ranges(settings: DrillSettings) -> str:
    if settings.family is Family.SQUARES:
        return f"base {settings.min}-{settings.max}"
    if settings.family is Family.DIVISION:
        return f"quotient {settings.min}-{settings.max}, divisor {settings.min2}-{settings.max2}"
    return f"{settings.min}-{settings.max} and {settings.min2}-{settings.max2}"


def run_drill_session(db_path: str, settings: DrillSettings, rng=None, clock=time.monotonic) -> SessionStats:
    """Run one timed drill. Raises SessionExitRequested if abandoned.

    Weights are flushed either way; only completed sessions are recorded.
    """
    store = SqliteWeightStore(db_path)
    with Scheduler(settings, store, rng=rng, clock=lambda: int(clock() * 1000)) as scheduler:
        last_tick = clock()
        while not scheduler.is_finished:
            question = scheduler.current_question
            marker = "\n[yellow]Reviewing a mistake[/yellow]" if question.is_retry else ""
            console.print(Panel(
                f"[bold]{question.text()}[/bold]{marker}",
                title=f"{scheduler.state.remaining_seconds}s left",
                subtitle=f"score {scheduler.state.score}",
                border_style="cyan",
            ))
            answer = session_prompt("=")
            elapsed = int(clock() - last_tick)
            if elapsed:
                scheduler.tick(elapsed)
                last_tick += elapsed
            if scheduler.is_finished:
                console.print("[yellow]Time's up![/yellow]")
                break
            record = scheduler.submit_answer(answer)
            if record.correct:
                streak = scheduler.state.streak
                console.print("[green]Correct![/green]" + (f" [dim]streak {streak}[/dim]" if streak > 2 else ""))
            else:
                console.print(f"[red]Incorrect.[/red] Answer: [green]{record.question.correct_answer}[/green]")
        stats = scheduler.finish()
    record_session(db_path, stats, settings)
    show_results(stats, scheduler.state.weights)
    return stats


def show_results(stats: SessionStats, weights: dict = None):
    console.print(Panel(
        f"Score: [bold]{stats.score}[/bold]  |  "
        f"Correct: [bold]{stats.correct}/{stats.total_questions}[/bold]  |  "
        f"Accuracy: [bold]{stats.accuracy}%[/bold]",
        title="Session Complete", border_style="green",
    ))
    if weights:
        focus = ", ".join(str(value) for value, w in get_weakest_operands(weights, limit=3) if w > 1.0)
        if focus:
            console.print(f"[yellow]Focus next time on: {focus}[/yellow]")
    mistakes = get_mistakes(stats)
    if not mistakes:
        return
    table = Table(title="Mistakes")
    table.add_column("Question")
    table.add_column("Your answer", justify="right")
    table.add_column("Correct", justify="right")
    table.add_column("Time", justify="right")
    for record in mistakes:
        table.add_row(
            record.question.text(),
            f"[red]{record.submitted_answer}[/red]",
            f"[green]{record.question.correct_answer}[/green]",
            f"{record.elapsed_ms / 1000:.1f}s",
        )
    console.print(table)


def cmd_settings(settings: DrillSettings) -> DrillSettings:
    family = Prompt.ask(
        "Family",
        choices=[f.value.lower() for f in Family],
        default=settings.family.value.lower(),
    )
    family = Family(family.upper())
    first_label = {Family.SQUARES: "Base", Family.DIVISION: "Quotient"}.get(family, "First number")
    low = IntPrompt.ask(f"{first_label} min", default=settings.min)
    high = IntPrompt.ask(f"{first_label} max", default=settings.max)
    low2, high2 = settings.min2, settings.max2
    if not family.is_unary:
        second_label = "Divisor" if family is Family.DIVISION else "Second number"
        low2 = IntPrompt.ask(f"{second_label} min", default=settings.min2)
        high2 = IntPrompt.ask(f"{second_label} max", default=settings.max2)
    duration = IntPrompt.ask("Duration (seconds)", default=settings.duration_seconds)
    adaptive = Confirm.ask("Adaptive weighting", default=settings.adaptive_weighting_enabled)
    return normalize_settings(DrillSettings(
        family=family,
        min=low,
        max=high,
        min2=low2,
        max2=high2,
        duration_seconds=duration,
        adaptive_weighting_enabled=adaptive,
        profile_is_simplified=settings.profile_is_simplified,
        swap_subtraction_when_simplified=settings.swap_subtraction_when_simplified,
    ))


def cmd_stats(db_path: str, settings: DrillSettings):
    played = get_total_sessions_played(db_path)
    accuracy = get_overall_accuracy(db_path)
    console.print(f"\n  Sessions: [bold]{played}[/bold]  |  Overall accuracy: [bold]{accuracy}%[/bold]\n")
    family = Family(Prompt.ask(
        "Family",
        choices=[f.value.lower() for f in Family],
        default=settings.family.value.lower(),
    ).upper())
    grid = get_mastery_grid(db_path, family, settings.profile)
    table = Table(title=f"{family.value.title()} mastery ({settings.profile})")
    table.add_column("Operand", justify="right")
    table.add_column("Weight", justify="right")
    table.add_column("Status")
    for cell in grid:
        color = mastery_color(cell["label"])
        weight = "-" if cell["weight"] is None else f"{cell['weight']:.1f}"
        table.add_row(str(cell["operand"]), weight, f"[{color}]{cell['label']}[/{color}]")
    console.print(table)
    weak = get_error_prone_operands(db_path, family)
    if weak:
        console.print("\n[bold]Most missed:[/bold]")
        for w in weak[:5]:
            console.print(f"  [red]{w['error_rate']}% errors[/red] on {w['operand']} ({w['total']} asked)")


def cmd_history(db_path: str):
    sessions = get_recent_sessions(db_path)
    if not sessions:
        console.print("[yellow]No sessions yet. Try 'practice'.[/yellow]")
        return
    table = Table(title="Recent Sessions")
    table.add_column("When")
    table.add_column("Family")
    table.add_column("Score", justify="right")
    table.add_column("Correct", justify="right")
    for s in sessions:
        table.add_row(
            s.played_at[:16].replace("T", " "),
            s.family.value.title() + (" (simplified)" if s.is_simplified else ""),
            str(s.score),
            f"{s.correct}/{s.total}",
        )
    console.print(table)


def cmd_study():
    table = Table(title="Squares Reference")
    table.add_column("n", justify="right")
    table.add_column("n²", justify="right")
    for n in range(1, 51):
        table.add_row(str(n), str(n * n))
    console.print(table)


def cmd_reset(db_path: str):
    if Confirm.ask("Forget all learned weights?", default=False):
        clear_weights(db_path)
        console.print("[green]Progress cleared.[/green]")


def main():
    db_path = DEFAULT_DB_PATH
    init_db(db_path)
    configure_logging(db_path)
    settings = load_settings(db_path)

    show_welcome()

    while True:
        show_menu(settings)
        choice = Prompt.ask("\n[bold]>[/bold]", default="practice").strip().lower()
        try:
            if choice == "practice":
                run_drill_session(db_path, settings)
            elif choice == "settings":
                settings = cmd_settings(settings)
                save_settings(db_path, settings)
            elif choice == "preset":
                settings = apply_preset(settings)
                save_settings(db_path, settings)
            elif choice == "simplified":
                settings = apply_simplified_defaults(settings, not settings.profile_is_simplified)
                save_settings(db_path, settings)
            elif choice == "stats":
                cmd_stats(db_path, settings)
            elif choice == "history":
                cmd_history(db_path)
            elif choice == "study":
                cmd_study()
            elif choice == "reset":
                cmd_reset(db_path)
            elif choice in ("quit", "exit", "q"):
                console.print("[dim]Keep practising![/dim]")
                break
            else:
                console.print("[red]Unknown command. Try again.[/red]")
        except SessionExitRequested:
            console.print("[dim]Session abandoned. Progress saved.[/dim]")
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except Exception as e:
            logger.exception("Command failed")
            console.print(f"[red]Error: {e}[/red]")


if __name__ == "__main__":
    main()
