"""Interactive CLI application."""
import logging

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from wk_tutor.api import WaniKaniAPI
from wk_tutor.config import Settings, get_settings
from wk_tutor.dashboard import fetch_dashboard, get_stage_color, review_accuracy
from wk_tutor.db import init_db
from wk_tutor.errors import NetworkError
from wk_tutor.lessons import LessonSession, LessonState
from wk_tutor.reviews import QuestionType, ReviewSession, ReviewState
from wk_tutor.store import get_last_sync
from wk_tutor.sync import SyncCoordinator, SyncProgress, SyncStage

console = Console()
logger = logging.getLogger(__name__)

EXIT_WORDS = ("q", "menu")


class SessionExitRequested(Exception):
    """Raised when the user leaves a review or lesson session early."""


def session_prompt(text: str, **kwargs) -> str:
    answer = Prompt.ask(text, **kwargs)
    if answer.strip().lower() in EXIT_WORDS:
        raise SessionExitRequested()
    return answer


def show_welcome():
    console.print(Panel(
        "[bold]WaniKani Tutor[/bold]\n[dim]Lessons and reviews from the terminal[/dim]",
        title="Welcome", border_style="magenta",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("sync", "Download your latest WaniKani data"),
        ("reviews", "Review items that are due"),
        ("lessons", "Learn new items"),
        ("dashboard", "Counts and SRS progress"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def _question_label(question_type: QuestionType) -> str:
    if question_type == QuestionType.MEANING:
        return "[blue]Meaning[/blue]"
    return "[magenta]Reading[/magenta]"


def print_sync_progress(event: SyncProgress) -> None:
    if event.stage == SyncStage.STARTING:
        console.print("[dim]Starting sync...[/dim]")
    elif event.stage == SyncStage.SYNCING_USER:
        console.print("  Syncing user")
    elif event.stage == SyncStage.SYNCING_SUBJECTS:
        console.print(f"  Synced [bold]{event.count}[/bold] subjects")
    elif event.stage == SyncStage.SYNCING_ASSIGNMENTS:
        console.print(f"  Synced [bold]{event.count}[/bold] assignments")
    elif event.stage == SyncStage.COMPLETED:
        console.print("[green]Sync complete![/green]")
    elif event.stage == SyncStage.FAILED:
        console.print(f"[red]Sync failed: {event.message}[/red]")


def cmd_sync(api: WaniKaniAPI, settings: Settings) -> None:
    last = get_last_sync(settings.db_path)
    console.print(f"[dim]Last sync: {last.isoformat() if last else 'never'}[/dim]")
    coordinator = SyncCoordinator(api, settings.db_path)
    try:
        coordinator.sync_everything(progress=print_sync_progress)
    except NetworkError:
        # Already reported through the progress callback
        pass


def run_review_session(session: ReviewSession) -> None:
    state = session.load()
    if state == ReviewState.ERROR:
        console.print(f"[red]Could not load reviews: {session.error_message}[/red]")
        return
    if state == ReviewState.EMPTY:
        console.print("[yellow]No reviews available right now![/yellow]")
        return

    console.print(f"\n[bold]Reviews[/bold] - {session.remaining_count} questions\n")
    while session.state == ReviewState.REVIEWING:
        item = session.current_item
        console.print(Panel(
            f"[bold]{item.subject.display}[/bold]",
            title=f"{item.subject.object.value} · {_question_label(item.question_type)}",
            subtitle=f"{session.remaining_count} left",
            border_style="cyan",
        ))
        answer = session_prompt("Your answer")
        result = session.submit_answer(answer)
        if result is None:
            continue
        if result.submitted:
            if result.review is not None:
                stage = result.review.ending_srs_stage
                up, down = result.review.did_level_up, result.review.did_level_down
            else:
                stage = result.preview.new_stage
                up, down = result.preview.did_level_up, result.preview.did_level_down
            arrow = "↑" if up else "↓" if down else "→"
            console.print(f"[green]Correct![/green] {arrow} stage {stage}")
        elif result.correct:
            console.print("[green]Correct![/green]")
        else:
            console.print(f"[red]{result.message or 'Incorrect.'}[/red]")

    console.print(
        f"\n[bold]Session complete: {session.correct_count} correct, "
        f"{session.incorrect_count} incorrect[/bold]\n"
    )


def run_lesson_session(session: LessonSession) -> None:
    state = session.load()
    if state == LessonState.EMPTY:
        console.print("[yellow]No lessons available right now![/yellow]")
        return

    while session.state in (LessonState.LEARNING, LessonState.QUIZZING):
        item = session.current_item
        subject = item.subject
        if session.state == LessonState.LEARNING:
            body = f"[bold]{subject.display}[/bold]\n\nMeaning: {subject.primary_meaning or ''}"
            if subject.has_readings:
                body += f"\nReading: {subject.primary_reading or ''}"
            mnemonic = getattr(subject.data, "meaning_mnemonic", "")
            if mnemonic:
                body += f"\n\n[dim]{mnemonic}[/dim]"
            console.print(Panel(body, title=f"Lesson · level {subject.level}", border_style="magenta"))
            session_prompt("[dim]Press Enter to start the quiz[/dim]", default="")
            session.start_quiz()
            continue

        answer = session_prompt(f"{_question_label(session.question_type)} for {subject.display}")
        if session.submit_answer(answer):
            console.print("[green]Correct![/green]")
        else:
            console.print("[red]Not quite, try again.[/red]")

    if session.failed_ids:
        console.print(f"[yellow]{len(session.failed_ids)} lessons could not be saved to WaniKani.[/yellow]")
    console.print(f"\n[bold]Lessons complete: {len(session.started_ids)} started[/bold]\n")


def cmd_dashboard(api: WaniKaniAPI, settings: Settings) -> None:
    data = fetch_dashboard(api, settings.db_path)
    header = f"{data['username'] or 'Unknown user'} - Level {data['level'] or '?'}"
    if data["on_vacation"]:
        header += " [yellow](vacation)[/yellow]"
    console.print(Panel(f"[bold]{header}[/bold]", title="Dashboard", border_style="magenta"))
    console.print(
        f"\n  Lessons: [bold]{data['lessons']}[/bold]  |  Reviews: [bold]{data['reviews']}[/bold]"
        + (f"  |  Next reviews: {data['next_reviews_at'].isoformat()}" if data["next_reviews_at"] else "")
        + f"  [dim]({data['source']})[/dim]\n"
    )

    table = Table(title="SRS Progress")
    table.add_column("Stage")
    table.add_column("Items", justify="right")
    for group, total in data["stages"].items():
        color = get_stage_color(group)
        table.add_row(f"[{color}]{group}[/{color}]", str(total))
    console.print(table)

    try:
        accuracy = review_accuracy(api.get_review_statistics())
        console.print(f"\n  Review accuracy: [bold]{accuracy}%[/bold]")
    except NetworkError as e:
        logger.warning("Review statistics unavailable: %s", e)


def main():
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    init_db(settings.db_path)
    if not settings.api_token:
        console.print("[red]Set WK_API_TOKEN to your WaniKani personal access token.[/red]")
        return
    api = WaniKaniAPI.from_settings(settings)

    show_welcome()
    if get_last_sync(settings.db_path) is None:
        console.print("[dim]Setting up for first use...[/dim]")
        cmd_sync(api, settings)

    while True:
        show_menu()
        choice = Prompt.ask("\n[bold]>[/bold]", default="reviews").strip().lower()
        try:
            if choice == "sync":
                cmd_sync(api, settings)
            elif choice == "reviews":
                run_review_session(ReviewSession(api, settings.db_path, feedback_delay=settings.feedback_delay))
            elif choice == "lessons":
                run_lesson_session(LessonSession(api, settings.db_path, batch_size=settings.lessons_batch_size))
            elif choice == "dashboard":
                cmd_dashboard(api, settings)
            elif choice in ("quit", "exit", "q"):
                console.print("[dim]頑張って！[/dim]")
                break
            else:
                console.print("[red]Unknown command. Try again.[/red]")
        except SessionExitRequested:
            console.print("\n[dim]Session paused. Progress on submitted items is saved.[/dim]")
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except Exception as e:
            logger.exception("Command %s failed", choice)
            console.print(f"[red]Error: {e}[/red]")


if __name__ == "__main__":
    main()
