"""
CLI entry point for studymate.
"""

# Standard library imports
import logging
import os
import shutil
from enum import Enum
from pathlib import Path
from typing import List, Optional

# Third-party imports
import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.text import Text

# Local application imports
from studymate.cli._data_logic import (
    flashcards_path,
    open_ledger,
    open_store,
    performance_path,
)
from studymate.cli._export_logic import export_to_markdown
from studymate.cli._quiz_logic import quiz_logic
from studymate.exceptions import SessionError, StoreError
from studymate.models import PerformanceSummary, QuizMode
from studymate.storage.serialization import (
    backup_document,
    find_latest_backup,
)


console = Console()

app = typer.Typer(
    name="studymate",
    help="StudyMate: flashcard quizzes with wrong-answer retests.",
    add_completion=False,
    rich_markup_mode="markdown",
)

subject_app = typer.Typer(name="subject", help="Create and list subjects.")
card_app = typer.Typer(name="card", help="Add, list and delete flashcards.")
app.add_typer(subject_app)
app.add_typer(card_app)


@app.callback()
def _configure(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Log progress information."
    ),
):
    """StudyMate: flashcard quizzes with wrong-answer retests."""
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


# ---------------------------------------------------------------------------
# Helpers for resolving the --data-dir path (STUDYMATE_DATA_DIR envvar)
# ---------------------------------------------------------------------------


def _resolve_data_dir(data_dir: Optional[Path]) -> Path:
    """Resolve the data directory from the CLI flag or STUDYMATE_DATA_DIR. Exits on missing."""
    if data_dir is not None:
        return data_dir
    env_val = os.environ.get("STUDYMATE_DATA_DIR")
    if env_val:
        return Path(env_val)
    console.print(
        "[bold red]Error: --data-dir is required "
        "(or set the STUDYMATE_DATA_DIR environment variable).[/bold red]"
    )
    raise typer.Exit(code=1)


_data_dir_option = typer.Option(  # noqa: B008
    None,
    "--data-dir",
    help="Directory holding flashcards.yml and performance.json. "
    "Falls back to STUDYMATE_DATA_DIR env var.",
    envvar="STUDYMATE_DATA_DIR",
)


def _report_save_error(error) -> None:
    if error is not None:
        console.print(
            "[bold red]Warning: changes were not saved:[/bold red] "
            f"{escape(str(error))}"
        )


# ---------------------------------------------------------------------------
# Subject commands
# ---------------------------------------------------------------------------


@subject_app.command("add")
def subject_add(
    name: str = typer.Argument(..., help="Name of the new subject."),
    data_dir: Optional[Path] = _data_dir_option,
):
    """Create a new, empty subject."""
    store = open_store(_resolve_data_dir(data_dir))
    try:
        subject = store.add_subject(name)
    except StoreError as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        raise typer.Exit(code=1) from e
    _report_save_error(store.last_save_error)
    console.print(
        f"[green]Subject '[bold]{escape(subject.name)}[/bold]' created.[/green]"
    )


@subject_app.command("list")
def subject_list(
    data_dir: Optional[Path] = _data_dir_option,
):
    """List all subjects with their flashcard and retest counts."""
    resolved = _resolve_data_dir(data_dir)
    store = open_store(resolved)
    ledger = open_ledger(resolved)

    subjects = store.list_subjects()
    if not subjects:
        console.print("[yellow]No subjects available.[/yellow]")
        return

    table = Table(title="Subjects")
    table.add_column("Subject", style="cyan")
    table.add_column("Flashcards", style="magenta")
    table.add_column("To Retest", style="yellow")
    table.add_column("Created", style="dim")
    for subject in subjects:
        table.add_row(
            Text(subject.name),
            str(len(subject.flashcards)),
            str(len(ledger.wrong_ids(subject.name) & subject.flashcard_ids)),
            subject.created_date.strftime("%Y-%m-%d"),
        )
    console.print(table)


# ---------------------------------------------------------------------------
# Flashcard commands
# ---------------------------------------------------------------------------


@card_app.command("add")
def card_add(
    subject_name: str = typer.Argument(..., help="Subject to add the flashcard to."),
    question: str = typer.Option(..., "--question", "-q", help="Question text."),
    answer: str = typer.Option(..., "--answer", "-a", help="Answer text."),
    data_dir: Optional[Path] = _data_dir_option,
):
    """Add a flashcard to a subject."""
    store = open_store(_resolve_data_dir(data_dir))
    try:
        flashcard = store.add_flashcard(subject_name, question, answer)
    except StoreError as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        raise typer.Exit(code=1) from e
    _report_save_error(store.last_save_error)
    subject = store.require_subject(subject_name)
    console.print(
        f"[green]Flashcard {flashcard.id} added to "
        f"'{escape(subject.name)}'.[/green]"
    )


@card_app.command("list")
def card_list(
    subject_name: str = typer.Argument(..., help="Subject to show."),
    data_dir: Optional[Path] = _data_dir_option,
):
    """Show every flashcard in a subject."""
    resolved = _resolve_data_dir(data_dir)
    store = open_store(resolved)
    ledger = open_ledger(resolved)
    try:
        subject = store.require_subject(subject_name)
    except StoreError as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        raise typer.Exit(code=1) from e

    if not subject.flashcards:
        console.print(f"[yellow]No flashcards in '{escape(subject.name)}' yet.[/yellow]")
        return

    wrong_ids = ledger.wrong_ids(subject.name)
    table = Table(title=f"Flashcards in '{escape(subject.name)}'")
    table.add_column("ID", style="cyan")
    table.add_column("Question")
    table.add_column("Answer", style="green")
    table.add_column("Retest", style="yellow")
    table.add_column("Created", style="dim")
    for card in subject.flashcards:
        table.add_row(
            str(card.id),
            Text(card.question),
            Text(card.answer),
            "yes" if card.id in wrong_ids else "",
            card.created_date.strftime("%Y-%m-%d"),
        )
    console.print(table)


@card_app.command("delete")
def card_delete(
    subject_name: str = typer.Argument(..., help="Subject holding the flashcard."),
    flashcard_id: int = typer.Argument(..., help="Id of the flashcard to delete."),
    data_dir: Optional[Path] = _data_dir_option,
):
    """Delete a flashcard from a subject."""
    resolved = _resolve_data_dir(data_dir)
    backup_document(flashcards_path(resolved))
    store = open_store(resolved)
    try:
        removed = store.remove_flashcard(subject_name, flashcard_id)
    except StoreError as e:
        console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
        raise typer.Exit(code=1) from e
    _report_save_error(store.last_save_error)
    console.print(
        f"[green]Deleted flashcard {removed.id}:[/green] {escape(removed.question)}"
    )


# ---------------------------------------------------------------------------
# Quiz commands
# ---------------------------------------------------------------------------


@app.command()
def quiz(
    subject_name: str = typer.Argument(..., help="The subject to quiz."),
    retest: bool = typer.Option(
        False,
        "--retest",
        help="Only ask flashcards previously answered incorrectly.",
    ),
    seed: Optional[int] = typer.Option(
        None, "--seed", help="Seed for a reproducible question order."
    ),
    data_dir: Optional[Path] = _data_dir_option,
):
    """Starts a quiz for the specified subject."""
    resolved = _resolve_data_dir(data_dir)
    mode = QuizMode.RETEST if retest else QuizMode.FULL
    try:
        backup_path = backup_document(performance_path(resolved))
        if backup_path.exists() and "backups" in str(backup_path):
            console.print(f"Performance data backed up to: [dim]{backup_path}[/dim]")

        quiz_logic(
            subject_name=subject_name,
            data_dir=resolved,
            mode=mode,
            seed=seed,
        )
    except SessionError as e:
        console.print(f"[bold]Cannot start quiz:[/bold] {escape(str(e))}")
        raise typer.Exit(code=1) from e
    except OSError as e:
        console.print(f"[bold]A file error occurred: {escape(str(e))}[/bold]")
        raise typer.Exit(code=1) from e


@app.command("retest")
def retest_list(
    data_dir: Optional[Path] = _data_dir_option,
):
    """List subjects with questions waiting to be retested."""
    resolved = _resolve_data_dir(data_dir)
    store = open_store(resolved)
    ledger = open_ledger(resolved)

    rows = []
    for name in ledger.subjects_with_wrong_answers():
        subject = store.get_subject(name)
        if subject is None:
            continue
        pending = ledger.wrong_ids(name) & subject.flashcard_ids
        if pending:
            rows.append((subject.name, len(pending)))

    if not rows:
        console.print(
            "[yellow]No wrong answers to retest! Take some quizzes first.[/yellow]"
        )
        return

    table = Table(title="Retest Wrong Answers")
    table.add_column("Subject", style="cyan")
    table.add_column("Questions to retest", style="yellow")
    for name, count in rows:
        table.add_row(Text(name), str(count))
    console.print(table)
    console.print("Run [bold]studymate quiz SUBJECT --retest[/bold] to start.")


@app.command("clear-wrong")
def clear_wrong(
    subject_name: str = typer.Argument(..., help="Subject whose retest list to clear."),
    ids: Optional[List[int]] = typer.Option(  # noqa: B008
        None,
        "--id",
        help="Flashcard id to clear (repeatable). Clears all when omitted.",
    ),
    data_dir: Optional[Path] = _data_dir_option,
):
    """Remove flashcards from a subject's retest list."""
    resolved = _resolve_data_dir(data_dir)
    store = open_store(resolved)
    subject = store.get_subject(subject_name)
    key = subject.name if subject is not None else subject_name

    backup_document(performance_path(resolved))
    ledger = open_ledger(resolved)
    to_clear = set(ids) if ids else set(ledger.wrong_ids(key))
    if not to_clear:
        console.print(f"[yellow]Nothing to clear for '{escape(key)}'.[/yellow]")
        return

    _report_save_error(ledger.clear_wrong(key, to_clear))
    console.print(
        f"[green]Cleared {len(to_clear)} flashcard(s) from the retest list "
        f"of '{escape(key)}'.[/green]"
    )


# ---------------------------------------------------------------------------
# Stats helpers & command
# ---------------------------------------------------------------------------


def _display_overall_stats(cons: Console, summary: PerformanceSummary):
    """
    Prints a table of overall quiz totals.

    Parameters:
        summary (PerformanceSummary): Aggregated ledger data.
    """
    overall = summary.overall
    overall_table = Table(title="Performance Summary", show_header=False)
    overall_table.add_column("Metric", style="cyan")
    overall_table.add_column("Value", style="magenta")
    overall_table.add_row("Total Quizzes Taken", str(overall.quizzes_taken))
    overall_table.add_row(
        "Total Questions Answered", str(overall.questions_answered)
    )
    overall_table.add_row("Total Correct Answers", str(overall.correct_answers))
    overall_table.add_row("Overall Score", f"{overall.score:.1f}%")
    cons.print(overall_table)


def _display_subject_stats(cons: Console, summary: PerformanceSummary):
    """
    Render the per-subject breakdown, including questions awaiting retest.
    """
    subjects_table = Table(title="Performance by Subject")
    subjects_table.add_column("Subject", style="cyan")
    subjects_table.add_column("Quizzes", style="magenta")
    subjects_table.add_column("Questions", style="magenta")
    subjects_table.add_column("Correct", style="green")
    subjects_table.add_column("Score", style="bold")
    subjects_table.add_column("Last Quiz", style="dim")
    subjects_table.add_column("To Retest", style="yellow")

    for subject in summary.subjects:
        subjects_table.add_row(
            Text(subject.subject_name),
            str(subject.quizzes_taken),
            str(subject.questions_answered),
            str(subject.correct_answers),
            f"{subject.score:.1f}%",
            subject.last_quiz_date.strftime("%Y-%m-%d %H:%M"),
            str(subject.outstanding_wrong) if subject.outstanding_wrong else "",
        )
    cons.print(subjects_table)


def _display_recent_history(cons: Console, summary: PerformanceSummary):
    recent_table = Table(title="Recent Quiz History")
    recent_table.add_column("Date", style="dim")
    recent_table.add_column("Subject", style="cyan")
    recent_table.add_column("Result", style="magenta")
    recent_table.add_column("Score", style="bold")
    for result in summary.recent:
        recent_table.add_row(
            result.quiz_date.strftime("%Y-%m-%d %H:%M"),
            Text(result.subject_name),
            f"{result.correct_answers}/{result.total_questions}",
            f"{result.score:.1f}%",
        )
    cons.print(recent_table)


@app.command()
def stats(
    data_dir: Optional[Path] = _data_dir_option,
):
    """Display quiz performance statistics."""
    ledger = open_ledger(_resolve_data_dir(data_dir))
    summary = ledger.summary()

    if summary.is_empty:
        console.print("[yellow]No quiz history available yet.[/yellow]")
        console.print("Take some quizzes to see your performance!")
        return

    _display_overall_stats(console, summary)
    _display_subject_stats(console, summary)
    _display_recent_history(console, summary)


# ---------------------------------------------------------------------------
# Export subcommand group
# ---------------------------------------------------------------------------

export_app = typer.Typer(
    name="export",
    help="Export flashcards to different formats.",
)
app.add_typer(export_app)


@export_app.command("md")
def export_md(
    data_dir: Optional[Path] = _data_dir_option,
    output_dir: Optional[Path] = typer.Option(  # noqa: B008
        None,
        "--output-dir",
        help="Directory to save exported Markdown files.",
        file_okay=False,
        dir_okay=True,
        writable=True,
        resolve_path=True,
    ),
):
    """
    Export flashcards into Markdown files, one file per subject.

    Parameters:
        output_dir (Path): Directory where per-subject Markdown
            files will be written; required.
    """
    resolved = _resolve_data_dir(data_dir)
    if output_dir is None:
        console.print(
            "[bold red]Error: --output-dir is required "
            "for Markdown export.[/bold red]"
        )
        raise typer.Exit(code=1)
    console.print(f"Exporting flashcards to [cyan]{output_dir}[/cyan]...")
    try:
        count = export_to_markdown(
            store=open_store(resolved),
            output_dir=output_dir,
            ledger=open_ledger(resolved),
        )
    except IOError as e:
        console.print(
            f"[bold]An error occurred during export: {escape(str(e))}[/bold]"
        )
        raise typer.Exit(code=1) from e
    console.print(f"[green]Exported {count} subject file(s).[/green]")


# ---------------------------------------------------------------------------
# Restore command
# ---------------------------------------------------------------------------


class RestoreTarget(str, Enum):
    performance = "performance"
    flashcards = "flashcards"


@app.command()
def restore(
    data_dir: Optional[Path] = _data_dir_option,
    target: RestoreTarget = typer.Option(
        RestoreTarget.performance,
        "--target",
        help="Which document to restore.",
    ),
    yes: bool = typer.Option(
        False, "--yes", "-y", help="Bypass confirmation prompt."
    ),
):
    """Restores a data document from its most recent backup."""
    resolved = _resolve_data_dir(data_dir)
    document_path = (
        performance_path(resolved)
        if target is RestoreTarget.performance
        else flashcards_path(resolved)
    )
    console.print(
        f"[bold yellow]Attempting to restore {target.value} data "
        "from backup...[/bold yellow]"
    )

    latest_backup = find_latest_backup(document_path)

    if not latest_backup:
        console.print("[bold red]Error: No backup files found.[/bold red]")
        raise typer.Exit(code=1)

    console.print(f"Found latest backup: [cyan]{latest_backup.name}[/cyan]")

    if not yes:
        confirmed = typer.confirm(
            "Are you sure you want to overwrite the current "
            f"{target.value} data with this backup?"
        )
        if not confirmed:
            console.print("Restore operation cancelled.")
            raise typer.Exit()

    try:
        shutil.copy2(latest_backup, document_path)
        console.print(
            "[bold green]Data successfully restored "
            f"from {latest_backup.name}[/bold green]"
        )
    except OSError as e:
        console.print(
            "[bold red]An unexpected error occurred "
            f"during restore: {escape(str(e))}[/bold red]"
        )
        raise typer.Exit(code=1) from e


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main():
    """
    Run the CLI application.

    If an unexpected exception occurs, print a bold red error message to the console and exit the process with status code 1.
    """
    try:
        app()
    except Exception as e:
        console.print(f"[bold red]UNEXPECTED ERROR: {escape(str(e))}[/bold red]")
        raise SystemExit(1)


if __name__ == "__main__":
    main()
