"""
Command-line interface for taking a quiz.
"""

from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from studymate.constants import QUIT_SENTINEL, SCORE_FEEDBACK
from studymate.exceptions import QuizCancelled
from studymate.models import AnswerOutcome, Flashcard, QuizMode, QuizResult
from studymate.quiz_engine import QuizSessionEngine

console = Console()


def score_feedback(score: float) -> str:
    """Pick the encouragement line for a score."""
    for threshold, message in SCORE_FEEDBACK:
        if score >= threshold:
            return message
    return SCORE_FEEDBACK[-1][1]


def _ask_question(card: Flashcard, position: int, total: int) -> str:
    """
    Show a question and block until the user types an answer.

    Raises:
        QuizCancelled: If the user enters the quit sentinel.
    """
    console.rule(f"[bold]Question {position} of {total}[/bold]")
    console.print(Panel(Text(card.question), title="Question", border_style="green"))
    answer = console.input("[bold]Your answer: [/bold]")
    if answer.strip() == QUIT_SENTINEL:
        raise QuizCancelled()
    return answer


def _print_header(subject_name: str, mode: QuizMode, total: int) -> None:
    if mode is QuizMode.RETEST:
        console.print(
            f"[bold cyan]RETEST MODE: {escape(subject_name)}[/bold cyan] - "
            f"retesting {total} previously incorrect answer(s)."
        )
    else:
        console.print(
            f"[bold cyan]QUIZ: {escape(subject_name)}[/bold cyan] - "
            f"{total} question(s)."
        )
    console.print(f"[dim]Type {QUIT_SENTINEL} to stop the quiz.[/dim]")


def _show_outcome(outcome: AnswerOutcome) -> None:
    if outcome.is_correct:
        console.print("[bold green]Correct![/bold green]")
    else:
        console.print(
            "[bold red]Incorrect.[/bold red] The correct answer is: "
            f"[bold]{escape(outcome.expected_answer)}[/bold]"
        )
    console.print("")


def display_quiz_result(result: QuizResult) -> None:
    """Print the end-of-quiz table and feedback line."""
    table = Table(title="Quiz Results", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="magenta")
    table.add_row("Subject", Text(result.subject_name))
    table.add_row("Questions", str(result.total_questions))
    table.add_row("Correct", str(result.correct_answers))
    table.add_row("Wrong", str(result.wrong_count))
    table.add_row("Score", f"{result.score:.1f}%")
    console.print(table)
    console.print(f"[bold]{score_feedback(result.score)}[/bold]")


def start_quiz_flow(
    engine: QuizSessionEngine, subject_name: str, mode: QuizMode
) -> Optional[QuizResult]:
    """
    Run an interactive quiz and record its result in the engine's ledger.

    Args:
        engine: Engine bound to the loaded store and ledger.
        subject_name: Subject to quiz.
        mode: FULL or RETEST.

    Returns:
        The recorded QuizResult, or None if the user quit early.

    Raises:
        SessionError: If the quiz cannot start.
    """
    mode = QuizMode(mode)

    def ask(card: Flashcard, position: int, total: int) -> str:
        if position == 1:
            _print_header(
                engine.store.require_subject(subject_name).name, mode, total
            )
        return _ask_question(card, position, total)

    try:
        result = engine.run_session(
            subject_name, mode, ask=ask, on_answer=_show_outcome
        )
    except QuizCancelled:
        console.print(
            "[bold yellow]Quiz cancelled. Nothing was recorded.[/bold yellow]"
        )
        return None

    display_quiz_result(result)

    save_error = engine.ledger.record(result)
    if save_error is not None:
        console.print(
            "[bold red]Warning: your result could not be saved:[/bold red] "
            f"{escape(str(save_error))}"
        )
    return result
