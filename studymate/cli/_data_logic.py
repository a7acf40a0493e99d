"""
Opens the flashcard store and performance ledger for CLI commands.
"""

from pathlib import Path

from rich.console import Console
from rich.markup import escape

from studymate.constants import FLASHCARDS_FILENAME, PERFORMANCE_FILENAME
from studymate.ledger import PerformanceLedger
from studymate.storage.flashcard_store import FlashcardStore

console = Console()


def flashcards_path(data_dir: Path) -> Path:
    return data_dir / FLASHCARDS_FILENAME


def performance_path(data_dir: Path) -> Path:
    return data_dir / PERFORMANCE_FILENAME


def open_store(data_dir: Path) -> FlashcardStore:
    """Load the flashcard store, warning on the console if it had to start empty."""
    store = FlashcardStore.open(flashcards_path(data_dir))
    if store.load_error is not None:
        console.print(
            "[bold yellow]Warning: flashcard data could not be loaded; "
            f"starting empty.[/bold yellow] {escape(str(store.load_error))}"
        )
    return store


def open_ledger(data_dir: Path) -> PerformanceLedger:
    """Load the performance ledger, warning on the console if it had to start empty."""
    ledger = PerformanceLedger.open(performance_path(data_dir))
    if ledger.load_error is not None:
        console.print(
            "[bold yellow]Warning: performance data could not be loaded; "
            f"starting with empty history.[/bold yellow] {escape(str(ledger.load_error))}"
        )
    return ledger
