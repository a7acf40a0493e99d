import random
from datetime import datetime, timezone
from pathlib import Path

import pytest

from studymate.constants import FLASHCARDS_FILENAME, PERFORMANCE_FILENAME
from studymate.ledger import PerformanceLedger
from studymate.models import QuizResult
from studymate.quiz_engine import QuizSessionEngine
from studymate.storage.flashcard_store import FlashcardStore


# each test runs on cwd to its temp dir
@pytest.fixture(autouse=True)
def go_to_tmpdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """
    Change the working directory to the test's tmp_path for the duration of the test.
    """
    monkeypatch.chdir(tmp_path)
    yield


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    """
    Provide an empty data directory for store and ledger documents.

    Returns:
        Path: `tmp_path / "data"`, created.
    """
    path = tmp_path / "data"
    path.mkdir()
    return path


@pytest.fixture
def store(data_dir: Path) -> FlashcardStore:
    """An empty FlashcardStore saving to `data_dir/flashcards.yml`."""
    return FlashcardStore.open(data_dir / FLASHCARDS_FILENAME)


@pytest.fixture
def ledger(data_dir: Path) -> PerformanceLedger:
    """An empty PerformanceLedger saving to `data_dir/performance.json`."""
    return PerformanceLedger.open(data_dir / PERFORMANCE_FILENAME)


@pytest.fixture
def math_store(store: FlashcardStore) -> FlashcardStore:
    """
    Create a store with a "Math" subject holding two flashcards.

    Returns:
        FlashcardStore: Subject "Math" with flashcard 1 ("2+2" -> "4") and
        flashcard 2 ("3+3" -> "6").
    """
    store.add_subject("Math")
    store.add_flashcard("Math", "2+2", "4")
    store.add_flashcard("Math", "3+3", "6")
    return store


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def engine(
    math_store: FlashcardStore, ledger: PerformanceLedger, fixed_now: datetime
) -> QuizSessionEngine:
    """A QuizSessionEngine over `math_store` with a seeded RNG and a fixed clock."""
    return QuizSessionEngine(
        store=math_store,
        ledger=ledger,
        rng=random.Random(1234),
        clock=lambda: fixed_now,
    )


@pytest.fixture
def answer_key():
    """
    Factory for `ask` callbacks answering every flashcard of a subject.

    Flashcards whose id is in `wrong_ids` get a deliberately wrong answer.
    """

    def _make(store: FlashcardStore, subject_name: str, wrong_ids=()):
        subject = store.require_subject(subject_name)
        answers = {c.id: c.answer for c in subject.flashcards}

        def ask(card, position, total):
            if card.id in wrong_ids:
                return "definitely wrong"
            return answers[card.id]

        return ask

    return _make


@pytest.fixture
def make_result():
    """Factory for QuizResult objects with sensible defaults."""

    def _make(
        subject_name: str = "Math",
        total: int = 2,
        correct: int = 1,
        wrong=(2,),
        quiz_date: datetime = datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc),
    ) -> QuizResult:
        return QuizResult(
            subject_name=subject_name,
            total_questions=total,
            correct_answers=correct,
            wrong_answer_ids=frozenset(wrong),
            quiz_date=quiz_date,
        )

    return _make
