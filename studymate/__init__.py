"""StudyMate - flashcard quizzes with wrong-answer tracking and retests."""

from .models import (
    Flashcard,
    Subject,
    QuizResult,
    QuizMode,
    PerformanceSummary,
)
from .constants import FLASHCARDS_FILENAME, PERFORMANCE_FILENAME
from .storage import FlashcardStore
from .ledger import PerformanceLedger
from .quiz_engine import QuizSession, QuizSessionEngine

__all__ = [
    "Flashcard",
    "Subject",
    "QuizResult",
    "QuizMode",
    "PerformanceSummary",
    "FLASHCARDS_FILENAME",
    "PERFORMANCE_FILENAME",
    "FlashcardStore",
    "PerformanceLedger",
    "QuizSession",
    "QuizSessionEngine",
]
