"""
Pydantic models for subjects, flashcards, quiz results and performance
summaries.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, FrozenSet, List, Optional, Tuple

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    StringConstraints,
    model_validator,
)

NonBlankStr = Annotated[
    str, StringConstraints(strip_whitespace=True, min_length=1)
]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _assume_utc(value: datetime) -> datetime:
    """Treat timestamps written without an offset as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


UtcDatetime = Annotated[datetime, AfterValidator(_assume_utc)]


def calculate_score(correct: int, total: int) -> float:
    """Percentage of correct answers, 0.0 when nothing was asked."""
    if total <= 0:
        return 0.0
    return correct / total * 100


class QuizMode(str, Enum):
    """
    Selects which flashcards a quiz session asks.
    """

    FULL = "full"
    RETEST = "retest"


class Flashcard(BaseModel):
    """
    A question/answer pair. The id is unique only within its subject.
    """

    model_config = ConfigDict(
        frozen=True, extra="forbid", coerce_numbers_to_str=True
    )

    id: int = Field(
        ...,
        ge=1,
        description="Subject-local identifier, assigned max(existing)+1.",
    )
    question: NonBlankStr = Field(..., description="Question text.")
    answer: NonBlankStr = Field(..., description="Expected answer text.")
    created_date: UtcDatetime = Field(
        default_factory=_utcnow,
        description="UTC timestamp when the flashcard was created.",
    )


class Subject(BaseModel):
    """
    A named, ordered group of flashcards.

    Instances handed out by the store are snapshots; use the store's command
    methods to change a subject.
    """

    model_config = ConfigDict(
        frozen=True, extra="forbid", coerce_numbers_to_str=True
    )

    name: NonBlankStr = Field(
        ..., description="Subject name, unique across the store ignoring case."
    )
    flashcards: Tuple[Flashcard, ...] = Field(
        default_factory=tuple,
        description="Flashcards in insertion order.",
    )
    created_date: UtcDatetime = Field(
        default_factory=_utcnow,
        description="UTC timestamp when the subject was created.",
    )

    @model_validator(mode="after")
    def check_unique_flashcard_ids(self) -> "Subject":
        ids = [card.id for card in self.flashcards]
        if len(ids) != len(set(ids)):
            raise ValueError(
                f"Subject '{self.name}' contains duplicate flashcard ids."
            )
        return self

    @property
    def flashcard_ids(self) -> FrozenSet[int]:
        return frozenset(card.id for card in self.flashcards)

    def next_flashcard_id(self) -> int:
        """Id for the next flashcard: one past the highest id, or 1."""
        if not self.flashcards:
            return 1
        return max(card.id for card in self.flashcards) + 1

    def get_flashcard(self, flashcard_id: int) -> Optional[Flashcard]:
        for card in self.flashcards:
            if card.id == flashcard_id:
                return card
        return None

    def matches_name(self, name: str) -> bool:
        return self.name.casefold() == name.strip().casefold()


class QuizResult(BaseModel):
    """
    Outcome of one quiz session.

    `score` is derived from the counts and is never serialized.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    subject_name: NonBlankStr = Field(
        ..., description="Name of the quizzed subject."
    )
    total_questions: int = Field(
        ..., ge=0, description="Number of flashcards asked."
    )
    correct_answers: int = Field(
        ..., ge=0, description="Number of flashcards answered correctly."
    )
    wrong_answer_ids: FrozenSet[int] = Field(
        default_factory=frozenset,
        description="Ids of the flashcards answered incorrectly.",
    )
    quiz_date: UtcDatetime = Field(
        default_factory=_utcnow,
        description="UTC timestamp when the quiz finished.",
    )

    @model_validator(mode="after")
    def check_counts_are_consistent(self) -> "QuizResult":
        if self.correct_answers > self.total_questions:
            raise ValueError(
                "correct_answers cannot exceed total_questions "
                f"({self.correct_answers} > {self.total_questions})."
            )
        if len(self.wrong_answer_ids) > (
            self.total_questions - self.correct_answers
        ):
            raise ValueError(
                "wrong_answer_ids has more entries than incorrect answers."
            )
        return self

    @property
    def score(self) -> float:
        return calculate_score(self.correct_answers, self.total_questions)

    @property
    def wrong_count(self) -> int:
        return self.total_questions - self.correct_answers


class AnswerOutcome(BaseModel):
    """Feedback for a single answered question."""

    model_config = ConfigDict(frozen=True)

    flashcard_id: int
    given_answer: str
    expected_answer: str
    is_correct: bool


class OverallPerformance(BaseModel):
    quizzes_taken: int = 0
    questions_answered: int = 0
    correct_answers: int = 0

    @property
    def score(self) -> float:
        return calculate_score(self.correct_answers, self.questions_answered)


class SubjectPerformance(BaseModel):
    """Aggregated results for one subject."""

    subject_name: str
    quizzes_taken: int
    questions_answered: int
    correct_answers: int
    last_quiz_date: UtcDatetime
    outstanding_wrong: int = Field(
        default=0,
        ge=0,
        description="Flashcard ids currently flagged for retest.",
    )

    @property
    def score(self) -> float:
        return calculate_score(self.correct_answers, self.questions_answered)


class PerformanceSummary(BaseModel):
    """
    Read-only aggregate of the performance ledger, built for display.
    """

    overall: OverallPerformance = Field(default_factory=OverallPerformance)
    subjects: List[SubjectPerformance] = Field(default_factory=list)
    recent: List[QuizResult] = Field(
        default_factory=list,
        description="Most recent results, newest first.",
    )

    @property
    def is_empty(self) -> bool:
        return self.overall.quizzes_taken == 0
