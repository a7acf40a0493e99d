"""
This module defines the QuizSessionEngine and QuizSession classes. The engine
selects and shuffles the flashcards for a quiz; the session hands them out one
at a time, scores the answers and builds the final QuizResult.

Neither class writes to the performance ledger. Recording the result is left
to the caller, so sessions can be exercised without touching the filesystem.
"""

import logging
import random
from datetime import datetime, timezone
from typing import Callable, List, Optional, Set, Tuple

from .exceptions import (
    NoFlashcardsError,
    NothingToRetestError,
    QuizCancelled,
    QuizSessionError,
)
from .ledger import PerformanceLedger
from .models import AnswerOutcome, Flashcard, QuizMode, QuizResult, Subject
from .storage.flashcard_store import FlashcardStore

# Initialize logger
logger = logging.getLogger(__name__)

# ask(flashcard, position, total) -> answer text; position is 1-based.
AnswerProvider = Callable[[Flashcard, int, int], str]
AnswerListener = Callable[[AnswerOutcome], None]


def answers_match(given: str, expected: str) -> bool:
    """
    Compare an answer with the stored one, ignoring case and surrounding whitespace.

    Returns:
        bool: True only on an exact match after normalization.
    """
    return given.strip().casefold() == expected.strip().casefold()


class QuizSession:
    """
    One pass through a fixed, already shuffled list of flashcards.

    Usage mirrors a review queue: call `get_next_card`, then `submit_answer`
    for that card, until `get_next_card` returns None; then `build_result`.
    """

    def __init__(
        self,
        subject_name: str,
        mode: QuizMode,
        flashcards: List[Flashcard],
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.subject_name = subject_name
        self.mode = mode
        self._queue: List[Flashcard] = list(flashcards)
        self._position = 0
        self._correct_answers = 0
        self._wrong_answer_ids: Set[int] = set()
        self._outcomes: List[AnswerOutcome] = []
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def total(self) -> int:
        return len(self._queue)

    @property
    def remaining(self) -> int:
        return self.total - self._position

    @property
    def position(self) -> int:
        """1-based position of the current card (total + 1 when finished)."""
        return self._position + 1

    @property
    def is_finished(self) -> bool:
        return self._position >= self.total

    @property
    def flashcards(self) -> List[Flashcard]:
        """The presentation order of this session."""
        return list(self._queue)

    @property
    def outcomes(self) -> List[AnswerOutcome]:
        return list(self._outcomes)

    def get_next_card(self) -> Optional[Flashcard]:
        """
        Retrieves the card awaiting an answer.

        Returns:
            The current Flashcard, or None once every card has been answered.
        """
        if self.is_finished:
            return None
        return self._queue[self._position]

    def submit_answer(self, answer: str) -> AnswerOutcome:
        """
        Score an answer for the current card and advance to the next one.

        Raises:
            QuizSessionError: If every card has already been answered.
        """
        card = self.get_next_card()
        if card is None:
            raise QuizSessionError(
                f"Quiz for '{self.subject_name}' has no more questions."
            )

        is_correct = answers_match(answer, card.answer)
        if is_correct:
            self._correct_answers += 1
        else:
            self._wrong_answer_ids.add(card.id)

        outcome = AnswerOutcome(
            flashcard_id=card.id,
            given_answer=answer,
            expected_answer=card.answer,
            is_correct=is_correct,
        )
        self._outcomes.append(outcome)
        self._position += 1
        logger.debug(
            f"Flashcard {card.id} in '{self.subject_name}' answered "
            f"{'correctly' if is_correct else 'incorrectly'}"
        )
        return outcome

    def build_result(self) -> QuizResult:
        """
        Build the QuizResult for a completed session.

        Raises:
            QuizSessionError: If some cards have not been answered yet.
        """
        if not self.is_finished:
            raise QuizSessionError(
                f"Quiz for '{self.subject_name}' still has "
                f"{self.remaining} unanswered question(s)."
            )
        return QuizResult(
            subject_name=self.subject_name,
            total_questions=self.total,
            correct_answers=self._correct_answers,
            wrong_answer_ids=frozenset(self._wrong_answer_ids),
            quiz_date=self._clock(),
        )


class QuizSessionEngine:
    """
    Builds quiz sessions from the flashcard store and the ledger's wrong-id sets.

    The engine only reads from its collaborators.
    """

    def __init__(
        self,
        store: FlashcardStore,
        ledger: PerformanceLedger,
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Parameters:
            store (FlashcardStore): Source of subjects and flashcards.
            ledger (PerformanceLedger): Source of the wrong-id sets used by retests.
            rng (Optional[random.Random]): Shuffling source; pass a seeded instance
                for reproducible question order.
            clock (Optional[Callable[[], datetime]]): Timestamp source for results.
        """
        self.store = store
        self.ledger = ledger
        self.rng = rng or random.Random()
        self.clock = clock

    def _select_flashcards(
        self, subject_name: str, mode: QuizMode
    ) -> Tuple[Subject, List[Flashcard]]:
        subject = self.store.require_subject(subject_name)

        if mode is QuizMode.RETEST:
            wrong_ids = self.ledger.wrong_ids(subject.name)
            if not wrong_ids:
                raise NothingToRetestError(
                    f"No wrong answers to retest for '{subject.name}'."
                )
            candidates = [c for c in subject.flashcards if c.id in wrong_ids]
            if not candidates:
                # Every flagged flashcard has since been deleted.
                raise NothingToRetestError(
                    f"None of the flashcards flagged for retest in "
                    f"'{subject.name}' exist any more."
                )
        else:
            candidates = list(subject.flashcards)

        if not candidates:
            raise NoFlashcardsError(
                f"No flashcards available for '{subject.name}'."
            )
        return subject, candidates

    def start(
        self, subject_name: str, mode: QuizMode = QuizMode.FULL
    ) -> QuizSession:
        """
        Prepare a quiz session.

        Parameters:
            subject_name (str): Subject to quiz, matched ignoring case.
            mode (QuizMode): FULL asks every flashcard; RETEST asks only the
                flashcards currently flagged in the ledger.

        Returns:
            QuizSession: A session over a uniformly shuffled copy of the selection.

        Raises:
            SubjectNotFoundError: If the subject does not exist.
            NothingToRetestError: In RETEST mode, if nothing is flagged.
            NoFlashcardsError: In FULL mode, if the subject has no flashcards.
        """
        mode = QuizMode(mode)
        subject, candidates = self._select_flashcards(subject_name, mode)

        order = list(candidates)
        self.rng.shuffle(order)

        logger.info(
            f"Starting {mode.value} quiz for '{subject.name}' "
            f"with {len(order)} question(s)"
        )
        return QuizSession(
            subject_name=subject.name,
            mode=mode,
            flashcards=order,
            clock=self.clock,
        )

    def run_session(
        self,
        subject_name: str,
        mode: QuizMode,
        ask: AnswerProvider,
        on_answer: Optional[AnswerListener] = None,
    ) -> QuizResult:
        """
        Run a whole quiz, blocking on `ask` for every question.

        Parameters:
            subject_name (str): Subject to quiz.
            mode (QuizMode): FULL or RETEST.
            ask (AnswerProvider): Called as `ask(card, position, total)`; returns
                the user's answer. It may raise QuizCancelled to stop the quiz.
            on_answer (Optional[AnswerListener]): Called with each AnswerOutcome.

        Returns:
            QuizResult: The unrecorded result; pass it to PerformanceLedger.record.

        Raises:
            SessionError: If the quiz cannot start (see `start`).
            QuizCancelled: If `ask` cancels the quiz; no result is produced.
        """
        session = self.start(subject_name, mode)
        while (card := session.get_next_card()) is not None:
            try:
                answer = ask(card, session.position, session.total)
            except QuizCancelled:
                logger.info(
                    f"Quiz for '{session.subject_name}' cancelled after "
                    f"{session.position - 1} of {session.total} question(s)"
                )
                raise
            outcome = session.submit_answer(answer)
            if on_answer is not None:
                on_answer(outcome)
        return session.build_result()
