"""
This module defines the PerformanceLedger, the durable record of quiz results
and of the flashcards each subject still needs to retest.

The ledger holds two pieces of state:
- an append-only history of QuizResult objects, in the order they were recorded;
- a per-subject set of flashcard ids answered wrong at least once and not
  cleared since.

Ids only enter a wrong-id set through `record` and only leave it through
`clear_wrong`. Answering a flashcard correctly, even in a retest, does not
clear it.
"""

import logging
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, List, Optional, Set, Tuple, Union

from .constants import RECENT_HISTORY_LIMIT
from .exceptions import MarshallingError, PersistenceError
from .models import (
    OverallPerformance,
    PerformanceSummary,
    QuizResult,
    SubjectPerformance,
)
from .storage.documents import JSON_CODEC, DocumentFile
from .storage.serialization import document_to_ledger, ledger_to_document

# Initialize logger
logger = logging.getLogger(__name__)


class PerformanceLedger:
    """
    Quiz history plus per-subject wrong-answer index, saved after every change.

    Persistence failures are logged and returned to the caller but never undo
    the in-memory change: for the rest of the process the in-memory state is
    authoritative.
    """

    def __init__(
        self,
        document: DocumentFile,
        history: Optional[List[QuizResult]] = None,
        wrong_by_subject: Optional[Dict[str, Set[int]]] = None,
    ):
        """
        Create a ledger bound to a document.

        Parameters:
            document (DocumentFile): Where the ledger is written after each mutation.
            history (Optional[List[QuizResult]]): Existing results, oldest first.
            wrong_by_subject (Optional[Dict[str, Set[int]]]): Existing wrong-id sets.
        """
        self._document = document
        self._history: List[QuizResult] = list(history or [])
        self._wrong_by_subject: Dict[str, Set[int]] = {
            name: set(ids) for name, ids in (wrong_by_subject or {}).items()
        }
        self.load_error: Optional[PersistenceError] = None
        self.last_save_error: Optional[PersistenceError] = None

    @classmethod
    def load(cls, document: DocumentFile) -> "PerformanceLedger":
        """
        Load a ledger from its document, falling back to an empty ledger.

        A missing document is not an error. A malformed one is logged as a
        warning and its error is stored on `load_error`; the ledger starts
        blank so the application stays usable.
        """
        data, error = document.read()
        history: List[QuizResult] = []
        wrong_by_subject: Dict[str, Set[int]] = {}
        if error is None:
            try:
                history, wrong_by_subject = document_to_ledger(data)
            except MarshallingError as e:
                error = e

        ledger = cls(document, history, wrong_by_subject)
        if error is not None:
            logger.warning(
                f"Could not load performance data from {document.path}; "
                f"starting with empty history. Reason: {error}"
            )
            ledger.load_error = error
        else:
            logger.info(
                f"Loaded {len(history)} quiz result(s) from {document.path}"
            )
        return ledger

    @classmethod
    def open(cls, path: Union[str, Path]) -> "PerformanceLedger":
        """Load the ledger kept in the JSON document at `path`."""
        return cls.load(DocumentFile(path, JSON_CODEC))

    @property
    def path(self) -> Path:
        return self._document.path

    @property
    def history(self) -> Tuple[QuizResult, ...]:
        return tuple(self._history)

    def save(self) -> Optional[PersistenceError]:
        """
        Write the full ledger to its document.

        Returns:
            Optional[PersistenceError]: The failure, or None if the write succeeded.
        """
        error = self._document.write(
            ledger_to_document(self._history, self._wrong_by_subject)
        )
        self.last_save_error = error
        if error is not None:
            logger.error(
                f"Performance data not saved; keeping in-memory state: {error}"
            )
        return error

    def record(self, result: QuizResult) -> Optional[PersistenceError]:
        """
        Append a quiz result and merge its wrong answers into the subject's set.

        Parameters:
            result (QuizResult): The finished quiz.

        Returns:
            Optional[PersistenceError]: The save failure, if any. The result stays
            recorded in memory regardless.
        """
        self._history.append(result)
        if result.wrong_answer_ids:
            self._wrong_by_subject.setdefault(result.subject_name, set()).update(
                result.wrong_answer_ids
            )
        logger.info(
            f"Recorded quiz for '{result.subject_name}': "
            f"{result.correct_answers}/{result.total_questions} correct, "
            f"{len(result.wrong_answer_ids)} flagged for retest"
        )
        return self.save()

    def wrong_ids(self, subject_name: str) -> FrozenSet[int]:
        """
        Ids currently flagged for retest in a subject.

        Returns:
            FrozenSet[int]: A snapshot; empty if the subject has no recorded misses.
        """
        return frozenset(self._wrong_by_subject.get(subject_name, ()))

    def clear_wrong(
        self, subject_name: str, ids: Iterable[int]
    ) -> Optional[PersistenceError]:
        """
        Remove ids from a subject's wrong-id set and save.

        Ids that are not flagged are ignored, so repeating the call has no
        further effect. A set that becomes empty is dropped.

        Returns:
            Optional[PersistenceError]: The save failure, if any.
        """
        ids_to_clear = set(ids)
        current = self._wrong_by_subject.get(subject_name)
        if current is not None:
            current.difference_update(ids_to_clear)
            if not current:
                del self._wrong_by_subject[subject_name]
        logger.info(
            f"Cleared {sorted(ids_to_clear)} from retest list of '{subject_name}'"
        )
        return self.save()

    def subjects_with_wrong_answers(self) -> List[str]:
        return [name for name, ids in self._wrong_by_subject.items() if ids]

    def summary(self) -> PerformanceSummary:
        """
        Aggregate the history for display. Does not modify the ledger.

        Returns:
            PerformanceSummary: Overall totals, per-subject breakdown (in order
            of each subject's first quiz) and up to RECENT_HISTORY_LIMIT most
            recent results, newest first. Results with equal timestamps are
            ordered by insertion, later insertions first.
        """
        overall = OverallPerformance(
            quizzes_taken=len(self._history),
            questions_answered=sum(r.total_questions for r in self._history),
            correct_answers=sum(r.correct_answers for r in self._history),
        )

        grouped: Dict[str, List[QuizResult]] = {}
        for result in self._history:
            grouped.setdefault(result.subject_name, []).append(result)

        subjects = [
            SubjectPerformance(
                subject_name=name,
                quizzes_taken=len(results),
                questions_answered=sum(r.total_questions for r in results),
                correct_answers=sum(r.correct_answers for r in results),
                last_quiz_date=max(r.quiz_date for r in results),
                outstanding_wrong=len(self._wrong_by_subject.get(name, ())),
            )
            for name, results in grouped.items()
        ]

        ordered = sorted(
            enumerate(self._history),
            key=lambda pair: (pair[1].quiz_date, pair[0]),
            reverse=True,
        )
        recent = [result for _, result in ordered[:RECENT_HISTORY_LIMIT]]

        return PerformanceSummary(
            overall=overall, subjects=subjects, recent=recent
        )
