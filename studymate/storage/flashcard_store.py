"""
File-backed store of subjects and their flashcards.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Union

from ..exceptions import (
    DuplicateSubjectError,
    EmptyInputError,
    FlashcardNotFoundError,
    MarshallingError,
    PersistenceError,
    SubjectNotFoundError,
)
from ..models import Flashcard, Subject
from .documents import YAML_CODEC, DocumentFile
from .serialization import document_to_subjects, subject_to_document

logger = logging.getLogger(__name__)


def _require_text(value: str, field_name: str) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise EmptyInputError(f"{field_name} cannot be empty.")
    return cleaned


class FlashcardStore:
    """
    Keyed collection of subjects, persisted write-through to a YAML document.

    Subject lookups ignore case. Everything handed out is an immutable
    snapshot; the only way to change the store is through `add_subject`,
    `add_flashcard` and `remove_flashcard`, each of which saves the whole
    document afterwards.
    """

    def __init__(
        self,
        document: DocumentFile,
        subjects: Optional[List[Subject]] = None,
    ):
        """
        Parameters:
            document (DocumentFile): Where the store is saved after every change.
            subjects (Optional[List[Subject]]): Initial subjects, in display order.
        """
        self._document = document
        self._subjects: List[Subject] = list(subjects or [])
        self.load_error: Optional[PersistenceError] = None
        self.last_save_error: Optional[PersistenceError] = None

    @classmethod
    def load(cls, document: DocumentFile) -> "FlashcardStore":
        """
        Load the store from its document.

        A missing document gives an empty store. An unreadable or malformed one
        also gives an empty store; the reason is logged and kept on
        `load_error`.
        """
        data, error = document.read()
        subjects: List[Subject] = []
        if error is None:
            try:
                subjects = document_to_subjects(data)
            except MarshallingError as e:
                error = e

        store = cls(document, subjects)
        if error is not None:
            logger.warning(
                f"Could not load flashcards from {document.path}; "
                f"starting with an empty store. Reason: {error}"
            )
            store.load_error = error
        else:
            logger.info(
                f"Loaded {len(subjects)} subject(s) from {document.path}"
            )
        return store

    @classmethod
    def open(cls, path: Union[str, Path]) -> "FlashcardStore":
        """Load the store kept in the YAML document at `path`."""
        return cls.load(DocumentFile(path, YAML_CODEC))

    @property
    def path(self) -> Path:
        return self._document.path

    def save(self) -> Optional[PersistenceError]:
        """
        Write the whole store to its document.

        Returns:
            Optional[PersistenceError]: The failure, if the write did not succeed.
            The in-memory state is kept either way.
        """
        error = self._document.write(
            [subject_to_document(s) for s in self._subjects]
        )
        self.last_save_error = error
        if error is not None:
            logger.error(f"Flashcard store not saved: {error}")
        return error

    def list_subjects(self) -> List[Subject]:
        return list(self._subjects)

    def _index_of(self, name: str) -> Optional[int]:
        for idx, subject in enumerate(self._subjects):
            if subject.matches_name(name):
                return idx
        return None

    def get_subject(self, name: str) -> Optional[Subject]:
        """Return the subject whose name matches `name` ignoring case, or None."""
        idx = self._index_of(name)
        return self._subjects[idx] if idx is not None else None

    def require_subject(self, name: str) -> Subject:
        subject = self.get_subject(name)
        if subject is None:
            raise SubjectNotFoundError(name)
        return subject

    def add_subject(self, name: str) -> Subject:
        """
        Create a new, empty subject.

        Raises:
            EmptyInputError: If the name is blank.
            DuplicateSubjectError: If a subject with this name exists (ignoring case).
        """
        cleaned = _require_text(name, "Subject name")
        if self._index_of(cleaned) is not None:
            raise DuplicateSubjectError(f"Subject '{cleaned}' already exists.")

        subject = Subject(name=cleaned)
        self._subjects.append(subject)
        logger.info(f"Created subject '{cleaned}'")
        self.save()
        return subject

    def add_flashcard(
        self,
        subject_name: str,
        question: str,
        answer: str,
        created_date: Optional[datetime] = None,
    ) -> Flashcard:
        """
        Append a flashcard to a subject.

        The new id is one past the subject's highest id (1 for an empty
        subject).

        Raises:
            EmptyInputError: If the question or answer is blank.
            SubjectNotFoundError: If the subject does not exist.
        """
        question = _require_text(question, "Question")
        answer = _require_text(answer, "Answer")
        idx = self._index_of(subject_name)
        if idx is None:
            raise SubjectNotFoundError(subject_name)

        subject = self._subjects[idx]
        flashcard = Flashcard(
            id=subject.next_flashcard_id(),
            question=question,
            answer=answer,
            created_date=created_date or datetime.now(timezone.utc),
        )
        self._subjects[idx] = subject.model_copy(
            update={"flashcards": subject.flashcards + (flashcard,)}
        )
        logger.info(
            f"Added flashcard {flashcard.id} to subject '{subject.name}'"
        )
        self.save()
        return flashcard

    def remove_flashcard(
        self, subject_name: str, flashcard_id: int
    ) -> Flashcard:
        """
        Delete a flashcard from a subject.

        Returns:
            Flashcard: The removed flashcard.

        Raises:
            SubjectNotFoundError: If the subject does not exist.
            FlashcardNotFoundError: If the subject has no flashcard with this id.
        """
        idx = self._index_of(subject_name)
        if idx is None:
            raise SubjectNotFoundError(subject_name)

        subject = self._subjects[idx]
        flashcard = subject.get_flashcard(flashcard_id)
        if flashcard is None:
            raise FlashcardNotFoundError(subject.name, flashcard_id)

        self._subjects[idx] = subject.model_copy(
            update={
                "flashcards": tuple(
                    c for c in subject.flashcards if c.id != flashcard_id
                )
            }
        )
        logger.info(
            f"Removed flashcard {flashcard_id} from subject '{subject.name}'"
        )
        self.save()
        return flashcard
