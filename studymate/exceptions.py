from typing import Optional


class StudyMateError(Exception):
    """Base exception for all StudyMate errors."""

    def __init__(
        self, message: str, original_exception: Optional[Exception] = None
    ):
        super().__init__(message)
        self.original_exception = original_exception


class StoreError(StudyMateError):
    """Raised for rejected flashcard store operations."""

    pass


class SessionError(StudyMateError):
    """Base class for the reasons a quiz session cannot be started."""

    pass


class NotFoundError(StoreError):
    """Raised when a subject or flashcard does not exist."""

    pass


class SubjectNotFoundError(NotFoundError, SessionError):
    """Raised when a subject name does not resolve to a stored subject."""

    def __init__(self, subject_name: str):
        super().__init__(f"Subject '{subject_name}' not found.")
        self.subject_name = subject_name


class FlashcardNotFoundError(NotFoundError):
    """Raised when a flashcard id is not present in its subject."""

    def __init__(self, subject_name: str, flashcard_id: int):
        super().__init__(
            f"Flashcard {flashcard_id} not found in subject '{subject_name}'."
        )
        self.subject_name = subject_name
        self.flashcard_id = flashcard_id


class EmptyInputError(StoreError):
    """Raised for blank subject names, questions or answers."""

    pass


class DuplicateSubjectError(StoreError):
    """Raised when a subject with the same name (ignoring case) exists."""

    pass


class NoFlashcardsError(SessionError):
    """Raised when a full quiz is requested for a subject without cards."""

    pass


class NothingToRetestError(SessionError):
    """Raised when a retest is requested but no wrong answers are recorded."""

    pass


class QuizSessionError(StudyMateError):
    """Indicates misuse of a QuizSession (answering past the end, etc.)."""

    pass


class QuizCancelled(StudyMateError):
    """Raised by an answer provider to abandon a running quiz."""

    def __init__(self, message: str = "Quiz cancelled by user."):
        super().__init__(message)


class PersistenceError(StudyMateError):
    """Indicates a failure reading or writing a data document."""

    pass


class MarshallingError(PersistenceError):
    """Indicates a document that could not be converted to or from models."""

    pass
