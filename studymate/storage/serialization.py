"""
Conversion between data documents and StudyMate models, plus backup helpers.
Keeps the store and ledger free of format details.
"""

import shutil
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Tuple

from pydantic import ValidationError

from ..constants import BACKUP_DIRNAME
from ..exceptions import MarshallingError
from ..models import QuizResult, Subject


def subject_to_document(subject: Subject) -> Dict[str, Any]:
    """
    Serialize a Subject into a plain mapping for the flashcard store document.

    Returns:
        Dict[str, Any]: `{name, created_date, flashcards: [{id, question, answer, created_date}]}`
        with timestamps as ISO-8601 strings.
    """
    return subject.model_dump(mode="json")


def document_to_subjects(data: Any) -> List[Subject]:
    """
    Build Subject models from a parsed flashcard store document.

    Parameters:
        data (Any): Parsed document; `None` is treated as an empty store.

    Returns:
        List[Subject]: Subjects in document order.

    Raises:
        MarshallingError: If the document is not a list of valid subjects, or two
            subjects share a name ignoring case.
    """
    if data is None:
        return []
    if not isinstance(data, list):
        raise MarshallingError(
            "Flashcard document must be a list of subjects, "
            f"got {type(data).__name__}."
        )

    subjects: List[Subject] = []
    seen_names: Set[str] = set()
    for idx, raw_subject in enumerate(data):
        try:
            subject = Subject.model_validate(raw_subject)
        except ValidationError as e:
            raise MarshallingError(
                f"Invalid subject at index {idx}: {e}", original_exception=e
            ) from e
        key = subject.name.casefold()
        if key in seen_names:
            raise MarshallingError(
                f"Duplicate subject name in document: '{subject.name}'."
            )
        seen_names.add(key)
        subjects.append(subject)
    return subjects


def quiz_result_to_document(result: QuizResult) -> Dict[str, Any]:
    """Serialize a QuizResult; wrong ids are written sorted for stable output."""
    data = result.model_dump(mode="json")
    data["wrong_answer_ids"] = sorted(result.wrong_answer_ids)
    return data


def ledger_to_document(
    history: List[QuizResult], wrong_by_subject: Dict[str, Set[int]]
) -> Dict[str, Any]:
    return {
        "quiz_history": [quiz_result_to_document(r) for r in history],
        "wrong_answers_by_subject": {
            name: sorted(ids) for name, ids in wrong_by_subject.items()
        },
    }


def document_to_ledger(
    data: Any,
) -> Tuple[List[QuizResult], Dict[str, Set[int]]]:
    """
    Build ledger state from a parsed performance document.

    Missing `quiz_history` or `wrong_answers_by_subject` keys are read as
    empty. Duplicate ids in a wrong-answer list collapse.

    Returns:
        Tuple[List[QuizResult], Dict[str, Set[int]]]: History in document order
        and the per-subject wrong-id sets.

    Raises:
        MarshallingError: If the document shape or any entry is invalid.
    """
    if data is None:
        return [], {}
    if not isinstance(data, dict):
        raise MarshallingError(
            "Performance document must be a mapping, "
            f"got {type(data).__name__}."
        )

    raw_history = data.get("quiz_history") or []
    raw_wrong = data.get("wrong_answers_by_subject") or {}
    if not isinstance(raw_history, list):
        raise MarshallingError("'quiz_history' must be a list.")
    if not isinstance(raw_wrong, dict):
        raise MarshallingError("'wrong_answers_by_subject' must be a mapping.")

    history: List[QuizResult] = []
    for idx, raw_result in enumerate(raw_history):
        try:
            history.append(QuizResult.model_validate(raw_result))
        except ValidationError as e:
            raise MarshallingError(
                f"Invalid quiz result at index {idx}: {e}",
                original_exception=e,
            ) from e

    wrong_by_subject: Dict[str, Set[int]] = {}
    for subject_name, ids in raw_wrong.items():
        if not isinstance(ids, list) or not all(
            isinstance(i, int) and not isinstance(i, bool) for i in ids
        ):
            raise MarshallingError(
                f"Wrong answers for '{subject_name}' must be a list of integers."
            )
        if ids:
            wrong_by_subject[str(subject_name)] = set(ids)

    return history, wrong_by_subject


def find_latest_backup(document_path: Path) -> Optional[Path]:
    """
    Locate the most recent backup of a document.

    Parameters:
        document_path (Path): Path to the document; backups are looked up in a
            "backups" directory next to it.

    Returns:
        Path or None: The latest backup, or `None` if there is none.
    """
    backup_dir = document_path.parent / BACKUP_DIRNAME
    if not backup_dir.exists():
        return None

    backup_files = list(
        backup_dir.glob(
            f"{document_path.stem}-backup-*{document_path.suffix}"
        )
    )
    if not backup_files:
        return None

    # File names embed the timestamp, so the lexical maximum is the newest.
    return max(backup_files, key=lambda p: p.name)


def backup_document(document_path: Path) -> Path:
    """
    Create a timestamped copy of a document.

    Args:
        document_path: The document to back up.

    Returns:
        The path of the created backup, or `document_path` itself when there
        is nothing to back up yet.
    """
    if not document_path.exists():
        return document_path

    backup_dir = document_path.parent / BACKUP_DIRNAME
    backup_dir.mkdir(exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    backup_filename = (
        f"{document_path.stem}-backup-{timestamp}{document_path.suffix}"
    )
    backup_path = backup_dir / backup_filename

    shutil.copy2(document_path, backup_path)
    return backup_path
