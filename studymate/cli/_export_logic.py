"""
Contains the business logic for exporting subjects to Markdown.
This logic is called by the CLI commands in main.py.
"""

import logging
from pathlib import Path
from typing import Optional, Set

from studymate.ledger import PerformanceLedger
from studymate.storage.flashcard_store import FlashcardStore

logger = logging.getLogger(__name__)


def _safe_filename(subject_name: str) -> str:
    safe_name = "".join(
        c for c in subject_name if c.isalnum() or c in (" ", "_", "-")
    ).strip()
    return safe_name or "unnamed_subject"


def _unique_filename(base_name: str, used_names: Set[str]) -> str:
    """Append _2, _3, ... until the name differs (ignoring case) from every used one."""
    candidate = base_name
    suffix = 2
    while candidate.casefold() in used_names:
        candidate = f"{base_name}_{suffix}"
        suffix += 1
    used_names.add(candidate.casefold())
    return candidate


def export_to_markdown(
    store: FlashcardStore,
    output_dir: Path,
    ledger: Optional[PerformanceLedger] = None,
) -> int:
    """
    Export every subject into its own Markdown file under output_dir.

    Creates the output directory if missing (raises IOError on failure). Each
    file starts with a header naming the subject, followed by its flashcards in
    id order. When a ledger is given, flashcards flagged for retest are marked.
    A failure writing one subject is logged and does not stop the others.

    Parameters:
        store (FlashcardStore): Source of subjects and flashcards.
        output_dir (Path): Destination directory for generated Markdown files.
        ledger (Optional[PerformanceLedger]): Used to mark flashcards to retest.

    Returns:
        int: Number of files written.

    Raises:
        IOError: If the output directory cannot be created.
    """
    logger.info(f"Starting Markdown export to directory: {output_dir}")

    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.error(f"Could not create output directory {output_dir}: {e}")
        raise IOError(f"Failed to create output directory: {e}") from e

    subjects = store.list_subjects()
    if not subjects:
        logger.warning("No subjects found to export.")
        return 0

    exported_files = 0
    used_names: Set[str] = set()
    for subject in subjects:
        wrong_ids = ledger.wrong_ids(subject.name) if ledger else frozenset()
        file_name = _unique_filename(_safe_filename(subject.name), used_names)
        file_path = output_dir / f"{file_name}.md"

        try:
            with open(file_path, "w", encoding="utf-8") as f:
                f.write(f"# Subject: {subject.name}\n\n")
                if not subject.flashcards:
                    f.write("_No flashcards yet._\n")
                for card in sorted(subject.flashcards, key=lambda c: c.id):
                    f.write(f"**Q{card.id}:** {card.question}\n\n")
                    f.write(f"**A:** {card.answer}\n\n")
                    if card.id in wrong_ids:
                        f.write("**Needs retest**\n\n")
                    f.write("---\n\n")
            logger.info(
                f"Exported {len(subject.flashcards)} flashcards to {file_path}"
            )
            exported_files += 1
        except IOError as e:
            logger.error(f"Could not write to file {file_path}: {e}")

    logger.info(
        f"Markdown export complete. Exported {len(subjects)} subject(s) "
        f"to {exported_files} file(s)."
    )
    return exported_files
