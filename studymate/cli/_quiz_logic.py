import random
from pathlib import Path
from typing import Optional

from studymate.cli._data_logic import open_ledger, open_store
from studymate.cli.quiz_ui import start_quiz_flow
from studymate.models import QuizMode, QuizResult
from studymate.quiz_engine import QuizSessionEngine


def quiz_logic(
    subject_name: str,
    data_dir: Path,
    mode: QuizMode = QuizMode.FULL,
    seed: Optional[int] = None,
) -> Optional[QuizResult]:
    """
    Set up and start a quiz for the specified subject.

    Loads the flashcard store and performance ledger from `data_dir`, builds a
    quiz engine around them and launches the interactive quiz flow, which
    records the result when the quiz completes.

    Parameters:
        subject_name (str): Name of the subject to quiz.
        data_dir (Path): Directory holding the flashcard and performance documents.
        mode (QuizMode): FULL for every flashcard, RETEST for flagged ones only.
        seed (Optional[int]): Seed for the question order; random when omitted.

    Returns:
        Optional[QuizResult]: The recorded result, or None if the quiz was cancelled.
    """
    store = open_store(data_dir)
    ledger = open_ledger(data_dir)

    rng = random.Random(seed) if seed is not None else None
    engine = QuizSessionEngine(store=store, ledger=ledger, rng=rng)

    return start_quiz_flow(engine, subject_name, mode)
