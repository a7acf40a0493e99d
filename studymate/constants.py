"""
StudyMate constants.

File names, display limits and score bands. No runtime configuration here;
the data directory is supplied by the CLI.
"""
from typing import Tuple

# Document file names inside the data directory.
FLASHCARDS_FILENAME: str = "flashcards.yml"
PERFORMANCE_FILENAME: str = "performance.json"

# Sub-directory (next to each document) that receives timestamped backups.
BACKUP_DIRNAME: str = "backups"

# Number of quiz results shown in the "recent history" part of a summary.
RECENT_HISTORY_LIMIT: int = 5

# Feedback bands shown after a quiz, checked top to bottom: (min score, text).
SCORE_FEEDBACK: Tuple[Tuple[float, str], ...] = (
    (80.0, "Excellent work!"),
    (60.0, "Good job! Keep studying!"),
    (0.0, "Keep practicing - you'll get better!"),
)

# Typing this as an answer abandons the running quiz.
QUIT_SENTINEL: str = ":q"
