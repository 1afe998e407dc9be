"""Student level progression per category.

Note: Router is imported directly in main.py to avoid circular imports.
"""

from .models import (
    PROGRESSION_TABLES_CQL,
    LevelProgress,
    LevelStatus,
    StudentProgression,
)
from .repository import ProgressionRepository
from .service import ProgressionService


__all__ = [
    "PROGRESSION_TABLES_CQL",
    "LevelProgress",
    "LevelStatus",
    "ProgressionRepository",
    "ProgressionService",
    "StudentProgression",
]
