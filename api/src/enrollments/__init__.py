"""Module enrollments: lessons, assessments, forced repeats, completion.

Note: Router is imported directly in main.py to avoid circular imports.
"""

from .models import (
    ENROLLMENTS_TABLES_CQL,
    AttemptRecord,
    EnrollmentState,
    LessonProgress,
    ModuleEnrollment,
)


__all__ = [
    "ENROLLMENTS_TABLES_CQL",
    "AttemptRecord",
    "EnrollmentState",
    "LessonProgress",
    "ModuleEnrollment",
]
