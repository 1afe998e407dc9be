"""Curriculum catalog: categories, modules, lessons.

Note: Router is imported directly in main.py to avoid circular imports.
"""

from .models import (
    CATALOG_TABLES_CQL,
    LEVEL_ORDER,
    Category,
    CategoryAccessType,
    Lesson,
    Module,
    ModuleLevel,
    ModuleStatus,
)


__all__ = [
    "CATALOG_TABLES_CQL",
    "LEVEL_ORDER",
    "Category",
    "CategoryAccessType",
    "Lesson",
    "Module",
    "ModuleLevel",
    "ModuleStatus",
]
