"""Category acquisitions module.

Tracks how users hold access to categories:
- AcquisitionType: FELLOWSHIP, PURCHASE, ADMIN_GRANT
- AcquisitionStatus: PENDING, ACTIVE, EXPIRED, REVOKED
- AccessFacts: fellow / purchaser summary consumed by the access gate

Note: Router is imported directly in main.py to avoid circular imports.
"""

from .models import (
    ACQUISITIONS_TABLES_CQL,
    AccessFacts,
    AcquisitionStatus,
    AcquisitionType,
    CategoryAcquisition,
)
from .service import AcquisitionService


__all__ = [
    "ACQUISITIONS_TABLES_CQL",
    "AccessFacts",
    "AcquisitionService",
    "AcquisitionStatus",
    "AcquisitionType",
    "CategoryAcquisition",
]
