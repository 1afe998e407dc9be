"""Category acquisition models and Cassandra schema.

Tracks how users hold access to a category:
- FELLOWSHIP: Admin-assigned fellow cohort, free access everywhere
- PURCHASE: Paid for a paid/restricted category
- ADMIN_GRANT: Manually granted by admin, counts as a purchase
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID, uuid4


if TYPE_CHECKING:
    from cassandra.cluster import Row


class AcquisitionType(str, Enum):
    """How the user acquired access to the category."""

    FELLOWSHIP = "fellowship"  # Fellow cohort assigned by admin
    PURCHASE = "purchase"  # Paid via payment gateway
    ADMIN_GRANT = "admin_grant"  # Manually granted by admin


class AcquisitionStatus(str, Enum):
    """Current status of the acquisition."""

    PENDING = "pending"  # Awaiting payment confirmation
    ACTIVE = "active"  # Access is active
    EXPIRED = "expired"  # Access has expired
    REVOKED = "revoked"  # Revoked by admin


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

CATEGORY_ACQUISITIONS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.category_acquisitions (
    user_id UUID,
    category_id UUID,
    acquisition_id UUID,
    acquisition_type TEXT,
    status TEXT,
    granted_by UUID,
    granted_at TIMESTAMP,
    expires_at TIMESTAMP,
    payment_id TEXT,
    payment_amount DECIMAL,
    notes TEXT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP,
    PRIMARY KEY ((user_id), category_id, acquisition_id)
) WITH CLUSTERING ORDER BY (category_id ASC, acquisition_id DESC)
"""

ACQUISITIONS_BY_CATEGORY_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.acquisitions_by_category (
    category_id UUID,
    user_id UUID,
    acquisition_id UUID,
    acquisition_type TEXT,
    status TEXT,
    granted_at TIMESTAMP,
    PRIMARY KEY ((category_id), user_id, acquisition_id)
)
"""

ACQUISITIONS_TABLES_CQL = [
    CATEGORY_ACQUISITIONS_TABLE_CQL,
    ACQUISITIONS_BY_CATEGORY_TABLE_CQL,
]


# ==============================================================================
# Entity
# ==============================================================================


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


@dataclass
class CategoryAcquisition:
    """A user's hold on a category."""

    user_id: UUID
    category_id: UUID
    acquisition_type: AcquisitionType
    status: AcquisitionStatus = AcquisitionStatus.ACTIVE
    acquisition_id: UUID = field(default_factory=uuid4)
    granted_by: UUID | None = None
    granted_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    expires_at: datetime | None = None
    payment_id: str | None = None
    payment_amount: Decimal | None = None
    notes: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def from_row(cls, row: "Row") -> "CategoryAcquisition":
        """Create instance from Cassandra row."""
        return cls(
            user_id=row.user_id,
            category_id=row.category_id,
            acquisition_id=row.acquisition_id,
            acquisition_type=AcquisitionType(row.acquisition_type),
            status=AcquisitionStatus(row.status),
            granted_by=row.granted_by,
            granted_at=ensure_utc_aware(row.granted_at) or datetime.now(UTC),
            expires_at=ensure_utc_aware(row.expires_at),
            payment_id=row.payment_id,
            payment_amount=row.payment_amount,
            notes=row.notes,
            created_at=ensure_utc_aware(row.created_at) or datetime.now(UTC),
            updated_at=ensure_utc_aware(row.updated_at) or datetime.now(UTC),
        )

    def is_active(self) -> bool:
        """Check if acquisition grants active access."""
        if self.status != AcquisitionStatus.ACTIVE:
            return False
        return not (self.expires_at and datetime.now(UTC) > self.expires_at)

    @property
    def counts_as_purchase(self) -> bool:
        return self.acquisition_type in (
            AcquisitionType.PURCHASE,
            AcquisitionType.ADMIN_GRANT,
        )


@dataclass(frozen=True)
class AccessFacts:
    """What a user's active acquisitions say about one category."""

    is_fellow: bool = False
    has_purchase: bool = False

    def to_cache(self) -> str:
        return f"{int(self.is_fellow)}{int(self.has_purchase)}"

    @classmethod
    def from_cache(cls, value: bytes | str) -> "AccessFacts":
        raw = value.decode() if isinstance(value, bytes) else value
        return cls(is_fellow=raw[:1] == "1", has_purchase=raw[1:2] == "1")

    @classmethod
    def from_acquisitions(
        cls,
        acquisitions: list[CategoryAcquisition],
    ) -> "AccessFacts":
        active = [a for a in acquisitions if a.is_active()]
        return cls(
            is_fellow=any(
                a.acquisition_type == AcquisitionType.FELLOWSHIP for a in active
            ),
            has_purchase=any(a.counts_as_purchase for a in active),
        )
