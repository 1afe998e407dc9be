# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Category acquisition service layer.

Business logic for:
- Answering "is this user a fellow / a purchaser" for a category
- Granting and revoking acquisitions (admin)
- Listing a user's acquisitions
"""

from datetime import UTC, datetime, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from src.core.errors import InvalidStateError, NotFoundError
from src.core.logging import get_logger
from src.core.redis import access_facts_key

from .models import (
    AccessFacts,
    AcquisitionStatus,
    AcquisitionType,
    CategoryAcquisition,
)


if TYPE_CHECKING:
    from cassandra.cluster import Session
    from redis.asyncio import Redis


logger = get_logger(__name__)

DEFAULT_CACHE_TTL_SECONDS = 300


class AcquisitionExistsError(InvalidStateError):
    """User already holds an active acquisition of that type."""

    def __init__(self, message: str = "User already has this access"):
        super().__init__(message, "acquisition_exists")


class AcquisitionNotFoundError(NotFoundError):
    """No active acquisition to revoke."""

    def __init__(self, message: str = "No active access found"):
        super().__init__(message, "acquisition_not_found")


class AcquisitionService:
    """Service for category acquisitions."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        redis: "Redis | None" = None,
        cache_ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS,
    ):
        """Initialize with Cassandra session and optional Redis."""
        self.session = session
        self.keyspace = keyspace
        self.redis = redis
        self.cache_ttl_seconds = cache_ttl_seconds
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        self._insert_acquisition = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.category_acquisitions
            (user_id, category_id, acquisition_id, acquisition_type, status,
             granted_by, granted_at, expires_at, payment_id, payment_amount,
             notes, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._insert_acquisition_by_category = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.acquisitions_by_category
            (category_id, user_id, acquisition_id, acquisition_type, status,
             granted_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """)
        self._get_user_category_acquisitions = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.category_acquisitions
            WHERE user_id = ? AND category_id = ?
        """)
        self._get_user_acquisitions = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.category_acquisitions
            WHERE user_id = ?
        """)
        self._update_status = self.session.prepare(f"""
            UPDATE {self.keyspace}.category_acquisitions
            SET status = ?, updated_at = ?
            WHERE user_id = ? AND category_id = ? AND acquisition_id = ?
        """)
        self._update_status_by_category = self.session.prepare(f"""
            UPDATE {self.keyspace}.acquisitions_by_category
            SET status = ?
            WHERE category_id = ? AND user_id = ? AND acquisition_id = ?
        """)

    # ==========================================================================
    # Access facts
    # ==========================================================================

    async def _list_for_category(
        self,
        user_id: UUID,
        category_id: UUID,
    ) -> list[CategoryAcquisition]:
        result = await self.session.aexecute(
            self._get_user_category_acquisitions, [user_id, category_id]
        )
        return [CategoryAcquisition.from_row(row) for row in result]

    async def get_access_facts(self, user_id: UUID, category_id: UUID) -> AccessFacts:
        """Fellowship and purchase status of a user for a category.

        Cached in Redis when available.
        """
        cache_key = access_facts_key(user_id, category_id)
        if self.redis:
            cached = await self.redis.get(cache_key)
            if cached is not None:
                return AccessFacts.from_cache(cached)

        facts = AccessFacts.from_acquisitions(
            await self._list_for_category(user_id, category_id)
        )

        if self.redis:
            await self.redis.setex(cache_key, self.cache_ttl_seconds, facts.to_cache())

        return facts

    async def _invalidate_cache(self, user_id: UUID, category_id: UUID) -> None:
        if self.redis:
            await self.redis.delete(access_facts_key(user_id, category_id))

    # ==========================================================================
    # Grant / Revoke
    # ==========================================================================

    async def grant_access(
        self,
        user_id: UUID,
        category_id: UUID,
        acquisition_type: AcquisitionType,
        granted_by: UUID,
        expires_in_days: int | None = None,
        payment_id: str | None = None,
        payment_amount: Decimal | None = None,
        notes: str | None = None,
    ) -> CategoryAcquisition:
        """Record an acquisition (admin action).

        Raises:
            AcquisitionExistsError: If an active acquisition of the same type exists
        """
        for existing in await self._list_for_category(user_id, category_id):
            if existing.acquisition_type == acquisition_type and existing.is_active():
                raise AcquisitionExistsError

        expires_at = None
        if expires_in_days is not None and expires_in_days > 0:
            expires_at = datetime.now(UTC) + timedelta(days=expires_in_days)

        acquisition = CategoryAcquisition(
            user_id=user_id,
            category_id=category_id,
            acquisition_type=acquisition_type,
            granted_by=granted_by,
            expires_at=expires_at,
            payment_id=payment_id,
            payment_amount=payment_amount,
            notes=notes,
        )
        await self._save_acquisition(acquisition)
        await self._invalidate_cache(user_id, category_id)

        logger.info(
            "access_granted",
            user_id=str(user_id),
            category_id=str(category_id),
            acquisition_type=acquisition_type.value,
            granted_by=str(granted_by),
            expires_in_days=expires_in_days,
        )
        return acquisition

    async def revoke_access(
        self,
        user_id: UUID,
        category_id: UUID,
        acquisition_type: AcquisitionType | None = None,
        reason: str | None = None,
    ) -> int:
        """Revoke active acquisitions, optionally only one type.

        Returns:
            Number of acquisitions revoked

        Raises:
            AcquisitionNotFoundError: If nothing active matched
        """
        targets = [
            a
            for a in await self._list_for_category(user_id, category_id)
            if a.is_active()
            and (acquisition_type is None or a.acquisition_type == acquisition_type)
        ]
        if not targets:
            raise AcquisitionNotFoundError

        now = datetime.now(UTC)
        for acquisition in targets:
            await self.session.aexecute(
                self._update_status,
                [
                    AcquisitionStatus.REVOKED.value,
                    now,
                    user_id,
                    category_id,
                    acquisition.acquisition_id,
                ],
            )
            await self.session.aexecute(
                self._update_status_by_category,
                [
                    AcquisitionStatus.REVOKED.value,
                    category_id,
                    user_id,
                    acquisition.acquisition_id,
                ],
            )

        await self._invalidate_cache(user_id, category_id)

        logger.info(
            "access_revoked",
            user_id=str(user_id),
            category_id=str(category_id),
            revoked=len(targets),
            reason=reason,
        )
        return len(targets)

    async def get_user_acquisitions(
        self,
        user_id: UUID,
        active_only: bool = False,
    ) -> list[CategoryAcquisition]:
        """Get all acquisitions for a user."""
        result = await self.session.aexecute(self._get_user_acquisitions, [user_id])
        acquisitions = [CategoryAcquisition.from_row(row) for row in result]
        if active_only:
            return [a for a in acquisitions if a.is_active()]
        return acquisitions

    async def _save_acquisition(self, acquisition: CategoryAcquisition) -> None:
        await self.session.aexecute(
            self._insert_acquisition,
            [
                acquisition.user_id,
                acquisition.category_id,
                acquisition.acquisition_id,
                acquisition.acquisition_type.value,
                acquisition.status.value,
                acquisition.granted_by,
                acquisition.granted_at,
                acquisition.expires_at,
                acquisition.payment_id,
                acquisition.payment_amount,
                acquisition.notes,
                acquisition.created_at,
                acquisition.updated_at,
            ],
        )
        await self.session.aexecute(
            self._insert_acquisition_by_category,
            [
                acquisition.category_id,
                acquisition.user_id,
                acquisition.acquisition_id,
                acquisition.acquisition_type.value,
                acquisition.status.value,
                acquisition.granted_at,
            ],
        )
