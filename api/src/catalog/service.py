# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Catalog service layer.

Business logic for:
- Category creation and lookup
- Module authoring and the review/publish lifecycle
- Published module counts per level (feeds progression)
- Module enrollment counters
"""

from collections import Counter
from collections.abc import Sequence
from datetime import UTC, datetime
from functools import partial
from typing import TYPE_CHECKING
from uuid import UUID

from src.assessments.models import (
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_PASSING_SCORE,
    FinalAssessment,
    LessonAssessment,
    question_from_dict,
)
from src.auth.permissions import is_admin
from src.core.errors import ForbiddenError, InvalidStateError, NotFoundError
from src.core.logging import get_logger

from .models import (
    MODULE_TRANSITIONS,
    Category,
    CategoryAccessType,
    Lesson,
    Module,
    ModuleLevel,
    ModuleStatus,
)
from .schemas import CreateCategoryRequest, CreateModuleRequest


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from src.auth.schemas import UserResponse
    from src.email.service import EmailService
    from src.notifications.dispatcher import SideEffectDispatcher


logger = get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class CategoryNotFoundError(NotFoundError):
    """Category not found."""

    def __init__(self, message: str = "Category not found"):
        super().__init__(message, "category_not_found")


class ModuleNotFoundError(NotFoundError):
    """Module not found."""

    def __init__(self, message: str = "Module not found"):
        super().__init__(message, "module_not_found")


class ModuleTransitionError(InvalidStateError):
    """Requested status change is not allowed from the current status."""

    def __init__(self, current: ModuleStatus, target: ModuleStatus):
        super().__init__(
            f"Cannot move module from {current.value} to {target.value}",
            "invalid_module_transition",
        )


class ModuleIncompleteError(InvalidStateError):
    """Module lacks lessons or final assessment questions."""

    def __init__(self, message: str):
        super().__init__(message, "module_incomplete")


class NotModuleInstructorError(ForbiddenError):
    """User is not assigned to the module."""

    def __init__(self, message: str = "You are not an instructor of this module"):
        super().__init__(message, "not_module_instructor")


def _or_default(value: int | None, default: int) -> int:
    return default if value is None else value


def build_lessons(
    data: CreateModuleRequest,
    passing_score: int = DEFAULT_PASSING_SCORE,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
) -> list[Lesson]:
    """Turn request lessons into domain lessons, keeping request order.

    Unset thresholds fall back to ``passing_score`` and ``max_attempts``.
    """
    lessons = []
    for order, item in enumerate(data.lessons):
        assessment = None
        if item.assessment is not None:
            assessment = LessonAssessment(
                title=item.assessment.title,
                questions=tuple(
                    question_from_dict(q.model_dump())
                    for q in item.assessment.questions
                ),
                passing_score=_or_default(item.assessment.passing_score, passing_score),
                max_attempts=_or_default(item.assessment.max_attempts, max_attempts),
            )
        lessons.append(
            Lesson(
                title=item.title,
                order=order,
                description=item.description,
                content=item.content,
                assessment=assessment,
            )
        )
    return lessons


def build_final_assessment(
    data: CreateModuleRequest,
    passing_score: int = DEFAULT_PASSING_SCORE,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
) -> FinalAssessment | None:
    if data.final_assessment is None:
        return None
    final = data.final_assessment
    return FinalAssessment(
        title=final.title,
        description=final.description,
        questions=tuple(question_from_dict(q.model_dump()) for q in final.questions),
        passing_score=_or_default(final.passing_score, passing_score),
        max_attempts=_or_default(final.max_attempts, max_attempts),
        time_limit_minutes=final.time_limit_minutes,
    )


def ensure_submittable(module: Module) -> None:
    """A module needs lessons and a final assessment with questions.

    Raises:
        ModuleIncompleteError: If either is missing
    """
    if not module.lessons:
        raise ModuleIncompleteError("Module must have at least one lesson")
    if module.final_assessment is None or not module.final_assessment.questions:
        raise ModuleIncompleteError(
            "Module must have a final assessment with at least one question"
        )


class CatalogService:
    """Service for categories and modules."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        dispatcher: "SideEffectDispatcher | None" = None,
        email_service: "EmailService | None" = None,
        admin_emails: Sequence[str] = (),
        default_passing_score: int = DEFAULT_PASSING_SCORE,
        default_max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ):
        """Initialize with Cassandra session and optional admin mail delivery."""
        self.session = session
        self.keyspace = keyspace
        self.dispatcher = dispatcher
        self.email_service = email_service
        self.admin_emails = list(admin_emails)
        self.default_passing_score = default_passing_score
        self.default_max_attempts = default_max_attempts
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements."""
        # Categories
        self._insert_category = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.categories
            (id, name, description, access_type, price, allowed_roles,
             payment_required_for_non_eligible, is_active, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._get_category = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.categories WHERE id = ?"
        )
        self._list_categories = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.categories"
        )

        # Modules
        self._insert_module = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.modules
            (id, title, description, category_id, level, status, instructor_ids,
             lessons, final_assessment, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._get_module = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.modules WHERE id = ?"
        )
        # Status changes are guarded so two reviewers cannot race each other
        self._update_module_status = self.session.prepare(f"""
            UPDATE {self.keyspace}.modules
            SET status = ?, rejection_reason = ?, submitted_at = ?,
                approved_at = ?, published_at = ?, updated_at = ?
            WHERE id = ?
            IF status = ?
        """)

        # Lookup by category
        self._upsert_module_by_category = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.modules_by_category
            (category_id, module_id, level, status)
            VALUES (?, ?, ?, ?)
        """)
        self._list_modules_by_category = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.modules_by_category
            WHERE category_id = ?
        """)

        # Counters
        self._increment_enrollment_count = self.session.prepare(f"""
            UPDATE {self.keyspace}.module_enrollment_counts
            SET enrollment_count = enrollment_count + 1
            WHERE module_id = ?
        """)
        self._get_enrollment_count = self.session.prepare(f"""
            SELECT enrollment_count FROM {self.keyspace}.module_enrollment_counts
            WHERE module_id = ?
        """)

    # ==========================================================================
    # Categories
    # ==========================================================================

    async def create_category(self, data: CreateCategoryRequest) -> Category:
        """Create a new category."""
        category = Category(
            name=data.name,
            description=data.description,
            access_type=CategoryAccessType(data.access_type),
            price=data.price,
            allowed_roles=frozenset(data.allowed_roles),
            payment_required_for_non_eligible=data.payment_required_for_non_eligible,
        )
        await self.session.aexecute(
            self._insert_category,
            [
                category.id,
                category.name,
                category.description,
                category.access_type.value,
                category.price,
                set(category.allowed_roles) or None,
                category.payment_required_for_non_eligible,
                category.is_active,
                category.created_at,
                category.updated_at,
            ],
        )
        logger.info(
            "category_created",
            category_id=str(category.id),
            access_type=category.access_type.value,
        )
        return category

    async def get_category(self, category_id: UUID) -> Category | None:
        """Get category by ID."""
        result = await self.session.aexecute(self._get_category, [category_id])
        row = result.one()
        return Category.from_row(row) if row else None

    async def require_category(self, category_id: UUID) -> Category:
        category = await self.get_category(category_id)
        if category is None:
            raise CategoryNotFoundError
        return category

    async def list_categories(self) -> list[Category]:
        """List all categories."""
        result = await self.session.aexecute(self._list_categories)
        return [Category.from_row(row) for row in result]

    # ==========================================================================
    # Modules
    # ==========================================================================

    async def create_module(
        self,
        data: CreateModuleRequest,
        creator_id: UUID,
    ) -> Module:
        """Create a draft module; the creator is its first instructor."""
        await self.require_category(data.category_id)

        instructor_ids = [creator_id]
        instructor_ids.extend(i for i in data.instructor_ids if i != creator_id)

        module = Module(
            title=data.title,
            description=data.description,
            category_id=data.category_id,
            level=ModuleLevel(data.level),
            instructor_ids=instructor_ids,
            lessons=build_lessons(
                data, self.default_passing_score, self.default_max_attempts
            ),
            final_assessment=build_final_assessment(
                data, self.default_passing_score, self.default_max_attempts
            ),
        )

        await self.session.aexecute(
            self._insert_module,
            [
                module.id,
                module.title,
                module.description,
                module.category_id,
                module.level.value,
                module.status.value,
                module.instructor_ids,
                module.lessons_json(),
                module.final_assessment_json(),
                module.created_at,
                module.updated_at,
            ],
        )
        await self.session.aexecute(
            self._upsert_module_by_category,
            [module.category_id, module.id, module.level.value, module.status.value],
        )

        logger.info(
            "module_created",
            module_id=str(module.id),
            category_id=str(module.category_id),
            level=module.level.value,
            lesson_count=module.total_lessons,
        )
        return module

    async def get_module(self, module_id: UUID) -> Module | None:
        """Get module by ID."""
        result = await self.session.aexecute(self._get_module, [module_id])
        row = result.one()
        return Module.from_row(row) if row else None

    async def require_module(self, module_id: UUID) -> Module:
        module = await self.get_module(module_id)
        if module is None:
            raise ModuleNotFoundError
        return module

    async def _transition(
        self,
        module: Module,
        target: ModuleStatus,
        rejection_reason: str | None = None,
    ) -> Module:
        current = module.status
        if target not in MODULE_TRANSITIONS[current]:
            raise ModuleTransitionError(current, target)

        now = datetime.now(UTC)
        module.status = target
        module.updated_at = now
        match target:
            case ModuleStatus.SUBMITTED:
                module.submitted_at = now
                module.rejection_reason = None
            case ModuleStatus.APPROVED:
                module.approved_at = now
            case ModuleStatus.REJECTED:
                module.rejection_reason = rejection_reason
            case ModuleStatus.PUBLISHED:
                module.published_at = now

        result = await self.session.aexecute(
            self._update_module_status,
            [
                module.status.value,
                module.rejection_reason,
                module.submitted_at,
                module.approved_at,
                module.published_at,
                module.updated_at,
                module.id,
                current.value,
            ],
        )
        if not result.was_applied:
            # Someone else moved the module first
            fresh = await self.require_module(module.id)
            raise ModuleTransitionError(fresh.status, target)

        await self.session.aexecute(
            self._upsert_module_by_category,
            [module.category_id, module.id, module.level.value, module.status.value],
        )

        logger.info(
            "module_status_changed",
            module_id=str(module.id),
            from_status=current.value,
            to_status=target.value,
        )
        return module

    async def submit_module(self, module_id: UUID, user: "UserResponse") -> Module:
        """Submit a module for admin review.

        Raises:
            NotModuleInstructorError: If user is neither assigned nor admin
            ModuleIncompleteError: If lessons or final questions are missing
            ModuleTransitionError: If the module is not draft/rejected
        """
        module = await self.require_module(module_id)
        if not is_admin(user.role) and not module.is_instructor(UUID(str(user.id))):
            raise NotModuleInstructorError

        ensure_submittable(module)
        module = await self._transition(module, ModuleStatus.SUBMITTED)
        self._notify_admins_of_submission(module, user.name or user.email)
        return module

    async def review_module(
        self,
        module_id: UUID,
        approve: bool,
        reason: str | None = None,
    ) -> Module:
        """Approve or reject a submitted module (admin)."""
        module = await self.require_module(module_id)
        target = ModuleStatus.APPROVED if approve else ModuleStatus.REJECTED
        return await self._transition(module, target, rejection_reason=reason)

    async def publish_module(self, module_id: UUID) -> Module:
        """Open an approved module for enrollment (admin)."""
        module = await self.require_module(module_id)
        return await self._transition(module, ModuleStatus.PUBLISHED)

    async def archive_module(self, module_id: UUID) -> Module:
        """Retire a published module (admin)."""
        module = await self.require_module(module_id)
        return await self._transition(module, ModuleStatus.ARCHIVED)

    def _notify_admins_of_submission(self, module: Module, submitted_by: str) -> None:
        if not (self.dispatcher and self.email_service and self.admin_emails):
            return
        for address in self.admin_emails:
            self.dispatcher.dispatch(
                "module_submitted_email",
                partial(
                    self.email_service.send_module_submitted_email,
                    to_email=address,
                    module_title=module.title,
                    module_id=module.id,
                    submitted_by=submitted_by,
                ),
            )

    # ==========================================================================
    # Counts
    # ==========================================================================

    async def count_published_modules_by_level(
        self,
        category_id: UUID,
    ) -> dict[ModuleLevel, int]:
        """Count published modules in a category, per level."""
        result = await self.session.aexecute(
            self._list_modules_by_category, [category_id]
        )
        counts: Counter[ModuleLevel] = Counter()
        for row in result:
            if row.status == ModuleStatus.PUBLISHED.value:
                counts[ModuleLevel(row.level)] += 1
        return {level: counts.get(level, 0) for level in ModuleLevel}

    async def increment_enrollment_count(self, module_id: UUID) -> None:
        await self.session.aexecute(self._increment_enrollment_count, [module_id])

    async def get_enrollment_count(self, module_id: UUID) -> int:
        result = await self.session.aexecute(self._get_enrollment_count, [module_id])
        row = result.one()
        return row.enrollment_count if row and row.enrollment_count else 0
