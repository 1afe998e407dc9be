"""Access gate consulted before a student enrolls in a module.

``evaluate_access`` is the pure policy over gathered facts;
``AccessGate`` collects those facts from acquisitions and progression.

Category rules:
- free: only the assigned fellow cohort, everyone else is denied
- paid: fellows, purchasers and role-exempt users enter, others pay
- restricted: like paid, but may deny instead of offering a purchase
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from src.auth.permissions import UserRole, is_admin
from src.catalog.models import Category, CategoryAccessType, Module, ModuleLevel
from src.core.logging import get_logger


if TYPE_CHECKING:
    from src.acquisitions.service import AcquisitionService
    from src.progression.service import ProgressionService


logger = get_logger(__name__)

FELLOWS_ONLY_MESSAGE = (
    "This module is free only for fellows added by the admin. "
    "Please contact the admin to get access."
)
RESTRICTED_MESSAGE = "This category is restricted to eligible users."
INACTIVE_CATEGORY_MESSAGE = "This category is not available."


@dataclass(frozen=True)
class Allowed:
    pass


@dataclass(frozen=True)
class PaymentRequired:
    price: Decimal
    category_id: UUID
    category_name: str


@dataclass(frozen=True)
class LevelLocked:
    required_level: ModuleLevel
    module_level: ModuleLevel

    @property
    def message(self) -> str:
        return (
            f"You must complete and pass all {self.required_level.label} modules "
            f"before accessing {self.module_level.value} content."
        )


@dataclass(frozen=True)
class Denied:
    reason: str


AccessDecision = Allowed | PaymentRequired | LevelLocked | Denied


def evaluate_access(
    *,
    role: UserRole | str,
    category: Category,
    module_level: ModuleLevel,
    is_fellow: bool,
    has_purchase: bool,
    level_unlocked: bool,
) -> AccessDecision:
    """Decide whether a user may enroll in a module of ``category``."""
    if is_admin(role):
        return Allowed()

    if not category.is_active:
        return Denied(INACTIVE_CATEGORY_MESSAGE)

    role_value = role.value if isinstance(role, UserRole) else role

    match category.access_type:
        case CategoryAccessType.FREE:
            if not is_fellow:
                return Denied(FELLOWS_ONLY_MESSAGE)
        case CategoryAccessType.PAID | CategoryAccessType.RESTRICTED:
            eligible = is_fellow or has_purchase or role_value in category.allowed_roles
            if not eligible:
                if (
                    category.access_type == CategoryAccessType.RESTRICTED
                    and not category.payment_required_for_non_eligible
                ):
                    return Denied(RESTRICTED_MESSAGE)
                return PaymentRequired(
                    price=category.price,
                    category_id=category.id,
                    category_name=category.name,
                )

    previous = module_level.previous_level
    if previous is not None and not level_unlocked:
        return LevelLocked(required_level=previous, module_level=module_level)

    return Allowed()


class AccessGate:
    """Gathers access facts and evaluates them."""

    def __init__(
        self,
        acquisitions: "AcquisitionService",
        progression: "ProgressionService",
    ):
        self.acquisitions = acquisitions
        self.progression = progression

    async def can_enroll(
        self,
        user_id: UUID,
        role: UserRole | str,
        module: Module,
        category: Category,
    ) -> AccessDecision:
        if is_admin(role):
            return Allowed()

        facts = await self.acquisitions.get_access_facts(user_id, category.id)
        level_unlocked = await self.progression.can_access_level(
            user_id, category.id, module.level
        )

        decision = evaluate_access(
            role=role,
            category=category,
            module_level=module.level,
            is_fellow=facts.is_fellow,
            has_purchase=facts.has_purchase,
            level_unlocked=level_unlocked,
        )
        if not isinstance(decision, Allowed):
            logger.info(
                "enrollment_access_refused",
                user_id=str(user_id),
                module_id=str(module.id),
                category_id=str(category.id),
                decision=type(decision).__name__,
            )
        return decision
