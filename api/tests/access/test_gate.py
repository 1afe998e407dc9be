"""Tests for the enrollment access policy."""

from decimal import Decimal
from uuid import uuid4

import pytest

from fakes import Engine, make_category, make_module
from src.access.gate import (
    FELLOWS_ONLY_MESSAGE,
    INACTIVE_CATEGORY_MESSAGE,
    RESTRICTED_MESSAGE,
    Allowed,
    Denied,
    LevelLocked,
    PaymentRequired,
    evaluate_access,
)
from src.auth.permissions import UserRole
from src.catalog.models import CategoryAccessType, ModuleLevel


def _evaluate(category, role="student", level=ModuleLevel.BEGINNER, **facts):
    return evaluate_access(
        role=role,
        category=category,
        module_level=level,
        is_fellow=facts.get("is_fellow", False),
        has_purchase=facts.get("has_purchase", False),
        level_unlocked=facts.get("level_unlocked", False),
    )


class TestFreeCategory:
    """Free categories are reserved for the fellow cohort."""

    def test_fellow_allowed(self) -> None:
        category = make_category(CategoryAccessType.FREE, Decimal(0))
        assert _evaluate(category, is_fellow=True) == Allowed()

    def test_non_fellow_denied(self) -> None:
        category = make_category(CategoryAccessType.FREE, Decimal(0))
        assert _evaluate(category, has_purchase=True) == Denied(FELLOWS_ONLY_MESSAGE)


class TestPaidCategory:
    """Paid categories admit fellows, purchasers and exempt roles."""

    def test_payment_required(self) -> None:
        category = make_category()
        decision = _evaluate(category)

        assert isinstance(decision, PaymentRequired)
        assert decision.price == Decimal("49.90")
        assert decision.category_name == "Clinical Pharmacy"

    @pytest.mark.parametrize("fact", ["is_fellow", "has_purchase"])
    def test_fellow_or_purchaser_allowed(self, fact: str) -> None:
        assert _evaluate(make_category(), **{fact: True}) == Allowed()

    def test_exempt_role_allowed(self) -> None:
        category = make_category(allowed_roles=frozenset({"instructor"}))
        assert _evaluate(category, role=UserRole.INSTRUCTOR) == Allowed()

    def test_admin_always_allowed(self) -> None:
        category = make_category(is_active=False)
        decision = _evaluate(category, role="admin", level=ModuleLevel.ADVANCED)
        assert decision == Allowed()

    def test_inactive_category_denied(self) -> None:
        category = make_category(is_active=False)
        assert _evaluate(category, has_purchase=True) == Denied(INACTIVE_CATEGORY_MESSAGE)


class TestRestrictedCategory:
    """Restricted categories may refuse a purchase path."""

    def test_no_purchase_path(self) -> None:
        category = make_category(
            CategoryAccessType.RESTRICTED, payment_required_for_non_eligible=False
        )
        assert _evaluate(category) == Denied(RESTRICTED_MESSAGE)

    def test_purchase_path(self) -> None:
        category = make_category(CategoryAccessType.RESTRICTED)
        assert isinstance(_evaluate(category), PaymentRequired)


class TestLevelLock:
    """Higher levels need the previous one completed."""

    def test_payment_is_checked_before_level(self) -> None:
        decision = _evaluate(make_category(), level=ModuleLevel.ADVANCED)
        assert isinstance(decision, PaymentRequired)

    def test_locked_level(self) -> None:
        decision = _evaluate(make_category(), level=ModuleLevel.ADVANCED, has_purchase=True)

        assert decision == LevelLocked(
            required_level=ModuleLevel.INTERMEDIATE, module_level=ModuleLevel.ADVANCED
        )
        assert decision.message == (
            "You must complete and pass all Intermediate modules "
            "before accessing advanced content."
        )

    def test_unlocked_level(self) -> None:
        decision = _evaluate(
            make_category(),
            level=ModuleLevel.INTERMEDIATE,
            has_purchase=True,
            level_unlocked=True,
        )
        assert decision == Allowed()


class TestAccessGate:
    """Tests for fact gathering."""

    @pytest.mark.asyncio
    async def test_uses_acquisitions_and_progression(self, engine: Engine) -> None:
        category = make_category()
        module = make_module(category, level=ModuleLevel.INTERMEDIATE)
        engine.catalog.add(category, module)
        student_id = uuid4()
        engine.acquisitions.grant(student_id, category.id, fellow=True)

        decision = await engine.gate.can_enroll(student_id, "student", module, category)

        assert isinstance(decision, LevelLocked)

    @pytest.mark.asyncio
    async def test_beginner_needs_no_progression(self, engine: Engine) -> None:
        category = make_category()
        module = make_module(category)
        student_id = uuid4()
        engine.acquisitions.grant(student_id, category.id)

        decision = await engine.gate.can_enroll(student_id, "student", module, category)

        assert decision == Allowed()
        assert engine.progressions.rows == {}
