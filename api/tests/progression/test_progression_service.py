"""Tests for the progression service and endpoints."""

from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient

from fakes import Engine, auth_headers, make_category, make_module, make_user
from src.catalog.models import ModuleLevel, ModuleStatus
from src.core.errors import ConcurrencyConflictError


def _category_with_modules(engine: Engine):
    category = make_category()
    first = make_module(category)
    second = make_module(category)
    intermediate = make_module(category, level=ModuleLevel.INTERMEDIATE)
    draft = make_module(category, level=ModuleLevel.ADVANCED, status=ModuleStatus.DRAFT)
    engine.catalog.add(category, first, second, intermediate, draft)
    return category, first, second


class TestInitialize:
    """Tests for lazy progression creation."""

    @pytest.mark.asyncio
    async def test_counts_published_modules_only(self, engine: Engine) -> None:
        category, _, _ = _category_with_modules(engine)

        progression = await engine.progression.initialize(uuid4(), category.id)

        assert progression.level(ModuleLevel.BEGINNER).total_modules == 2
        assert progression.level(ModuleLevel.INTERMEDIATE).total_modules == 1
        assert progression.level(ModuleLevel.ADVANCED).total_modules == 0

    @pytest.mark.asyncio
    async def test_second_call_returns_stored(self, engine: Engine) -> None:
        category, _, _ = _category_with_modules(engine)
        student_id = uuid4()

        first = await engine.progression.initialize(student_id, category.id)
        second = await engine.progression.initialize(student_id, category.id)

        assert first.created_at == second.created_at
        assert len(engine.progressions.rows) == 1


class TestModuleCompleted:
    """Tests for recording completions."""

    @pytest.mark.asyncio
    async def test_unlock_after_all_beginner_modules(self, engine: Engine) -> None:
        category, first, second = _category_with_modules(engine)
        student_id = uuid4()

        assert await engine.progression.on_module_completed(student_id, first) is None
        unlocked = await engine.progression.on_module_completed(student_id, second)

        assert unlocked == ModuleLevel.INTERMEDIATE
        assert await engine.progression.can_access_level(
            student_id, category.id, ModuleLevel.INTERMEDIATE
        )

    @pytest.mark.asyncio
    async def test_is_idempotent(self, engine: Engine) -> None:
        category, first, _ = _category_with_modules(engine)
        student_id = uuid4()

        await engine.progression.on_module_completed(student_id, first)
        await engine.progression.on_module_completed(student_id, first)

        progression = await engine.progression.get_progression(student_id, category.id)
        assert progression.level(ModuleLevel.BEGINNER).completed_modules == 1
        assert progression.version == 1

    @pytest.mark.asyncio
    async def test_conflicts_exhaust_retries(self, engine: Engine) -> None:
        _, first, _ = _category_with_modules(engine)
        engine.progressions.fail_writes = True

        with pytest.raises(ConcurrencyConflictError):
            await engine.progression.on_module_completed(uuid4(), first)


class TestLevelAccessStatus:
    """Tests for the read-only level status projection."""

    @pytest.mark.asyncio
    async def test_missing_progression_is_projected_not_created(
        self, engine: Engine
    ) -> None:
        statuses = await engine.progression.get_level_access_status(uuid4(), uuid4())

        assert [s.is_unlocked for s in statuses] == [True, False, False]
        assert statuses[0].reason is None
        assert statuses[1].reason.startswith("Complete and pass all Beginner")
        assert all(s.total_modules == 0 for s in statuses)
        assert engine.progressions.rows == {}

    @pytest.mark.asyncio
    async def test_reflects_stored_progression(self, engine: Engine) -> None:
        category, first, second = _category_with_modules(engine)
        student_id = uuid4()
        await engine.progression.on_module_completed(student_id, first)
        await engine.progression.on_module_completed(student_id, second)

        statuses = await engine.progression.get_level_access_status(student_id, category.id)

        assert [s.is_unlocked for s in statuses] == [True, True, False]
        assert statuses[0].is_completed is True
        assert statuses[0].completed_modules == 2


class TestProgressionEndpoints:
    """Tests for /v1/progression."""

    def test_level_status(self, engine_client: TestClient, engine: Engine) -> None:
        category, _, _ = _category_with_modules(engine)
        student = make_user()

        response = engine_client.get(
            f"/v1/progression/category/{category.id}/level-status",
            headers=auth_headers(student),
        )

        assert response.status_code == 200
        data = response.json()
        assert [s["level"] for s in data] == ["beginner", "intermediate", "advanced"]
        assert data[0]["is_unlocked"] is True
        assert data[2]["reason"].startswith("Complete and pass all Intermediate")
        assert engine.progressions.rows == {}

    def test_level_access_check(self, engine_client: TestClient, engine: Engine) -> None:
        category, _, _ = _category_with_modules(engine)

        response = engine_client.get(
            f"/v1/progression/category/{category.id}/level/intermediate/access",
            headers=auth_headers(make_user()),
        )

        assert response.json() == {"level": "intermediate", "can_access": False}

    def test_progression_created_on_read(
        self, engine_client: TestClient, engine: Engine
    ) -> None:
        category, _, _ = _category_with_modules(engine)
        student = make_user()

        response = engine_client.get(
            f"/v1/progression/category/{category.id}", headers=auth_headers(student)
        )

        assert response.status_code == 200
        assert response.json()["total_modules_in_category"] == 3
        assert (UUID(str(student.id)), category.id) in engine.progressions.rows
