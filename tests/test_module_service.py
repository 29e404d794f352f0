"""Tests for ModuleService across both module conventions."""

import pytest

from coursehub.core.errors import ConflictError, NotFoundError, StoreUnavailableError, ValidationError
from coursehub.courses.module_service import ModuleService


@pytest.fixture
def service(store, events):
    return ModuleService(store, events)


class TestModuleReads:
    @pytest.mark.asyncio
    async def test_singular_collection_fallback(self, store, service):
        store.seed("courses", "c1", {"courseName": "Legacy"})
        store.seed("courses/c1/module", "m2", {"title": "Second", "order": 2})
        store.seed("courses/c1/module", "m1", {"title": "First", "order": 1})

        modules = await service.get_all_for_course("c1")

        assert [m["moduleId"] for m in modules] == ["m1", "m2"]
        assert all(m["source"] == "module" for m in modules)
        assert all(m["courseId"] == "c1" for m in modules)

    @pytest.mark.asyncio
    async def test_get_all_dedupes_and_sorts_across_courses(self, store, service):
        store.seed("courses", "b_course", {"courseName": "B"})
        store.seed("courses", "a_course", {"courseName": "A"})
        store.seed("courses/b_course/modules", "b1", {"title": "B1", "order": 1})
        store.seed("courses/a_course/modules", "a2", {"title": "A2", "order": 2})
        store.seed("courses/a_course/module", "a1", {"title": "A1", "order": 1})
        # Same module id under both conventions: the plural copy is kept
        store.seed("courses/a_course/module", "a2", {"title": "A2 old", "order": 9})

        modules = await service.get_all()

        assert [(m["courseId"], m["moduleId"]) for m in modules] == [
            ("a_course", "a1"),
            ("a_course", "a2"),
            ("b_course", "b1"),
        ]
        assert modules[1]["title"] == "A2"

    @pytest.mark.asyncio
    async def test_missing_order_sorts_as_zero(self, store, service):
        store.seed("courses/c1/modules", "late", {"title": "Late", "order": 3})
        store.seed("courses/c1/modules", "unordered", {"title": "No order"})

        modules = await service.get_all_for_course("c1")

        assert [m["moduleId"] for m in modules] == ["unordered", "late"]

    @pytest.mark.asyncio
    async def test_get_by_id_missing(self, service):
        assert await service.get_by_id("c1", "nope") is None

    @pytest.mark.asyncio
    async def test_listing_fails_only_when_every_probe_fails(self, store, service):
        store.seed("courses/c1/module", "m1", {"title": "Old"})
        store.failing_paths.add("courses/c1/modules")
        assert len(await service.get_all_for_course("c1")) == 1

        store.failing_paths.add("courses/c1/module")
        with pytest.raises(StoreUnavailableError):
            await service.get_all_for_course("c1")


class TestModuleWrites:
    @pytest.mark.asyncio
    async def test_create_derives_id_from_title(self, store, service):
        store.seed("courses", "c1", {"courseName": "Course"})

        module = await service.create("c1", {"title": "Intro to  Python", "order": 1})

        assert module["moduleId"] == "intro_to_python"
        assert module["source"] == "modules"
        assert store.raw("courses/c1/modules", "intro_to_python")["title"] == "Intro to  Python"

    @pytest.mark.asyncio
    async def test_create_requires_course(self, service):
        with pytest.raises(NotFoundError):
            await service.create("ghost", {"title": "Anything"})

    @pytest.mark.asyncio
    async def test_create_requires_title(self, store, service):
        store.seed("courses", "c1", {"courseName": "Course"})
        with pytest.raises(ValidationError):
            await service.create("c1", {"title": ""})

    @pytest.mark.asyncio
    async def test_create_conflicts_with_singular_copy(self, store, service):
        store.seed("courses", "c1", {"courseName": "Course"})
        store.seed("courses/c1/module", "m1", {"title": "Old"})

        with pytest.raises(ConflictError):
            await service.create("c1", {"title": "New", "moduleId": "m1"})

    @pytest.mark.asyncio
    async def test_update_writes_to_the_collection_it_was_found_in(self, store, service):
        store.seed("courses/c1/module", "m1", {"title": "Old"})

        module = await service.update("c1", "m1", {"title": "Renamed", "description": None})

        assert module["title"] == "Renamed"
        assert store.raw("courses/c1/module", "m1")["title"] == "Renamed"
        assert store.raw("courses/c1/modules", "m1") is None

    @pytest.mark.asyncio
    async def test_delete_removes_nested_lessons_and_then_404s(self, python_course, service):
        deleted = await service.delete("python_course", "python_m1")

        assert deleted == 3
        assert python_course.count("courses/python_course/modules/python_m1/lessons") == 0
        with pytest.raises(NotFoundError):
            await service.delete("python_course", "python_m1")

    @pytest.mark.asyncio
    async def test_delete_is_all_or_nothing(self, python_course, service):
        python_course.fail_batches = True

        with pytest.raises(StoreUnavailableError):
            await service.delete("python_course", "python_m1")

        assert python_course.raw("courses/python_course/modules", "python_m1") is not None
        assert python_course.count("courses/python_course/modules/python_m1/lessons") == 2

    @pytest.mark.asyncio
    async def test_reorder_sets_one_based_positions(self, store, service):
        store.seed("courses/c1/modules", "a", {"title": "A", "order": 1})
        store.seed("courses/c1/module", "b", {"title": "B", "order": 2})

        reordered = await service.reorder("c1", ["b", "a"])

        assert [(m["moduleId"], m["order"]) for m in reordered] == [("b", 1), ("a", 2)]
        assert store.raw("courses/c1/module", "b")["order"] == 1

    @pytest.mark.asyncio
    async def test_reorder_checks_every_id_before_writing(self, store, service):
        store.seed("courses/c1/modules", "a", {"title": "A", "order": 5})

        with pytest.raises(NotFoundError):
            await service.reorder("c1", ["a", "missing"])
        assert store.raw("courses/c1/modules", "a")["order"] == 5

    @pytest.mark.asyncio
    async def test_reorder_rejects_duplicates(self, service):
        with pytest.raises(ValidationError):
            await service.reorder("c1", ["a", "a"])


class TestModuleIds:
    @pytest.mark.asyncio
    async def test_blank_title_rejected(self, store, service):
        store.seed("courses", "c1", {"courseName": "Course"})

        with pytest.raises(ValidationError):
            await service.create("c1", {"title": "   "})
        assert store.count("courses/c1/modules") == 0

    @pytest.mark.asyncio
    async def test_blank_module_id_rejected(self, store, service):
        store.seed("courses", "c1", {"courseName": "Course"})

        with pytest.raises(ValidationError):
            await service.create("c1", {"title": "Basics", "moduleId": "  "})

    @pytest.mark.asyncio
    async def test_slash_in_derived_id_rejected(self, store, service):
        store.seed("courses", "c1", {"courseName": "Course"})

        with pytest.raises(ValidationError):
            await service.create("c1", {"title": "Input/Output"})
        assert store.count("courses/c1/modules") == 0

    @pytest.mark.asyncio
    async def test_slash_in_supplied_id_rejected(self, store, service):
        store.seed("courses", "c1", {"courseName": "Course"})

        with pytest.raises(ValidationError):
            await service.create("c1", {"title": "IO", "moduleId": "io/basics"})
