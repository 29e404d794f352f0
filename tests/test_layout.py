"""Tests for the storage layout resolver."""

import pytest

from coursehub.core.errors import StoreUnavailableError, ValidationError
from coursehub.courses.layout import (
    LessonSource,
    LocationKind,
    derive_course_id,
    lesson_collection_path,
    list_course_modules,
    locate_lesson,
    module_collection_path,
    resolve_lesson_location,
    resolve_module_location,
)


class TestDeriveCourseId:
    def test_uses_prefix_before_first_underscore(self):
        assert derive_course_id("python_m1") == "python_course"
        assert derive_course_id("web_dev_m2") == "web_course"

    def test_no_underscore_gives_none(self):
        assert derive_course_id("intro") is None
        assert derive_course_id("") is None
        assert derive_course_id(None) is None

    def test_leading_underscore_gives_none(self):
        assert derive_course_id("_m1") is None


class TestPaths:
    def test_module_collection_path(self):
        assert module_collection_path("c1") == "courses/c1/modules"
        assert module_collection_path("c1", "module") == "courses/c1/module"

    def test_unknown_module_collection_rejected(self):
        with pytest.raises(ValueError):
            module_collection_path("c1", "units")

    def test_lesson_collection_path_for_each_source(self):
        assert lesson_collection_path(LessonSource.TOP_LEVEL) == "lessons"
        assert lesson_collection_path("nested-modules", "c1", "m1") == "courses/c1/modules/m1/lessons"
        assert lesson_collection_path("nested-module", "c1", "m1") == "courses/c1/module/m1/lessons"

    def test_nested_path_needs_both_ids(self):
        with pytest.raises(ValidationError):
            lesson_collection_path(LessonSource.NESTED_MODULES, "c1", None)


class TestResolveModuleLocation:
    @pytest.mark.asyncio
    async def test_plural_collection_wins_when_both_exist(self, store, events):
        store.seed("courses/c1/modules", "m1", {"title": "plural"})
        store.seed("courses/c1/module", "m1", {"title": "singular"})

        location = await resolve_module_location(store, "c1", "m1", events)

        assert location.collection_name == "modules"
        assert location.document.data["title"] == "plural"
        assert location.lessons_path == "courses/c1/modules/m1/lessons"

    @pytest.mark.asyncio
    async def test_falls_back_to_singular(self, store, events):
        store.seed("courses/c1/module", "m1", {"title": "singular"})

        location = await resolve_module_location(store, "c1", "m1", events)

        assert location.found
        assert location.source == LessonSource.NESTED_MODULE

    @pytest.mark.asyncio
    async def test_missing_module(self, store, events):
        location = await resolve_module_location(store, "c1", "m1", events)

        assert not location.found
        assert location.path is None
        assert location.lessons_path is None

    @pytest.mark.asyncio
    async def test_failed_probe_does_not_hide_the_other_convention(self, store, events):
        store.seed("courses/c1/module", "m1", {"title": "singular"})
        store.failing_paths.add("courses/c1/modules")

        location = await resolve_module_location(store, "c1", "m1", events)

        assert location.collection_name == "module"
        assert events.named("probe_failed")[0]["candidate"] == "modules"

    @pytest.mark.asyncio
    async def test_every_probe_failing_raises(self, store, events):
        store.down = True

        with pytest.raises(StoreUnavailableError):
            await resolve_module_location(store, "c1", "m1", events)
        assert len(events.named("probe_failed")) == 2


class TestResolveLessonLocation:
    @pytest.mark.asyncio
    async def test_flat_lessons_win_over_nested(self, python_course, events):
        python_course.seed("lessons", "flat1", {"title": "Flat", "moduleId": "python_m1"})

        location = await resolve_lesson_location(python_course, "python_m1", "python_course", events)

        assert location.kind == LocationKind.TOP_LEVEL
        assert location.path == "lessons"

    @pytest.mark.asyncio
    async def test_nested_with_derived_course_id(self, python_course, events):
        location = await resolve_lesson_location(python_course, "python_m1", events=events)

        assert location.kind == LocationKind.NESTED
        assert location.course_id == "python_course"
        assert location.course_id_derived
        assert events.named("course_id_derived") == [{"moduleId": "python_m1", "courseId": "python_course"}]

    @pytest.mark.asyncio
    async def test_alt_nested(self, store, events):
        store.seed("courses/c1/module/m1/lessons", "l1", {"title": "Old layout"})

        location = await resolve_lesson_location(store, "m1", "c1", events)

        assert location.kind == LocationKind.ALT_NESTED
        assert location.source == LessonSource.NESTED_MODULE
        assert not location.course_id_derived

    @pytest.mark.asyncio
    async def test_nothing_found(self, store, events):
        location = await resolve_lesson_location(store, "lonely", events=events)

        assert location.kind == LocationKind.NONE
        assert not location.found

    @pytest.mark.asyncio
    async def test_flat_probe_failure_still_finds_nested(self, python_course, events):
        python_course.failing_paths.add("lessons")

        location = await resolve_lesson_location(python_course, "python_m1", "python_course", events)

        assert location.kind == LocationKind.NESTED

    @pytest.mark.asyncio
    async def test_all_probes_failing_raises(self, python_course, events):
        python_course.down = True

        with pytest.raises(StoreUnavailableError):
            await resolve_lesson_location(python_course, "python_m1", events=events)
        assert len(events.named("probe_failed")) == 3


class TestLocateLesson:
    @pytest.mark.asyncio
    async def test_flat_lesson(self, store, events):
        store.seed("lessons", "l9", {"title": "Flat", "moduleId": "m1", "courseId": "c1"})

        located = await locate_lesson(store, "l9", events=events)

        assert located.source == LessonSource.TOP_LEVEL
        assert located.module_id == "m1"

    @pytest.mark.asyncio
    async def test_nested_lesson_needs_both_ids(self, python_course, events):
        assert await locate_lesson(python_course, "l1", module_id="python_m1", events=events) is None

        located = await locate_lesson(python_course, "l1", "python_m1", "python_course", events)

        assert located.source == LessonSource.NESTED_MODULES
        assert located.document.path == "courses/python_course/modules/python_m1/lessons"


class TestListCourseModules:
    @pytest.mark.asyncio
    async def test_lists_both_conventions_in_probe_order(self, store, events):
        store.seed("courses/c1/module", "old", {"title": "Old"})
        store.seed("courses/c1/modules", "new", {"title": "New"})

        found = await list_course_modules(store, "c1", events)

        assert [(name, doc.id) for name, doc in found] == [("modules", "new"), ("module", "old")]
