"""
Lesson Service
Lessons may live in the flat ``lessons`` collection or nested under a module
in either module convention. Every mutation locates the lesson first and then
writes to the exact collection it was found in.
"""

import asyncio
from typing import Any, Dict, List, Optional

from coursehub.core.errors import NotFoundError, ValidationError
from coursehub.core.events import EventSink, default_sink
from coursehub.courses.layout import (
    COURSES_COLLECTION,
    LESSONS_COLLECTION,
    SOURCE_BY_COLLECTION,
    LessonSource,
    LocationKind,
    list_course_modules,
    locate_lesson,
    resolve_lesson_location,
    resolve_module_location,
)
from coursehub.courses.models import StorageMode
from coursehub.courses.records import Record, clean_patch, dedupe, matches_term, sort_by_order, utc_now
from coursehub.store.base import Document, DocumentStore, join_path

SEARCH_FIELDS = ("title", "content", "description")

# Request-only keys that must never be persisted on a lesson
_TRANSIENT_KEYS = ("storageMode", "source", "id")


def normalize_lesson(
    document: Document,
    source: LessonSource,
    course_id: Optional[str] = None,
    module_id: Optional[str] = None,
) -> Record:
    record = {**document.data, "id": document.id, "source": source.value}
    # Nested lessons are addressed by their path, so the path ids win
    if course_id:
        record["courseId"] = course_id
    if module_id:
        record["moduleId"] = module_id
    return record


def _lesson_key(record: Record):
    return (record["id"], record.get("moduleId"))


class LessonService:
    def __init__(self, store: DocumentStore, events: Optional[EventSink] = None):
        self.store = store
        self.events = (events or default_sink).child("LessonService")

    # ==================== READS ====================

    async def get_by_module(self, module_id: str, course_id: Optional[str] = None) -> List[Record]:
        location = await resolve_lesson_location(self.store, module_id, course_id, self.events)

        if location.kind == LocationKind.NONE:
            return []
        if location.kind == LocationKind.TOP_LEVEL:
            documents = await self.store.query_equals(LESSONS_COLLECTION, "moduleId", module_id)
            lessons = [normalize_lesson(doc, LessonSource.TOP_LEVEL) for doc in documents]
        else:
            documents = await self.store.list_documents(location.path)
            lessons = [
                normalize_lesson(doc, location.source, location.course_id, module_id)
                for doc in documents
            ]

        self.events.debug("lessons_by_module", moduleId=module_id, kind=location.kind.value, count=len(lessons))
        return sort_by_order(lessons)

    async def _nested_lessons_for_course(self, course_id: str) -> List[Record]:
        modules = await list_course_modules(self.store, course_id, self.events)
        batches = await asyncio.gather(*[
            self.store.list_documents(join_path(module.path, module.id, LESSONS_COLLECTION))
            for _, module in modules
        ])
        lessons = []
        for (name, module), documents in zip(modules, batches):
            source = SOURCE_BY_COLLECTION[name]
            lessons.extend(normalize_lesson(doc, source, course_id, module.id) for doc in documents)
        return lessons

    async def get_all(self) -> List[Record]:
        """Flat lessons plus every nested lesson of every course.

        One read per module; meant for admin and export paths, not per request.
        """
        with self.events.timed("lessons.get_all"):
            flat_documents, courses = await asyncio.gather(
                self.store.list_documents(LESSONS_COLLECTION),
                self.store.list_documents(COURSES_COLLECTION),
            )
            nested = await asyncio.gather(*[self._nested_lessons_for_course(course.id) for course in courses])

        flat = [normalize_lesson(doc, LessonSource.TOP_LEVEL) for doc in flat_documents]
        return dedupe(flat + [lesson for group in nested for lesson in group], key=_lesson_key)

    async def get_by_course_and_module(self, course_id: str, module_id: str) -> List[Record]:
        location = await resolve_module_location(self.store, course_id, module_id, self.events)
        if not location.found:
            return []

        documents = await self.store.list_documents(location.lessons_path)
        return sort_by_order([
            normalize_lesson(doc, location.source, course_id, module_id)
            for doc in documents
        ])

    async def get_by_id(
        self,
        lesson_id: str,
        module_id: Optional[str] = None,
        course_id: Optional[str] = None,
    ) -> Optional[Record]:
        located = await locate_lesson(self.store, lesson_id, module_id, course_id, self.events)
        if located is None:
            return None
        if located.source == LessonSource.TOP_LEVEL:
            return normalize_lesson(located.document, located.source)
        return normalize_lesson(located.document, located.source, located.course_id, located.module_id)

    async def search(
        self,
        term: str,
        module_id: Optional[str] = None,
        course_id: Optional[str] = None,
    ) -> List[Record]:
        """Case-insensitive substring scan over title, content and description"""
        if not term or not term.strip():
            raise ValidationError("Search term is required")

        if course_id and module_id:
            candidates = await self.get_by_course_and_module(course_id, module_id)
        elif module_id:
            candidates = await self.get_by_module(module_id)
        else:
            candidates = await self.get_all()

        results = [lesson for lesson in candidates if matches_term(lesson, term.strip(), SEARCH_FIELDS)]
        self.events.debug("lessons_searched", term=term, moduleId=module_id, courseId=course_id, count=len(results))
        return results

    # ==================== WRITES ====================

    async def create(
        self,
        data: Dict[str, Any],
        storage_mode: str = StorageMode.TOP_LEVEL.value,
        course_id: Optional[str] = None,
        module_id: Optional[str] = None,
    ) -> Record:
        try:
            mode = StorageMode(storage_mode)
        except ValueError:
            raise ValidationError(f"Unknown storage mode: {storage_mode}", {"storageMode": storage_mode})

        now = utc_now()
        lesson = {k: v for k, v in clean_patch(data).items() if k not in _TRANSIENT_KEYS}
        lesson.update(createdAt=now, updatedAt=now)
        if module_id:
            lesson["moduleId"] = module_id
        if course_id:
            lesson["courseId"] = course_id

        if mode == StorageMode.TOP_LEVEL:
            lesson_id = await self.store.add_document(LESSONS_COLLECTION, lesson)
            self.events.emit("lesson_created", lessonId=lesson_id, source=LessonSource.TOP_LEVEL.value)
            return normalize_lesson(Document(lesson_id, LESSONS_COLLECTION, lesson), LessonSource.TOP_LEVEL)

        if not course_id or not module_id:
            raise ValidationError(
                "courseId and moduleId are required for nested lessons",
                {"courseId": course_id, "moduleId": module_id},
            )
        location = await resolve_module_location(self.store, course_id, module_id, self.events)
        if not location.found:
            raise NotFoundError(
                f"Module {module_id} not found in course {course_id}",
                {"courseId": course_id, "moduleId": module_id},
            )

        path = location.lessons_path
        lesson_id = await self.store.add_document(path, lesson)
        self.events.emit(
            "lesson_created",
            lessonId=lesson_id,
            source=location.source.value,
            courseId=course_id,
            moduleId=module_id,
        )
        return normalize_lesson(Document(lesson_id, path, lesson), location.source, course_id, module_id)

    async def _locate_or_raise(self, lesson_id, course_id, module_id):
        located = await locate_lesson(self.store, lesson_id, module_id, course_id, self.events)
        if located is None:
            raise NotFoundError("Lesson not found", {"lessonId": lesson_id, "courseId": course_id, "moduleId": module_id})
        return located

    async def update(
        self,
        lesson_id: str,
        patch: Dict[str, Any],
        course_id: Optional[str] = None,
        module_id: Optional[str] = None,
    ) -> Record:
        located = await self._locate_or_raise(lesson_id, course_id, module_id)

        patch = {k: v for k, v in clean_patch(patch).items() if k not in _TRANSIENT_KEYS}
        patch["updatedAt"] = utc_now()
        await self.store.update_document(located.document.path, lesson_id, patch)
        self.events.emit("lesson_updated", lessonId=lesson_id, source=located.source.value)

        merged = Document(lesson_id, located.document.path, {**located.document.data, **patch})
        if located.source == LessonSource.TOP_LEVEL:
            return normalize_lesson(merged, located.source)
        return normalize_lesson(merged, located.source, located.course_id, located.module_id)

    async def delete(
        self,
        lesson_id: str,
        course_id: Optional[str] = None,
        module_id: Optional[str] = None,
    ) -> Record:
        located = await self._locate_or_raise(lesson_id, course_id, module_id)
        await self.store.delete_document(located.document.path, lesson_id)
        self.events.emit("lesson_deleted", lessonId=lesson_id, source=located.source.value)
        return {"id": lesson_id, "source": located.source.value}
