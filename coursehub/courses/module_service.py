"""
Module Service
Modules live under ``courses/{courseId}/modules`` or ``courses/{courseId}/module``.
Reads merge both conventions; new modules are always written to ``modules``.
"""

import asyncio
from typing import Any, Dict, List, Optional

from coursehub.core.errors import ConflictError, NotFoundError, ValidationError
from coursehub.core.events import EventSink, default_sink
from coursehub.courses.layout import (
    COURSES_COLLECTION,
    ModuleLocation,
    list_course_modules,
    module_collection_path,
    resolve_module_location,
)
from coursehub.courses.records import (
    Record,
    clean_patch,
    dedupe,
    module_id_from_title,
    order_key,
    sort_by_order,
    utc_now,
)
from coursehub.store.base import Document, DocumentStore

# New modules always go here, whatever convention the course used before
WRITE_COLLECTION = "modules"


def normalize_module(document: Document, course_id: str, collection_name: str) -> Record:
    data = document.data
    return {
        **data,
        "id": document.id,
        "moduleId": data.get("moduleId") or document.id,
        "courseId": data.get("courseId") or course_id,
        "title": data.get("title"),
        "description": data.get("description") or "",
        "order": data.get("order") or 0,
        "estimatedMinutes": data.get("estimatedMinutes") or 0,
        # Advisory only; analytics count lessons on read
        "totalLessons": data.get("totalLessons") or 0,
        "isUnlocked": bool(data.get("isUnlocked", False)),
        "source": collection_name,
    }


def _module_key(record: Record):
    return (record["moduleId"], record["courseId"])


class ModuleService:
    def __init__(self, store: DocumentStore, events: Optional[EventSink] = None):
        self.store = store
        self.events = (events or default_sink).child("ModuleService")

    # ==================== READS ====================

    async def _course_modules(self, course_id: str) -> List[Record]:
        found = await list_course_modules(self.store, course_id, self.events)
        return [normalize_module(doc, course_id, name) for name, doc in found]

    async def get_all(self) -> List[Record]:
        """Every module of every course, deduplicated, sorted by (courseId, order).

        Reads 2 collections per course; fine for small catalogues only.
        """
        with self.events.timed("modules.get_all"):
            courses = await self.store.list_documents(COURSES_COLLECTION)
            per_course = await asyncio.gather(*[self._course_modules(course.id) for course in courses])

        modules = dedupe((m for group in per_course for m in group), key=_module_key)
        modules.sort(key=lambda m: (str(m["courseId"]), order_key(m)))
        return modules

    async def get_by_id(self, course_id: str, module_id: str) -> Optional[Record]:
        location = await resolve_module_location(self.store, course_id, module_id, self.events)
        if not location.found:
            return None
        return normalize_module(location.document, course_id, location.collection_name)

    async def get_all_for_course(self, course_id: str) -> List[Record]:
        modules = dedupe(await self._course_modules(course_id), key=_module_key)
        return sort_by_order(modules)

    async def _require(self, course_id: str, module_id: str) -> ModuleLocation:
        location = await resolve_module_location(self.store, course_id, module_id, self.events)
        if not location.found:
            raise NotFoundError("Module not found", {"courseId": course_id, "moduleId": module_id})
        return location

    # ==================== WRITES ====================

    async def create(self, course_id: str, data: Dict[str, Any]) -> Record:
        title = data.get("title")
        if not title or not title.strip():
            raise ValidationError("Module title is required", {"courseId": course_id})
        if await self.store.get_document(COURSES_COLLECTION, course_id) is None:
            raise NotFoundError("Course not found", {"courseId": course_id})

        module_id = data.get("moduleId") or module_id_from_title(title)
        # The id becomes a document path segment
        if not module_id.strip() or "/" in module_id:
            raise ValidationError(
                "Module id must be non-empty and cannot contain '/'",
                {"courseId": course_id, "moduleId": module_id},
            )
        existing = await resolve_module_location(self.store, course_id, module_id, self.events)
        if existing.found:
            raise ConflictError(
                "Module with this id already exists",
                {"courseId": course_id, "moduleId": module_id, "collection": existing.collection_name},
            )

        now = utc_now()
        module = {
            "moduleId": module_id,
            "courseId": course_id,
            "title": title,
            "description": data.get("description") or "",
            "order": data.get("order") or 0,
            "estimatedMinutes": data.get("estimatedMinutes") or 0,
            "totalLessons": 0,
            "isUnlocked": bool(data.get("isUnlocked", False)),
            "createdAt": now,
            "updatedAt": now,
        }
        path = module_collection_path(course_id, WRITE_COLLECTION)
        await self.store.set_document(path, module_id, module)
        self.events.emit("module_created", courseId=course_id, moduleId=module_id)
        return normalize_module(Document(module_id, path, module), course_id, WRITE_COLLECTION)

    async def update(self, course_id: str, module_id: str, patch: Dict[str, Any]) -> Record:
        location = await self._require(course_id, module_id)

        patch = {**clean_patch(patch), "updatedAt": utc_now()}
        patch.pop("source", None)
        await self.store.update_document(location.path, module_id, patch)
        self.events.emit("module_updated", courseId=course_id, moduleId=module_id, collection=location.collection_name)

        merged = Document(module_id, location.path, {**location.document.data, **patch})
        return normalize_module(merged, course_id, location.collection_name)

    async def delete(self, course_id: str, module_id: str) -> int:
        """Delete the module and its nested lessons in one batch; returns documents removed"""
        location = await self._require(course_id, module_id)

        lessons = await self.store.list_documents(location.lessons_path)
        refs = [lesson.ref for lesson in lessons] + [location.document.ref]
        with self.events.timed("modules.delete", courseId=course_id, moduleId=module_id):
            deleted = await self.store.batch_delete(refs)

        self.events.emit(
            "module_deleted",
            courseId=course_id,
            moduleId=module_id,
            collection=location.collection_name,
            lessonsDeleted=len(lessons),
        )
        return deleted

    async def reorder(self, course_id: str, module_ids: List[str]) -> List[Record]:
        """Set ``order`` to each module's 1-based position in ``module_ids``.

        Every id is resolved before anything is written.
        """
        if not module_ids:
            raise ValidationError("moduleOrder must be a non-empty list", {"courseId": course_id})
        if len(set(module_ids)) != len(module_ids):
            raise ValidationError("moduleOrder contains duplicate ids", {"courseId": course_id})

        locations = [await self._require(course_id, module_id) for module_id in module_ids]

        now = utc_now()
        reordered = []
        for position, location in enumerate(locations, start=1):
            patch = {"order": position, "updatedAt": now}
            await self.store.update_document(location.path, location.module_id, patch)
            merged = Document(location.module_id, location.path, {**location.document.data, **patch})
            reordered.append(normalize_module(merged, course_id, location.collection_name))

        self.events.emit("modules_reordered", courseId=course_id, moduleIds=module_ids)
        return reordered
