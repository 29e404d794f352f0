"""
Storage Layout Resolver
Finds where a module or a module's lessons physically live.

Modules sit under ``courses/{courseId}/modules`` or the older singular
``courses/{courseId}/module``. Lessons sit in the flat ``lessons`` collection
(keyed by a ``moduleId`` field) or nested under either module convention.
Candidates are probed in a fixed priority order on every call; nothing is cached.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, List, Optional, Tuple, TypeVar

from coursehub.core.errors import StoreUnavailableError, ValidationError
from coursehub.core.events import EventSink, default_sink
from coursehub.store.base import Document, DocumentStore, join_path

T = TypeVar("T")

COURSES_COLLECTION = "courses"
LESSONS_COLLECTION = "lessons"

# Probe order matters: the plural convention wins when both exist
MODULE_COLLECTIONS = ("modules", "module")


class LessonSource(str, Enum):
    TOP_LEVEL = "top-level"
    NESTED_MODULES = "nested-modules"
    NESTED_MODULE = "nested-module"


class LocationKind(str, Enum):
    TOP_LEVEL = "top-level"
    NESTED = "nested"
    ALT_NESTED = "alt-nested"
    NONE = "none"


SOURCE_BY_COLLECTION = {
    "modules": LessonSource.NESTED_MODULES,
    "module": LessonSource.NESTED_MODULE,
}

KIND_BY_COLLECTION = {
    "modules": LocationKind.NESTED,
    "module": LocationKind.ALT_NESTED,
}

COLLECTION_BY_SOURCE = {source: name for name, source in SOURCE_BY_COLLECTION.items()}

SOURCE_BY_KIND = {
    LocationKind.TOP_LEVEL: LessonSource.TOP_LEVEL,
    LocationKind.NESTED: LessonSource.NESTED_MODULES,
    LocationKind.ALT_NESTED: LessonSource.NESTED_MODULE,
}


# ==================== LOCATIONS ====================

@dataclass
class ModuleLocation:
    course_id: str
    module_id: str
    collection_name: Optional[str] = None
    document: Optional[Document] = None

    @property
    def found(self) -> bool:
        return self.collection_name is not None

    @property
    def path(self) -> Optional[str]:
        """Collection path holding the module document"""
        if not self.found:
            return None
        return module_collection_path(self.course_id, self.collection_name)

    @property
    def source(self) -> Optional[LessonSource]:
        return SOURCE_BY_COLLECTION.get(self.collection_name) if self.found else None

    @property
    def lessons_path(self) -> Optional[str]:
        if not self.found:
            return None
        return join_path(self.path, self.module_id, LESSONS_COLLECTION)


@dataclass
class LessonLocation:
    kind: LocationKind
    path: Optional[str] = None
    course_id: Optional[str] = None
    module_id: Optional[str] = None
    course_id_derived: bool = False

    @property
    def found(self) -> bool:
        return self.kind != LocationKind.NONE

    @property
    def source(self) -> Optional[LessonSource]:
        return SOURCE_BY_KIND.get(self.kind)


@dataclass
class LocatedLesson:
    document: Document
    source: LessonSource
    course_id: Optional[str] = None
    module_id: Optional[str] = None


# ==================== PATH HELPERS ====================

def module_collection_path(course_id: str, name: str = "modules") -> str:
    if name not in MODULE_COLLECTIONS:
        raise ValueError(f"Unknown module collection: {name}")
    return join_path(COURSES_COLLECTION, course_id, name)


def lesson_collection_path(source, course_id: Optional[str] = None, module_id: Optional[str] = None) -> str:
    """Collection path for lessons stored under ``source``"""
    source = LessonSource(source)
    if source == LessonSource.TOP_LEVEL:
        return LESSONS_COLLECTION

    if not course_id or not module_id:
        raise ValidationError(
            "courseId and moduleId are required for nested lessons",
            {"source": source.value},
        )
    name = COLLECTION_BY_SOURCE[source]
    return join_path(module_collection_path(course_id, name), module_id, LESSONS_COLLECTION)


def derive_course_id(module_id: Optional[str]) -> Optional[str]:
    """
    Guess the owning course from a module id: ``python_m1`` -> ``python_course``.
    Only a naming habit, not an invariant; None when the id has no underscore.
    """
    if not module_id or "_" not in module_id:
        return None
    prefix = module_id.split("_", 1)[0]
    if not prefix:
        return None
    return f"{prefix}_course"


# ==================== PROBING ====================

class _ProbeRound:
    """Runs probes, treating a failed probe as "no match".

    Raises StoreUnavailableError only when every attempted probe failed.
    """

    def __init__(self, events: EventSink, operation: str, **context):
        self.events = events
        self.operation = operation
        self.context = context
        self.attempted = 0
        self.failed = 0
        self.last_error: Optional[StoreUnavailableError] = None

    async def run(self, candidate: str, probe: Awaitable[T]) -> Optional[T]:
        self.attempted += 1
        try:
            return await probe
        except StoreUnavailableError as e:
            self.failed += 1
            self.last_error = e
            self.events.warning(
                "probe_failed",
                operation=self.operation,
                candidate=candidate,
                error=str(e),
                **self.context,
            )
            return None

    def check(self) -> None:
        if self.attempted and self.failed == self.attempted:
            raise StoreUnavailableError(
                f"Every storage probe failed during {self.operation}",
                {"probes": self.attempted, **self.context},
            ) from self.last_error


async def resolve_module_location(
    store: DocumentStore,
    course_id: str,
    module_id: str,
    events: Optional[EventSink] = None,
) -> ModuleLocation:
    """Probe ``modules`` then ``module`` for the module document"""
    events = events or default_sink
    probes = _ProbeRound(events, "resolve_module_location", courseId=course_id, moduleId=module_id)

    for name in MODULE_COLLECTIONS:
        path = module_collection_path(course_id, name)
        document = await probes.run(name, store.get_document(path, module_id))
        if document is not None:
            events.debug("module_location_resolved", courseId=course_id, moduleId=module_id, collection=name)
            return ModuleLocation(course_id, module_id, name, document)

    probes.check()
    return ModuleLocation(course_id, module_id)


async def resolve_lesson_location(
    store: DocumentStore,
    module_id: str,
    course_id: Optional[str] = None,
    events: Optional[EventSink] = None,
) -> LessonLocation:
    """
    Decide which collection holds a module's lessons.

    Order: flat ``lessons`` (wins ties), then ``modules/{m}/lessons``,
    then ``module/{m}/lessons``. Without a course id one is derived from the
    module id, and a warning event is emitted because the guess may be wrong.
    """
    events = events or default_sink
    probes = _ProbeRound(events, "resolve_lesson_location", moduleId=module_id)

    flat = await probes.run(
        LESSONS_COLLECTION,
        store.query_equals(LESSONS_COLLECTION, "moduleId", module_id, limit=1),
    )
    if flat:
        return LessonLocation(LocationKind.TOP_LEVEL, LESSONS_COLLECTION, course_id, module_id)

    derived = False
    if not course_id:
        course_id = derive_course_id(module_id)
        derived = course_id is not None
        if derived:
            events.warning("course_id_derived", moduleId=module_id, courseId=course_id)

    if course_id:
        for name in MODULE_COLLECTIONS:
            path = join_path(module_collection_path(course_id, name), module_id, LESSONS_COLLECTION)
            nested = await probes.run(name, store.list_documents(path, limit=1))
            if nested:
                return LessonLocation(KIND_BY_COLLECTION[name], path, course_id, module_id, derived)

    probes.check()
    return LessonLocation(LocationKind.NONE, None, course_id, module_id, derived)


async def locate_lesson(
    store: DocumentStore,
    lesson_id: str,
    module_id: Optional[str] = None,
    course_id: Optional[str] = None,
    events: Optional[EventSink] = None,
) -> Optional[LocatedLesson]:
    """Find a single lesson: flat first, nested only when both ids are known"""
    events = events or default_sink
    probes = _ProbeRound(events, "locate_lesson", lessonId=lesson_id)

    document = await probes.run(LESSONS_COLLECTION, store.get_document(LESSONS_COLLECTION, lesson_id))
    if document is not None:
        return LocatedLesson(document, LessonSource.TOP_LEVEL, document.data.get("courseId"), document.data.get("moduleId"))

    if course_id and module_id:
        for name in MODULE_COLLECTIONS:
            source = SOURCE_BY_COLLECTION[name]
            path = lesson_collection_path(source, course_id, module_id)
            document = await probes.run(name, store.get_document(path, lesson_id))
            if document is not None:
                return LocatedLesson(document, source, course_id, module_id)

    probes.check()
    return None


async def list_course_modules(
    store: DocumentStore,
    course_id: str,
    events: Optional[EventSink] = None,
) -> List[Tuple[str, Document]]:
    """Every module document under both conventions, tagged with its collection name"""
    events = events or default_sink
    probes = _ProbeRound(events, "list_course_modules", courseId=course_id)

    found = []
    for name in MODULE_COLLECTIONS:
        documents = await probes.run(name, store.list_documents(module_collection_path(course_id, name)))
        for document in documents or []:
            found.append((name, document))

    probes.check()
    return found
