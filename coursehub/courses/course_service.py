"""
Course Service
Courses collection CRUD and the course-side enrolled-user list
"""

from typing import Any, Dict, List, Optional

from coursehub.core.errors import ConflictError, NotFoundError
from coursehub.core.events import EventSink, default_sink
from coursehub.courses.records import Record, clean_patch, to_record, utc_now
from coursehub.store.base import DocumentStore

COURSES_COLLECTION = "courses"


def normalize_course(record: Optional[Record]) -> Optional[Record]:
    if record is None:
        return None
    record["courseId"] = record.get("courseId") or record["id"]
    record["enrolledUsers"] = list(record.get("enrolledUsers") or [])
    record.setdefault("description", "")
    record["isPublished"] = bool(record.get("isPublished", False))
    return record


class CourseService:
    def __init__(self, store: DocumentStore, events: Optional[EventSink] = None):
        self.store = store
        self.events = (events or default_sink).child("CourseService")

    async def get_all(self) -> List[Record]:
        documents = await self.store.list_documents(COURSES_COLLECTION)
        return [normalize_course(to_record(doc)) for doc in documents]

    async def get_by_id(self, course_id: str) -> Optional[Record]:
        document = await self.store.get_document(COURSES_COLLECTION, course_id)
        return normalize_course(to_record(document))

    async def get_by_name(self, course_name: str) -> Optional[Record]:
        documents = await self.store.query_equals(COURSES_COLLECTION, "courseName", course_name, limit=1)
        return normalize_course(to_record(documents[0])) if documents else None

    async def _require(self, course_id: str) -> Record:
        course = await self.get_by_id(course_id)
        if course is None:
            raise NotFoundError("Course not found", {"courseId": course_id})
        return course

    async def create(self, data: Dict[str, Any]) -> Record:
        course_name = data["courseName"]
        if await self.get_by_name(course_name):
            raise ConflictError("Course with this name already exists", {"courseName": course_name})

        now = utc_now()
        course = {
            "courseName": course_name,
            "description": data.get("description") or "",
            "enrolledUsers": [],
            "isPublished": data.get("isPublished", False),
            "createdAt": now,
            "lastUpdated": now,
        }
        if data.get("courseId"):
            # Caller-chosen ids double as the document id so nested paths stay readable
            course["courseId"] = data["courseId"]
            if await self.store.get_document(COURSES_COLLECTION, data["courseId"]):
                raise ConflictError("Course with this id already exists", {"courseId": data["courseId"]})
            await self.store.set_document(COURSES_COLLECTION, data["courseId"], course)
            course_id = data["courseId"]
        else:
            course_id = await self.store.add_document(COURSES_COLLECTION, course)

        self.events.emit("course_created", courseId=course_id, courseName=course_name)
        return normalize_course({"id": course_id, **course})

    async def update(self, course_id: str, patch: Dict[str, Any]) -> Record:
        existing = await self._require(course_id)

        patch = clean_patch(patch)
        new_name = patch.get("courseName")
        if new_name and new_name != existing.get("courseName"):
            other = await self.get_by_name(new_name)
            if other and other["id"] != course_id:
                raise ConflictError("Course with this name already exists", {"courseName": new_name})

        patch["lastUpdated"] = utc_now()
        await self.store.update_document(COURSES_COLLECTION, course_id, patch)
        self.events.emit("course_updated", courseId=course_id, fields=sorted(patch))
        return normalize_course({**existing, **patch})

    async def delete(self, course_id: str) -> None:
        """Modules, lessons and enrollment records under the course are not cascaded"""
        await self._require(course_id)
        await self.store.delete_document(COURSES_COLLECTION, course_id)
        self.events.emit("course_deleted", courseId=course_id)

    # ==================== ENROLLED USERS ====================

    async def get_enrolled_users(self, course_id: str) -> Optional[List[str]]:
        course = await self.get_by_id(course_id)
        return course["enrolledUsers"] if course else None

    async def add_user(self, course_id: str, email: str) -> Record:
        """Course-side list only; use UserService.enroll_user_in_course to update both sides"""
        course = await self._require(course_id)
        enrolled = course["enrolledUsers"]
        if email in enrolled:
            raise ConflictError("User is already enrolled in this course", {"courseId": course_id, "email": email})

        patch = {"enrolledUsers": enrolled + [email], "lastUpdated": utc_now()}
        await self.store.update_document(COURSES_COLLECTION, course_id, patch)
        self.events.emit("course_user_added", courseId=course_id, email=email)
        return normalize_course({**course, **patch})

    async def remove_user(self, course_id: str, email: str) -> Record:
        course = await self._require(course_id)
        patch = {
            "enrolledUsers": [e for e in course["enrolledUsers"] if e != email],
            "lastUpdated": utc_now(),
        }
        await self.store.update_document(COURSES_COLLECTION, course_id, patch)
        self.events.emit("course_user_removed", courseId=course_id, email=email)
        return normalize_course({**course, **patch})
