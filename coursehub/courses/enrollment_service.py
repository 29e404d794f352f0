"""
Enrollment Service
Explicit enrollment records in the ``enrollments`` collection.

These records are not linked to ``User.coursesTaken`` / ``Course.enrolledUsers``;
the two can disagree.
"""

from collections import Counter
from typing import Any, Dict, List, Optional

from coursehub.core.errors import ConflictError, NotFoundError
from coursehub.core.events import EventSink, default_sink
from coursehub.courses.models import EnrollmentStatus
from coursehub.courses.records import Record, clean_patch, percentage, to_record, to_records, utc_now
from coursehub.store.base import DocumentStore

ENROLLMENTS_COLLECTION = "enrollments"
USERS_COLLECTION = "users"
COURSES_COLLECTION = "courses"


class EnrollmentService:
    def __init__(self, store: DocumentStore, events: Optional[EventSink] = None):
        self.store = store
        self.events = (events or default_sink).child("EnrollmentService")

    async def get_all(self) -> List[Record]:
        return to_records(await self.store.list_documents(ENROLLMENTS_COLLECTION))

    async def get_by_id(self, enrollment_id: str) -> Optional[Record]:
        return to_record(await self.store.get_document(ENROLLMENTS_COLLECTION, enrollment_id))

    async def get_by_user(self, user_id: str) -> List[Record]:
        return to_records(await self.store.query_equals(ENROLLMENTS_COLLECTION, "userId", user_id))

    async def get_by_course(self, course_id: str) -> List[Record]:
        return to_records(await self.store.query_equals(ENROLLMENTS_COLLECTION, "courseId", course_id))

    async def create(self, data: Dict[str, Any]) -> Record:
        user_id, course_id = data["userId"], data["courseId"]

        if await self.store.get_document(USERS_COLLECTION, user_id) is None:
            raise NotFoundError("User not found", {"userId": user_id})
        if await self.store.get_document(COURSES_COLLECTION, course_id) is None:
            raise NotFoundError("Course not found", {"courseId": course_id})

        # Equality filters only, so the course match is checked here
        existing = await self.get_by_user(user_id)
        if any(e.get("courseId") == course_id for e in existing):
            raise ConflictError("User is already enrolled in this course", {"userId": user_id, "courseId": course_id})

        now = utc_now()
        enrollment = {
            "userId": user_id,
            "courseId": course_id,
            "status": data.get("status") or EnrollmentStatus.ACTIVE.value,
            "progress": 0,
            "enrolledAt": now,
            "lastAccessedAt": now,
            "createdAt": now,
            "updatedAt": now,
        }
        enrollment_id = await self.store.add_document(ENROLLMENTS_COLLECTION, enrollment)
        self.events.emit("enrollment_created", enrollmentId=enrollment_id, userId=user_id, courseId=course_id)
        return {"id": enrollment_id, **enrollment}

    async def update(self, enrollment_id: str, patch: Dict[str, Any]) -> Record:
        existing = await self.get_by_id(enrollment_id)
        if existing is None:
            raise NotFoundError("Enrollment not found", {"enrollmentId": enrollment_id})

        now = utc_now()
        patch = {**clean_patch(patch), "lastAccessedAt": now, "updatedAt": now}
        await self.store.update_document(ENROLLMENTS_COLLECTION, enrollment_id, patch)
        self.events.emit("enrollment_updated", enrollmentId=enrollment_id, status=patch.get("status"))
        return {**existing, **patch}

    async def delete(self, enrollment_id: str) -> None:
        if await self.store.get_document(ENROLLMENTS_COLLECTION, enrollment_id) is None:
            raise NotFoundError("Enrollment not found", {"enrollmentId": enrollment_id})
        await self.store.delete_document(ENROLLMENTS_COLLECTION, enrollment_id)
        self.events.emit("enrollment_deleted", enrollmentId=enrollment_id)

    async def get_stats(self) -> Dict[str, Any]:
        enrollments = await self.get_all()
        by_status = Counter(e.get("status") or "unknown" for e in enrollments)
        total = len(enrollments)
        completed = by_status.get(EnrollmentStatus.COMPLETED.value, 0)
        return {
            "total": total,
            "active": by_status.get(EnrollmentStatus.ACTIVE.value, 0),
            "completed": completed,
            "byStatus": dict(by_status),
            "completionRate": percentage(completed, total),
            "uniqueUsers": len({e.get("userId") for e in enrollments}),
            "uniqueCourses": len({e.get("courseId") for e in enrollments}),
        }
