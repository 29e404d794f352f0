"""
User Service
Users collection CRUD and the transactional user/course enrollment
"""

import asyncio
from typing import Any, Dict, List, Optional

from coursehub.core.errors import ConflictError, NotFoundError
from coursehub.core.events import EventSink, default_sink
from coursehub.courses.records import Record, clean_patch, to_record, utc_now
from coursehub.store.base import DocumentStore, StoreTransaction

USERS_COLLECTION = "users"
COURSES_COLLECTION = "courses"
ENROLLMENTS_COLLECTION = "enrollments"


def normalize_user(record: Optional[Record]) -> Optional[Record]:
    if record is None:
        return None
    record.setdefault("username", "N/A")
    record.setdefault("email", "N/A")
    record["userId"] = record.get("userId") or record["id"]
    record["coursesTaken"] = list(record.get("coursesTaken") or [])
    return record


class UserService:
    def __init__(self, store: DocumentStore, events: Optional[EventSink] = None):
        self.store = store
        self.events = (events or default_sink).child("UserService")

    # ==================== READS ====================

    async def get_all(self) -> List[Record]:
        documents = await self.store.list_documents(USERS_COLLECTION)
        return [normalize_user(to_record(doc)) for doc in documents]

    async def get_by_id(self, user_id: str) -> Optional[Record]:
        document = await self.store.get_document(USERS_COLLECTION, user_id)
        return normalize_user(to_record(document))

    async def get_by_email(self, email: str) -> Optional[Record]:
        documents = await self.store.query_equals(USERS_COLLECTION, "email", email, limit=1)
        return normalize_user(to_record(documents[0])) if documents else None

    async def get_courses(self, user_id: str) -> Optional[List[Record]]:
        """Course records for every name in ``coursesTaken``, in enrollment order.

        Names without a matching course are returned as bare ``{"courseName": ...}``.
        """
        user = await self.get_by_id(user_id)
        if user is None:
            return None

        names = user["coursesTaken"]
        lookups = await asyncio.gather(*[
            self.store.query_equals(COURSES_COLLECTION, "courseName", name, limit=1)
            for name in names
        ])
        courses = []
        for name, found in zip(names, lookups):
            courses.append(to_record(found[0]) if found else {"courseName": name})
        return courses

    async def get_recent_activity(self, limit: int = 10) -> List[Record]:
        """Latest enrollment records, newest first, labelled with user and course names"""
        users, courses, enrollments = await asyncio.gather(
            self.store.list_documents(USERS_COLLECTION),
            self.store.list_documents(COURSES_COLLECTION),
            self.store.list_documents(ENROLLMENTS_COLLECTION),
        )
        user_names = {doc.id: doc.data.get("username") or doc.data.get("email") or doc.id for doc in users}
        course_names = {doc.id: doc.data.get("courseName") or doc.id for doc in courses}

        def enrolled_at(doc):
            stamp = doc.data.get("enrolledAt") or doc.data.get("createdAt")
            return stamp.timestamp() if hasattr(stamp, "timestamp") else 0

        activity = []
        for doc in sorted(enrollments, key=enrolled_at, reverse=True)[:limit]:
            user_name = user_names.get(doc.data.get("userId"), doc.data.get("userId"))
            course_name = course_names.get(doc.data.get("courseId"), doc.data.get("courseId"))
            activity.append({
                "type": "enrollment",
                "enrollmentId": doc.id,
                "userId": doc.data.get("userId"),
                "courseId": doc.data.get("courseId"),
                "status": doc.data.get("status"),
                "message": f"{user_name} enrolled in {course_name}",
                "timestamp": doc.data.get("enrolledAt") or doc.data.get("createdAt"),
            })
        return activity

    async def get_stats(self) -> Dict[str, Any]:
        """Counts from the embedded ``coursesTaken`` lists, not enrollment records"""
        users = await self.get_all()
        total = len(users)
        with_courses = sum(1 for user in users if user["coursesTaken"])
        course_count = sum(len(user["coursesTaken"]) for user in users)
        return {
            "totalUsers": total,
            "usersWithCourses": with_courses,
            "usersWithoutCourses": total - with_courses,
            "averageCoursesPerUser": round(course_count / total, 2) if total else 0.0,
        }

    # ==================== WRITES ====================

    async def create(self, data: Dict[str, Any]) -> Record:
        email = data["email"]
        # Pre-check only: two concurrent creates can both pass it
        if await self.get_by_email(email):
            raise ConflictError("User with this email already exists", {"email": email})

        now = utc_now()
        user = {
            "username": data.get("username"),
            "email": email,
            "coursesTaken": [],
            "isActive": data.get("isActive", True),
            "createdAt": now,
            "lastUpdated": now,
        }
        if data.get("userId"):
            user["userId"] = data["userId"]

        user_id = await self.store.add_document(USERS_COLLECTION, user)
        self.events.emit("user_created", userId=user_id, email=email)
        return normalize_user({"id": user_id, **user})

    async def update(self, user_id: str, patch: Dict[str, Any]) -> Record:
        existing = await self.get_by_id(user_id)
        if existing is None:
            raise NotFoundError("User not found", {"userId": user_id})

        patch = clean_patch(patch)
        new_email = patch.get("email")
        if new_email and new_email != existing["email"]:
            other = await self.get_by_email(new_email)
            if other and other["id"] != user_id:
                raise ConflictError("User with this email already exists", {"email": new_email})

        patch["lastUpdated"] = utc_now()
        await self.store.update_document(USERS_COLLECTION, user_id, patch)
        self.events.emit("user_updated", userId=user_id, fields=sorted(patch))
        return normalize_user({**existing, **patch})

    async def delete(self, user_id: str) -> None:
        """Enrollment records and course lists that mention the user are left as they are"""
        if await self.store.get_document(USERS_COLLECTION, user_id) is None:
            raise NotFoundError("User not found", {"userId": user_id})
        await self.store.delete_document(USERS_COLLECTION, user_id)
        self.events.emit("user_deleted", userId=user_id)

    async def enroll_user_in_course(self, email: str, course_name: str) -> Record:
        """
        Add the course to the user's ``coursesTaken`` and the user to the
        course's ``enrolledUsers`` in one transaction. Either both lists
        change or neither does.
        """

        async def enroll(txn: StoreTransaction) -> Record:
            users = await txn.query_equals(USERS_COLLECTION, "email", email, limit=1)
            if not users:
                raise NotFoundError("User not found", {"email": email})
            courses = await txn.query_equals(COURSES_COLLECTION, "courseName", course_name, limit=1)
            if not courses:
                raise NotFoundError("Course not found", {"courseName": course_name})

            user, course = users[0], courses[0]
            courses_taken = list(user.data.get("coursesTaken") or [])
            enrolled_users = list(course.data.get("enrolledUsers") or [])
            if course_name in courses_taken or email in enrolled_users:
                raise ConflictError(
                    "User is already enrolled in this course",
                    {"email": email, "courseName": course_name},
                )

            now = utc_now()
            txn.update_document(USERS_COLLECTION, user.id, {
                "coursesTaken": courses_taken + [course_name],
                "lastUpdated": now,
            })
            txn.update_document(COURSES_COLLECTION, course.id, {
                "enrolledUsers": enrolled_users + [email],
                "lastUpdated": now,
            })
            return {
                "userEmail": email,
                "courseName": course_name,
                "userId": user.id,
                "courseId": course.id,
            }

        with self.events.timed("enroll_user_in_course", email=email, courseName=course_name):
            result = await self.store.run_transaction(enroll)

        self.events.emit("user_enrolled", **result)
        return result
