"""Tests for users, course-side enrolled lists and enrollment records."""

import asyncio

import pytest

from coursehub.core.errors import ConflictError, NotFoundError
from coursehub.courses.course_service import CourseService
from coursehub.courses.enrollment_service import EnrollmentService
from coursehub.courses.user_service import UserService


@pytest.fixture
def users(store, events):
    return UserService(store, events)


@pytest.fixture
def seeded(store):
    store.seed("users", "u1", {"email": "ada@example.com", "username": "ada", "coursesTaken": []})
    store.seed("courses", "c1", {"courseName": "Python", "enrolledUsers": []})
    return store


class TestUserService:
    @pytest.mark.asyncio
    async def test_create_rejects_duplicate_email(self, seeded, users):
        with pytest.raises(ConflictError):
            await users.create({"email": "ada@example.com", "username": "other"})

    @pytest.mark.asyncio
    async def test_create_fills_defaults(self, store, users):
        user = await users.create({"email": "bob@example.com", "username": "bob"})

        assert user["coursesTaken"] == []
        assert user["userId"] == user["id"]
        assert store.raw("users", user["id"])["email"] == "bob@example.com"

    @pytest.mark.asyncio
    async def test_update_email_conflict(self, seeded, users):
        seeded.seed("users", "u2", {"email": "bob@example.com", "username": "bob"})

        with pytest.raises(ConflictError):
            await users.update("u2", {"email": "ada@example.com"})

    @pytest.mark.asyncio
    async def test_delete_missing(self, users):
        with pytest.raises(NotFoundError):
            await users.delete("ghost")

    @pytest.mark.asyncio
    async def test_courses_for_missing_user(self, users):
        assert await users.get_courses("ghost") is None


class TestEnrollUserInCourse:
    @pytest.mark.asyncio
    async def test_updates_both_lists(self, seeded, users, events):
        result = await users.enroll_user_in_course("ada@example.com", "Python")

        assert result == {"userEmail": "ada@example.com", "courseName": "Python", "userId": "u1", "courseId": "c1"}
        assert seeded.raw("users", "u1")["coursesTaken"] == ["Python"]
        assert seeded.raw("courses", "c1")["enrolledUsers"] == ["ada@example.com"]
        assert events.named("performance")[0]["operation"] == "enroll_user_in_course"

    @pytest.mark.asyncio
    async def test_unknown_course(self, seeded, users):
        with pytest.raises(NotFoundError):
            await users.enroll_user_in_course("ada@example.com", "Rust")
        assert seeded.raw("users", "u1")["coursesTaken"] == []

    @pytest.mark.asyncio
    async def test_already_enrolled_on_either_side(self, seeded, users):
        seeded.seed("courses", "c1", {"courseName": "Python", "enrolledUsers": ["ada@example.com"]})

        with pytest.raises(ConflictError):
            await users.enroll_user_in_course("ada@example.com", "Python")
        assert seeded.raw("users", "u1")["coursesTaken"] == []

    @pytest.mark.asyncio
    async def test_concurrent_enrollments_apply_once(self, seeded, users):
        results = await asyncio.gather(
            users.enroll_user_in_course("ada@example.com", "Python"),
            users.enroll_user_in_course("ada@example.com", "Python"),
            return_exceptions=True,
        )

        conflicts = [r for r in results if isinstance(r, ConflictError)]
        assert len(conflicts) == 1
        assert seeded.raw("users", "u1")["coursesTaken"] == ["Python"]
        assert seeded.raw("courses", "c1")["enrolledUsers"] == ["ada@example.com"]


class TestCourseService:
    @pytest.mark.asyncio
    async def test_create_with_explicit_id(self, store, events):
        courses = CourseService(store, events)

        course = await courses.create({"courseName": "Python", "courseId": "python_course"})

        assert course["id"] == "python_course"
        with pytest.raises(ConflictError):
            await courses.create({"courseName": "Python"})

    @pytest.mark.asyncio
    async def test_add_and_remove_user(self, seeded, events):
        courses = CourseService(seeded, events)

        await courses.add_user("c1", "ada@example.com")
        with pytest.raises(ConflictError):
            await courses.add_user("c1", "ada@example.com")
        course = await courses.remove_user("c1", "ada@example.com")

        assert course["enrolledUsers"] == []


class TestEnrollmentService:
    @pytest.mark.asyncio
    async def test_create_and_duplicate(self, seeded, events):
        enrollments = EnrollmentService(seeded, events)

        created = await enrollments.create({"userId": "u1", "courseId": "c1"})

        assert created["status"] == "active"
        assert created["progress"] == 0
        with pytest.raises(ConflictError):
            await enrollments.create({"userId": "u1", "courseId": "c1"})

    @pytest.mark.asyncio
    async def test_create_requires_user_and_course(self, seeded, events):
        enrollments = EnrollmentService(seeded, events)

        with pytest.raises(NotFoundError):
            await enrollments.create({"userId": "ghost", "courseId": "c1"})
        with pytest.raises(NotFoundError):
            await enrollments.create({"userId": "u1", "courseId": "ghost"})

    @pytest.mark.asyncio
    async def test_records_do_not_touch_embedded_lists(self, seeded, events):
        await EnrollmentService(seeded, events).create({"userId": "u1", "courseId": "c1"})

        assert seeded.raw("users", "u1")["coursesTaken"] == []

    @pytest.mark.asyncio
    async def test_stats(self, store, events):
        store.seed("enrollments", "e1", {"userId": "u1", "courseId": "c1", "status": "completed"})
        store.seed("enrollments", "e2", {"userId": "u2", "courseId": "c1", "status": "active"})

        stats = await EnrollmentService(store, events).get_stats()

        assert stats["completionRate"] == 50.0
        assert stats["uniqueUsers"] == 2
        assert stats["uniqueCourses"] == 1

    @pytest.mark.asyncio
    async def test_stats_empty(self, store, events):
        stats = await EnrollmentService(store, events).get_stats()

        assert stats["total"] == 0
        assert stats["completionRate"] == 0.0


class TestUserStats:
    @pytest.mark.asyncio
    async def test_counts_embedded_course_lists(self, store, users):
        store.seed("users", "u1", {"email": "a@example.com", "coursesTaken": ["Python", "Rust"]})
        store.seed("users", "u2", {"email": "b@example.com", "coursesTaken": ["Python"]})
        store.seed("users", "u3", {"email": "c@example.com"})

        stats = await users.get_stats()

        assert stats == {
            "totalUsers": 3,
            "usersWithCourses": 2,
            "usersWithoutCourses": 1,
            "averageCoursesPerUser": 1.0,
        }

    @pytest.mark.asyncio
    async def test_no_users(self, users):
        stats = await users.get_stats()

        assert stats["totalUsers"] == 0
        assert stats["averageCoursesPerUser"] == 0.0
