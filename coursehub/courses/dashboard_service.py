"""
Dashboard Service
Counts, rates and top-N rankings composed from the entity services.

Every figure is computed on read from the current documents. Module lesson
counts come from the lessons themselves, never from ``totalLessons``.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from coursehub.core.events import EventSink, default_sink
from coursehub.courses.course_service import CourseService
from coursehub.courses.enrollment_service import EnrollmentService
from coursehub.courses.lesson_service import LessonService
from coursehub.courses.models import EnrollmentStatus
from coursehub.courses.module_service import ModuleService
from coursehub.courses.quiz_service import QuizService, passing_score
from coursehub.courses.records import Record, matches_term, percentage
from coursehub.courses.user_service import UserService
from coursehub.store.base import DocumentStore

COURSE_SEARCH_FIELDS = ("courseName", "description")


def ratio(part: float, whole: float, digits: int = 1) -> float:
    if not whole:
        return 0.0
    return round(part / whole, digits)


def top(records: List[Record], key: str, n: int) -> List[Record]:
    # sorted() stays stable with reverse=True, so ties keep read order
    return sorted(records, key=lambda r: r.get(key) or 0, reverse=True)[:n]


@dataclass
class DashboardSnapshot:
    users: List[Record]
    courses: List[Record]
    modules: List[Record]
    lessons: List[Record]
    quizzes: List[Record]
    attempts: List[Record]
    enrollments: List[Record]


class DashboardService:
    def __init__(self, store: DocumentStore, events: Optional[EventSink] = None):
        events = events or default_sink
        self.events = events.child("DashboardService")
        self.users = UserService(store, events)
        self.courses = CourseService(store, events)
        self.modules = ModuleService(store, events)
        self.lessons = LessonService(store, events)
        self.quizzes = QuizService(store, events)
        self.enrollments = EnrollmentService(store, events)

    async def load(self) -> DashboardSnapshot:
        """Read every collection the dashboard needs, concurrently"""
        with self.events.timed("dashboard.load"):
            results = await asyncio.gather(
                self.users.get_all(),
                self.courses.get_all(),
                self.modules.get_all(),
                self.lessons.get_all(),
                self.quizzes.get_all(),
                self.quizzes.get_all_attempts(),
                self.enrollments.get_all(),
            )
        return DashboardSnapshot(*results)

    # ==================== STATS ====================

    async def get_stats(self, snapshot: Optional[DashboardSnapshot] = None) -> Dict[str, Any]:
        s = snapshot or await self.load()
        return {
            "users": {
                "total": len(s.users),
                "active": sum(1 for u in s.users if u.get("isActive") is not False),
            },
            "courses": {
                "total": len(s.courses),
                "published": sum(1 for c in s.courses if c.get("isPublished") is True),
            },
            "modules": {"total": len(s.modules)},
            "lessons": {"total": len(s.lessons)},
            "quizzes": {
                "total": len(s.quizzes),
                "active": sum(1 for q in s.quizzes if q.get("isActive") is not False),
            },
            "enrollments": {
                "total": len(s.enrollments),
                "active": sum(1 for e in s.enrollments if e.get("status") == EnrollmentStatus.ACTIVE.value),
            },
        }

    async def get_overview(self) -> Dict[str, Any]:
        stats = await self.get_stats()
        users, courses = stats["users"], stats["courses"]
        lessons, quizzes, enrollments = stats["lessons"], stats["quizzes"], stats["enrollments"]
        return {
            "overview": {
                "totalUsers": users["total"],
                "activeUsers": users["active"],
                "totalCourses": courses["total"],
                "publishedCourses": courses["published"],
                "totalModules": stats["modules"]["total"],
                "totalEnrollments": enrollments["total"],
                "activeEnrollments": enrollments["active"],
                "totalLessons": lessons["total"],
                "totalQuizzes": quizzes["total"],
                "activeQuizzes": quizzes["active"],
            },
            "summary": {
                "userEngagement": percentage(users["active"], users["total"]),
                "coursePublishRate": percentage(courses["published"], courses["total"]),
                "enrollmentRate": percentage(enrollments["active"], enrollments["total"]),
                "averageLessonsPerCourse": ratio(lessons["total"], courses["total"]),
                "averageQuizzesPerCourse": ratio(quizzes["total"], courses["total"]),
            },
        }

    # ==================== ANALYTICS ====================

    async def get_course_analytics(self, snapshot: Optional[DashboardSnapshot] = None) -> Dict[str, Any]:
        s = snapshot or await self.load()
        course_stats = []
        for course in s.courses:
            course_enrollments = [e for e in s.enrollments if e.get("courseId") == course["id"]]
            completed = sum(1 for e in course_enrollments if e.get("status") == EnrollmentStatus.COMPLETED.value)
            course_stats.append({
                "id": course["id"],
                "title": course.get("courseName"),
                "enrollmentCount": len(course_enrollments),
                "enrolledUsers": len(course.get("enrolledUsers") or []),
                "completionRate": percentage(completed, len(course_enrollments)),
                "averageRating": course.get("averageRating") or 0,
            })
        return {
            "totalCourses": len(s.courses),
            "publishedCourses": sum(1 for c in s.courses if c.get("isPublished")),
            "totalEnrollments": len(s.enrollments),
            "courseStats": course_stats,
        }

    async def get_module_analytics(self, snapshot: Optional[DashboardSnapshot] = None) -> Dict[str, Any]:
        s = snapshot or await self.load()
        module_stats = []
        for module in s.modules:
            module_lessons = [
                lesson for lesson in s.lessons
                if lesson.get("moduleId") == module["moduleId"]
                and lesson.get("courseId", module["courseId"]) == module["courseId"]
            ]
            durations = [lesson.get("duration") or 0 for lesson in module_lessons]
            module_stats.append({
                "id": module["id"],
                "moduleId": module["moduleId"],
                "courseId": module["courseId"],
                "title": module.get("title"),
                "lessonCount": len(module_lessons),
                "averageLessonDuration": ratio(sum(durations), len(durations)),
            })
        return {
            "totalModules": len(s.modules),
            "averageLessonsPerModule": ratio(len(s.lessons), len(s.modules)),
            "moduleStats": module_stats,
        }

    async def get_lesson_analytics(self, snapshot: Optional[DashboardSnapshot] = None) -> Dict[str, Any]:
        s = snapshot or await self.load()
        quizzes_by_lesson: Dict[str, int] = {}
        for quiz in s.quizzes:
            if quiz.get("lessonId"):
                quizzes_by_lesson[quiz["lessonId"]] = quizzes_by_lesson.get(quiz["lessonId"], 0) + 1

        lesson_stats = [
            {
                "id": lesson["id"],
                "title": lesson.get("title"),
                "moduleId": lesson.get("moduleId"),
                "source": lesson.get("source"),
                "quizCount": quizzes_by_lesson.get(lesson["id"], 0),
            }
            for lesson in s.lessons
        ]
        with_quizzes = sum(1 for stat in lesson_stats if stat["quizCount"])
        return {
            "totalLessons": len(s.lessons),
            "lessonsWithQuizzes": with_quizzes,
            "quizCoverageRate": percentage(with_quizzes, len(s.lessons)),
            "lessonStats": lesson_stats,
        }

    async def get_quiz_analytics(self, snapshot: Optional[DashboardSnapshot] = None) -> Dict[str, Any]:
        s = snapshot or await self.load()
        quiz_stats = []
        for quiz in s.quizzes:
            quiz_attempts = [a for a in s.attempts if a.get("quizId") == quiz["id"]]
            passing = passing_score(quiz)
            passed = sum(1 for a in quiz_attempts if (a.get("percentage") or 0) >= passing)
            scores = [a.get("score") or 0 for a in quiz_attempts]
            quiz_stats.append({
                "id": quiz["id"],
                "title": quiz.get("title"),
                "attemptCount": len(quiz_attempts),
                "averageScore": ratio(sum(scores), len(scores), 2),
                "passRate": percentage(passed, len(quiz_attempts)),
            })
        return {
            "totalQuizzes": len(s.quizzes),
            "totalAttempts": len(s.attempts),
            "quizStats": quiz_stats,
        }

    async def get_analytics(self) -> Dict[str, Any]:
        snapshot = await self.load()
        return {
            "courses": await self.get_course_analytics(snapshot),
            "modules": await self.get_module_analytics(snapshot),
            "lessons": await self.get_lesson_analytics(snapshot),
            "quizzes": await self.get_quiz_analytics(snapshot),
        }

    # ==================== METRICS ====================

    async def get_course_metrics(self, top_n: int = 10) -> Dict[str, Any]:
        analytics = await self.get_course_analytics()
        course_stats = analytics["courseStats"]
        return {
            "summary": {
                "totalCourses": analytics["totalCourses"],
                "publishedCourses": analytics["publishedCourses"],
                "totalEnrollments": analytics["totalEnrollments"],
                "averageEnrollmentsPerCourse": ratio(analytics["totalEnrollments"], analytics["totalCourses"]),
            },
            "topPerformingCourses": top(course_stats, "enrollmentCount", top_n),
            "highCompletionRateCourses": top(course_stats, "completionRate", top_n),
            "allCourseStats": course_stats,
        }

    async def get_user_metrics(self) -> Dict[str, Any]:
        snapshot = await self.load()
        stats = await self.get_stats(snapshot)
        users, enrollments = stats["users"], stats["enrollments"]
        completed = sum(1 for e in snapshot.enrollments if e.get("status") == EnrollmentStatus.COMPLETED.value)
        return {
            "userStats": {
                "totalUsers": users["total"],
                "activeUsers": users["active"],
                "inactiveUsers": users["total"] - users["active"],
                "userEngagementRate": percentage(users["active"], users["total"]),
            },
            "enrollmentStats": {
                "totalEnrollments": enrollments["total"],
                "activeEnrollments": enrollments["active"],
                "completedEnrollments": completed,
                "averageEnrollmentsPerUser": ratio(enrollments["total"], users["total"]),
                "enrollmentCompletionRate": percentage(completed, enrollments["total"]),
            },
        }

    async def get_learning_metrics(self, top_n: int = 5) -> Dict[str, Any]:
        snapshot = await self.load()
        modules = await self.get_module_analytics(snapshot)
        lessons = await self.get_lesson_analytics(snapshot)
        quizzes = await self.get_quiz_analytics(snapshot)
        return {
            "moduleMetrics": {
                "totalModules": modules["totalModules"],
                "averageLessonsPerModule": modules["averageLessonsPerModule"],
                "topModules": top(modules["moduleStats"], "lessonCount", top_n),
            },
            "lessonMetrics": {
                "totalLessons": lessons["totalLessons"],
                "lessonsWithQuizzes": lessons["lessonsWithQuizzes"],
                "quizCoverageRate": lessons["quizCoverageRate"],
            },
            "quizMetrics": {
                "totalQuizzes": quizzes["totalQuizzes"],
                "totalAttempts": quizzes["totalAttempts"],
                "averageAttemptsPerQuiz": ratio(quizzes["totalAttempts"], quizzes["totalQuizzes"]),
                "topPerformingQuizzes": top(quizzes["quizStats"], "averageScore", top_n),
            },
        }

    # ==================== SEARCH ====================

    async def search_courses(self, term: Optional[str] = None, published_only: bool = False) -> List[Record]:
        courses = await self.courses.get_all()
        if published_only:
            courses = [c for c in courses if c.get("isPublished")]
        if not term or not term.strip():
            return courses
        return [c for c in courses if matches_term(c, term.strip(), COURSE_SEARCH_FIELDS)]
