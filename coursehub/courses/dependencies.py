from fastapi import Depends

from coursehub.core.events import EventSink, default_sink
from coursehub.courses.course_service import CourseService
from coursehub.courses.dashboard_service import DashboardService
from coursehub.courses.enrollment_service import EnrollmentService
from coursehub.courses.lesson_service import LessonService
from coursehub.courses.module_service import ModuleService
from coursehub.courses.quiz_service import QuizService
from coursehub.courses.user_service import UserService
from coursehub.store.base import DocumentStore
from coursehub.store.manager import get_store

# ==================== DEPENDENCY FUNCTIONS ====================

def get_events() -> EventSink:
    """Event sink dependency; tests override it with a recording sink"""
    return default_sink


def get_user_service(store: DocumentStore = Depends(get_store), events: EventSink = Depends(get_events)) -> UserService:
    return UserService(store, events)


def get_course_service(store: DocumentStore = Depends(get_store), events: EventSink = Depends(get_events)) -> CourseService:
    return CourseService(store, events)


def get_module_service(store: DocumentStore = Depends(get_store), events: EventSink = Depends(get_events)) -> ModuleService:
    return ModuleService(store, events)


def get_lesson_service(store: DocumentStore = Depends(get_store), events: EventSink = Depends(get_events)) -> LessonService:
    return LessonService(store, events)


def get_enrollment_service(store: DocumentStore = Depends(get_store), events: EventSink = Depends(get_events)) -> EnrollmentService:
    return EnrollmentService(store, events)


def get_quiz_service(store: DocumentStore = Depends(get_store), events: EventSink = Depends(get_events)) -> QuizService:
    return QuizService(store, events)


def get_dashboard_service(store: DocumentStore = Depends(get_store), events: EventSink = Depends(get_events)) -> DashboardService:
    return DashboardService(store, events)
