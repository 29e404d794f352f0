from typing import Optional

from fastapi import APIRouter, Depends, Query

from coursehub.courses.dashboard_service import DashboardService
from coursehub.courses.dependencies import get_dashboard_service, get_lesson_service
from coursehub.courses.lesson_service import LessonService
from coursehub.courses.models import envelope

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])

# ==================== STATS & ANALYTICS ====================

@router.get("/stats")
async def dashboard_stats(service: DashboardService = Depends(get_dashboard_service)):
    return envelope(await service.get_stats(), message="Dashboard stats retrieved successfully")


@router.get("/overview")
async def dashboard_overview(service: DashboardService = Depends(get_dashboard_service)):
    return envelope(await service.get_overview(), message="Dashboard overview retrieved successfully")


@router.get("/analytics")
async def dashboard_analytics(service: DashboardService = Depends(get_dashboard_service)):
    return envelope(await service.get_analytics(), message="Dashboard analytics retrieved successfully")


@router.get("/courses")
async def course_metrics(
    top: int = Query(10, ge=1, le=100),
    service: DashboardService = Depends(get_dashboard_service)
):
    return envelope(await service.get_course_metrics(top), message="Course metrics retrieved successfully")


@router.get("/users")
async def user_metrics(service: DashboardService = Depends(get_dashboard_service)):
    return envelope(await service.get_user_metrics(), message="User metrics retrieved successfully")


@router.get("/learning")
async def learning_metrics(
    top: int = Query(5, ge=1, le=100),
    service: DashboardService = Depends(get_dashboard_service)
):
    return envelope(await service.get_learning_metrics(top), message="Learning metrics retrieved successfully")

# ==================== SEARCH ====================

@router.get("/search/courses")
async def search_courses(
    q: Optional[str] = None,
    published: bool = False,
    service: DashboardService = Depends(get_dashboard_service)
):
    courses = await service.search_courses(q, published_only=published)
    return envelope(courses, count=len(courses))


@router.get("/search/lessons")
async def search_lessons(
    q: str = Query(..., min_length=1),
    moduleId: Optional[str] = None,
    courseId: Optional[str] = None,
    service: LessonService = Depends(get_lesson_service)
):
    lessons = await service.search(q, module_id=moduleId, course_id=courseId)
    return envelope(lessons, count=len(lessons))
