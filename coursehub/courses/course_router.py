from fastapi import APIRouter, Depends, HTTPException

from coursehub.courses.course_service import CourseService
from coursehub.courses.dependencies import get_course_service, get_enrollment_service
from coursehub.courses.enrollment_service import EnrollmentService
from coursehub.courses.models import CourseCreate, CourseUpdate, CourseUserRequest, envelope

router = APIRouter(tags=["Course Management"])

# ==================== COURSE CRUD ====================

@router.get("/courses")
async def list_courses(service: CourseService = Depends(get_course_service)):
    courses = await service.get_all()
    return envelope(courses, count=len(courses))


@router.get("/courses/name/{course_name}")
async def get_course_by_name(course_name: str, service: CourseService = Depends(get_course_service)):
    course = await service.get_by_name(course_name)
    if not course:
        raise HTTPException(status_code=404, detail="Course not found")
    return envelope(course)


@router.get("/courses/{course_id}")
async def get_course(course_id: str, service: CourseService = Depends(get_course_service)):
    course = await service.get_by_id(course_id)
    if not course:
        raise HTTPException(status_code=404, detail="Course not found")
    return envelope(course)


@router.post("/courses", status_code=201)
async def create_course(data: CourseCreate, service: CourseService = Depends(get_course_service)):
    course = await service.create(data.dict())
    return envelope(course, message="Course created successfully")


@router.put("/courses/{course_id}")
async def update_course(course_id: str, updates: CourseUpdate, service: CourseService = Depends(get_course_service)):
    course = await service.update(course_id, updates.dict(exclude_unset=True))
    return envelope(course, message="Course updated successfully")


@router.delete("/courses/{course_id}")
async def delete_course(course_id: str, service: CourseService = Depends(get_course_service)):
    await service.delete(course_id)
    return envelope(message="Course deleted successfully")

# ==================== ENROLLED USERS ====================

@router.get("/courses/{course_id}/enrolled-users")
async def get_enrolled_users(course_id: str, service: CourseService = Depends(get_course_service)):
    users = await service.get_enrolled_users(course_id)
    if users is None:
        raise HTTPException(status_code=404, detail="Course not found")
    return envelope(users, count=len(users))


@router.post("/courses/{course_id}/enrolled-users")
async def add_enrolled_user(
    course_id: str,
    data: CourseUserRequest,
    service: CourseService = Depends(get_course_service)
):
    course = await service.add_user(course_id, data.email)
    return envelope(course, message="User added to course successfully")


@router.delete("/courses/{course_id}/enrolled-users/{email}")
async def remove_enrolled_user(course_id: str, email: str, service: CourseService = Depends(get_course_service)):
    course = await service.remove_user(course_id, email)
    return envelope(course, message="User removed from course successfully")


@router.get("/courses/{course_id}/enrollments")
async def get_course_enrollments(
    course_id: str,
    service: EnrollmentService = Depends(get_enrollment_service)
):
    """Explicit enrollment records; these may disagree with ``enrolledUsers``"""
    enrollments = await service.get_by_course(course_id)
    return envelope(enrollments, count=len(enrollments))
