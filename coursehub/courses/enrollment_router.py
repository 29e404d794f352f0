from fastapi import APIRouter, Depends, HTTPException

from coursehub.courses.dependencies import get_enrollment_service
from coursehub.courses.enrollment_service import EnrollmentService
from coursehub.courses.models import EnrollmentCreate, EnrollmentUpdate, envelope

router = APIRouter(tags=["Enrollments"])

# ==================== ENROLLMENT RECORDS ====================

@router.get("/enrollments")
async def list_enrollments(service: EnrollmentService = Depends(get_enrollment_service)):
    enrollments = await service.get_all()
    return envelope(enrollments, count=len(enrollments))


@router.get("/enrollments/stats")
async def enrollment_stats(service: EnrollmentService = Depends(get_enrollment_service)):
    return envelope(await service.get_stats())


@router.get("/enrollments/user/{user_id}")
async def list_user_enrollments(user_id: str, service: EnrollmentService = Depends(get_enrollment_service)):
    enrollments = await service.get_by_user(user_id)
    return envelope(enrollments, count=len(enrollments))


@router.get("/enrollments/course/{course_id}")
async def list_course_enrollments(course_id: str, service: EnrollmentService = Depends(get_enrollment_service)):
    enrollments = await service.get_by_course(course_id)
    return envelope(enrollments, count=len(enrollments))


@router.get("/enrollments/{enrollment_id}")
async def get_enrollment(enrollment_id: str, service: EnrollmentService = Depends(get_enrollment_service)):
    enrollment = await service.get_by_id(enrollment_id)
    if not enrollment:
        raise HTTPException(status_code=404, detail="Enrollment not found")
    return envelope(enrollment)


@router.post("/enrollments", status_code=201)
async def create_enrollment(data: EnrollmentCreate, service: EnrollmentService = Depends(get_enrollment_service)):
    enrollment = await service.create(data.dict())
    return envelope(enrollment, message="Enrollment created successfully")


@router.put("/enrollments/{enrollment_id}")
async def update_enrollment(
    enrollment_id: str,
    updates: EnrollmentUpdate,
    service: EnrollmentService = Depends(get_enrollment_service)
):
    enrollment = await service.update(enrollment_id, updates.dict(exclude_unset=True))
    return envelope(enrollment, message="Enrollment updated successfully")


@router.delete("/enrollments/{enrollment_id}")
async def delete_enrollment(enrollment_id: str, service: EnrollmentService = Depends(get_enrollment_service)):
    await service.delete(enrollment_id)
    return envelope(message="Enrollment deleted successfully")
