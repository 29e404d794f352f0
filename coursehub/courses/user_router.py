from fastapi import APIRouter, Depends, HTTPException, Query

from coursehub.courses.dependencies import get_user_service
from coursehub.courses.models import EnrollRequest, UserCreate, UserUpdate, envelope
from coursehub.courses.user_service import UserService

router = APIRouter(tags=["Users"])

# ==================== USER CRUD ====================

@router.get("/users")
async def list_users(service: UserService = Depends(get_user_service)):
    users = await service.get_all()
    return envelope(users, count=len(users))


# Declared before /users/{user_id} so "stats" is never taken for a user id
@router.get("/users/stats")
async def user_stats(service: UserService = Depends(get_user_service)):
    return envelope(await service.get_stats(), message="User statistics retrieved successfully")


@router.get("/users/activity/recent")
async def recent_activity(
    limit: int = Query(10, ge=1, le=100),
    service: UserService = Depends(get_user_service)
):
    """Latest enrollments, newest first"""
    activity = await service.get_recent_activity(limit)
    return envelope(activity, count=len(activity))


@router.get("/users/email/{email}")
async def get_user_by_email(email: str, service: UserService = Depends(get_user_service)):
    user = await service.get_by_email(email)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return envelope(user)


@router.get("/users/{user_id}")
async def get_user(user_id: str, service: UserService = Depends(get_user_service)):
    user = await service.get_by_id(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return envelope(user)


@router.get("/users/{user_id}/courses")
async def get_user_courses(user_id: str, service: UserService = Depends(get_user_service)):
    courses = await service.get_courses(user_id)
    if courses is None:
        raise HTTPException(status_code=404, detail="User not found")
    return envelope(courses, count=len(courses))


@router.post("/users", status_code=201)
async def create_user(data: UserCreate, service: UserService = Depends(get_user_service)):
    user = await service.create(data.dict())
    return envelope(user, message="User created successfully")


@router.put("/users/{user_id}")
async def update_user(user_id: str, updates: UserUpdate, service: UserService = Depends(get_user_service)):
    user = await service.update(user_id, updates.dict(exclude_unset=True))
    return envelope(user, message="User updated successfully")


@router.delete("/users/{user_id}")
async def delete_user(user_id: str, service: UserService = Depends(get_user_service)):
    await service.delete(user_id)
    return envelope(message="User deleted successfully")

# ==================== ENROLLMENT ====================

@router.post("/enroll")
async def enroll_user(data: EnrollRequest, service: UserService = Depends(get_user_service)):
    """Add the course to the user and the user to the course, atomically"""
    result = await service.enroll_user_in_course(data.email, data.courseName)
    return envelope(result, message="User successfully enrolled in course")
