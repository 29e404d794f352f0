from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from coursehub.courses.dependencies import get_lesson_service
from coursehub.courses.lesson_service import LessonService
from coursehub.courses.models import LessonCreate, LessonUpdate, envelope

router = APIRouter(tags=["Lessons"])

# ==================== LESSON READS ====================

@router.get("/lessons")
async def list_lessons(service: LessonService = Depends(get_lesson_service)):
    lessons = await service.get_all()
    return envelope(lessons, count=len(lessons))


@router.get("/lessons/search")
async def search_lessons(
    q: str = Query(..., min_length=1),
    moduleId: Optional[str] = None,
    courseId: Optional[str] = None,
    service: LessonService = Depends(get_lesson_service)
):
    lessons = await service.search(q, module_id=moduleId, course_id=courseId)
    return envelope(lessons, count=len(lessons))


@router.get("/lessons/module/{module_id}")
async def list_lessons_by_module(
    module_id: str,
    courseId: Optional[str] = None,
    service: LessonService = Depends(get_lesson_service)
):
    lessons = await service.get_by_module(module_id, courseId)
    return envelope(lessons, count=len(lessons))


@router.get("/lessons/course/{course_id}/module/{module_id}")
async def list_lessons_by_course_and_module(
    course_id: str,
    module_id: str,
    service: LessonService = Depends(get_lesson_service)
):
    lessons = await service.get_by_course_and_module(course_id, module_id)
    return envelope(lessons, count=len(lessons))


@router.get("/lessons/{lesson_id}")
async def get_lesson(
    lesson_id: str,
    moduleId: Optional[str] = None,
    courseId: Optional[str] = None,
    service: LessonService = Depends(get_lesson_service)
):
    lesson = await service.get_by_id(lesson_id, moduleId, courseId)
    if not lesson:
        raise HTTPException(status_code=404, detail="Lesson not found")
    return envelope(lesson)

# ==================== LESSON WRITES ====================

@router.post("/lessons", status_code=201)
async def create_lesson(data: LessonCreate, service: LessonService = Depends(get_lesson_service)):
    payload = data.dict(exclude_unset=True)
    lesson = await service.create(
        payload,
        storage_mode=data.storageMode.value,
        course_id=data.courseId,
        module_id=data.moduleId,
    )
    return envelope(lesson, message="Lesson created successfully")


@router.put("/lessons/{lesson_id}")
async def update_lesson(
    lesson_id: str,
    updates: LessonUpdate,
    moduleId: Optional[str] = None,
    courseId: Optional[str] = None,
    service: LessonService = Depends(get_lesson_service)
):
    lesson = await service.update(lesson_id, updates.dict(exclude_unset=True), courseId, moduleId)
    return envelope(lesson, message="Lesson updated successfully")


@router.delete("/lessons/{lesson_id}")
async def delete_lesson(
    lesson_id: str,
    moduleId: Optional[str] = None,
    courseId: Optional[str] = None,
    service: LessonService = Depends(get_lesson_service)
):
    result = await service.delete(lesson_id, courseId, moduleId)
    return envelope(result, message="Lesson deleted successfully")
