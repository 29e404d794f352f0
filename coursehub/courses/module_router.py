from fastapi import APIRouter, Depends, HTTPException

from coursehub.courses.dependencies import get_lesson_service, get_module_service
from coursehub.courses.lesson_service import LessonService
from coursehub.courses.models import ModuleCreate, ModuleReorder, ModuleUpdate, envelope
from coursehub.courses.module_service import ModuleService

router = APIRouter(tags=["Modules"])

# ==================== MODULES ====================

@router.get("/modules")
async def list_all_modules(service: ModuleService = Depends(get_module_service)):
    modules = await service.get_all()
    return envelope(modules, count=len(modules))


@router.get("/courses/{course_id}/modules")
async def list_course_modules(course_id: str, service: ModuleService = Depends(get_module_service)):
    modules = await service.get_all_for_course(course_id)
    return envelope(modules, count=len(modules))


@router.post("/courses/{course_id}/modules", status_code=201)
async def create_module(course_id: str, data: ModuleCreate, service: ModuleService = Depends(get_module_service)):
    module = await service.create(course_id, data.dict())
    return envelope(module, message="Module created successfully")


# Declared before /{module_id} so "reorder" is never taken for a module id
@router.put("/courses/{course_id}/modules/reorder")
async def reorder_modules(course_id: str, data: ModuleReorder, service: ModuleService = Depends(get_module_service)):
    modules = await service.reorder(course_id, data.moduleOrder)
    return envelope(modules, message="Modules reordered successfully", count=len(modules))


@router.get("/courses/{course_id}/modules/{module_id}")
async def get_module(course_id: str, module_id: str, service: ModuleService = Depends(get_module_service)):
    module = await service.get_by_id(course_id, module_id)
    if not module:
        raise HTTPException(status_code=404, detail="Module not found")
    return envelope(module)


@router.put("/courses/{course_id}/modules/{module_id}")
async def update_module(
    course_id: str,
    module_id: str,
    updates: ModuleUpdate,
    service: ModuleService = Depends(get_module_service)
):
    module = await service.update(course_id, module_id, updates.dict(exclude_unset=True))
    return envelope(module, message="Module updated successfully")


@router.delete("/courses/{course_id}/modules/{module_id}")
async def delete_module(course_id: str, module_id: str, service: ModuleService = Depends(get_module_service)):
    """Deletes the module and its nested lessons together"""
    deleted = await service.delete(course_id, module_id)
    return envelope({"deleted": deleted}, message="Module and associated lessons deleted successfully")


@router.get("/courses/{course_id}/modules/{module_id}/lessons")
async def list_module_lessons(
    course_id: str,
    module_id: str,
    service: LessonService = Depends(get_lesson_service)
):
    lessons = await service.get_by_course_and_module(course_id, module_id)
    return envelope(lessons, count=len(lessons))
