from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from coursehub.courses.dependencies import get_quiz_service
from coursehub.courses.models import QuizAttemptCreate, QuizCreate, QuizUpdate, envelope
from coursehub.courses.quiz_service import QuizService

router = APIRouter(tags=["Quizzes"])

# ==================== QUIZ CRUD ====================

@router.get("/quizzes")
async def list_quizzes(courseId: Optional[str] = None, service: QuizService = Depends(get_quiz_service)):
    quizzes = await service.get_by_course(courseId) if courseId else await service.get_all()
    return envelope(quizzes, count=len(quizzes))


@router.get("/quizzes/lesson/{lesson_id}")
async def list_lesson_quizzes(lesson_id: str, service: QuizService = Depends(get_quiz_service)):
    quizzes = await service.get_by_lesson(lesson_id)
    return envelope(quizzes, count=len(quizzes))


@router.get("/quizzes/{quiz_id}")
async def get_quiz(quiz_id: str, service: QuizService = Depends(get_quiz_service)):
    quiz = await service.get_by_id(quiz_id)
    if not quiz:
        raise HTTPException(status_code=404, detail="Quiz not found")
    return envelope(quiz)


@router.post("/quizzes", status_code=201)
async def create_quiz(data: QuizCreate, service: QuizService = Depends(get_quiz_service)):
    quiz = await service.create(data.dict())
    return envelope(quiz, message="Quiz created successfully")


@router.put("/quizzes/{quiz_id}")
async def update_quiz(quiz_id: str, updates: QuizUpdate, service: QuizService = Depends(get_quiz_service)):
    quiz = await service.update(quiz_id, updates.dict(exclude_unset=True))
    return envelope(quiz, message="Quiz updated successfully")


@router.delete("/quizzes/{quiz_id}")
async def delete_quiz(quiz_id: str, service: QuizService = Depends(get_quiz_service)):
    deleted = await service.delete(quiz_id)
    return envelope({"deleted": deleted}, message="Quiz deleted successfully")


@router.patch("/quizzes/{quiz_id}/toggle")
async def toggle_quiz(quiz_id: str, service: QuizService = Depends(get_quiz_service)):
    quiz = await service.toggle_status(quiz_id)
    state = "activated" if quiz.get("isActive") else "deactivated"
    return envelope(quiz, message=f"Quiz {state} successfully")

# ==================== ATTEMPTS ====================

@router.post("/quizzes/{quiz_id}/attempt", status_code=201)
async def submit_attempt(quiz_id: str, data: QuizAttemptCreate, service: QuizService = Depends(get_quiz_service)):
    attempt = await service.submit_attempt(quiz_id, data.dict())
    return envelope(attempt, message="Quiz attempt submitted successfully")


@router.get("/quizzes/{quiz_id}/attempts")
async def list_attempts(
    quiz_id: str,
    userId: Optional[str] = None,
    best: bool = False,
    service: QuizService = Depends(get_quiz_service)
):
    """All attempts, one user's attempts, or with ``best=true`` that user's best one"""
    if best:
        if not userId:
            raise HTTPException(status_code=400, detail="userId is required with best=true")
        attempt = await service.get_best_attempt(quiz_id, userId)
        if not attempt:
            raise HTTPException(status_code=404, detail="No attempts found")
        return envelope(attempt)

    if userId:
        attempts = await service.get_attempts(quiz_id, userId)
    else:
        attempts = await service.get_all_attempts(quiz_id)
    return envelope(attempts, count=len(attempts))


@router.get("/quizzes/user/{user_id}/attempts")
async def list_user_attempts(
    user_id: str,
    quizId: Optional[str] = None,
    service: QuizService = Depends(get_quiz_service)
):
    attempts = await service.get_user_attempts(user_id, quizId)
    return envelope(attempts, count=len(attempts))


@router.get("/quizzes/{quiz_id}/analytics")
async def quiz_analytics(quiz_id: str, service: QuizService = Depends(get_quiz_service)):
    return envelope(await service.get_analytics(quiz_id))
