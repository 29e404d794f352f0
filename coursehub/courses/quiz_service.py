"""
Quiz Service
Quizzes, scored attempts and per-quiz analytics
"""

from typing import Any, Dict, List, Optional

from coursehub.core.errors import NotFoundError, ValidationError
from coursehub.core.events import EventSink, default_sink
from coursehub.courses.records import Record, clean_patch, to_record, to_records, utc_now
from coursehub.store.base import DocumentStore

QUIZ_COLLECTION = "quizzes"
QUIZ_ATTEMPTS_COLLECTION = "quizAttempts"

# An attempt passes at this percentage when the quiz sets no passingScore
DEFAULT_PASSING_SCORE = 70


def score_answers(questions: List[Dict[str, Any]], answers: List[Any]) -> Dict[str, Any]:
    """Compare answers position by position against each question's ``correctAnswer``"""
    total = len(questions)
    correct = sum(
        1
        for index, question in enumerate(questions)
        if index < len(answers) and answers[index] == question.get("correctAnswer")
    )
    return {
        "score": correct / total if total else 0.0,
        "correctAnswers": correct,
        "totalQuestions": total,
        "percentage": round(correct / total * 100) if total else 0,
    }


def passing_score(quiz: Record) -> int:
    value = quiz.get("passingScore")
    return DEFAULT_PASSING_SCORE if value is None else value


def _submitted_key(attempt: Record):
    stamp = attempt.get("submittedAt")
    return stamp.timestamp() if hasattr(stamp, "timestamp") else 0


class QuizService:
    def __init__(self, store: DocumentStore, events: Optional[EventSink] = None):
        self.store = store
        self.events = (events or default_sink).child("QuizService")

    # ==================== QUIZZES ====================

    async def get_all(self) -> List[Record]:
        return to_records(await self.store.list_documents(QUIZ_COLLECTION))

    async def get_by_id(self, quiz_id: str) -> Optional[Record]:
        return to_record(await self.store.get_document(QUIZ_COLLECTION, quiz_id))

    async def get_by_lesson(self, lesson_id: str) -> List[Record]:
        return to_records(await self.store.query_equals(QUIZ_COLLECTION, "lessonId", lesson_id))

    async def get_by_course(self, course_id: str) -> List[Record]:
        return to_records(await self.store.query_equals(QUIZ_COLLECTION, "courseId", course_id))

    async def _require(self, quiz_id: str) -> Record:
        quiz = await self.get_by_id(quiz_id)
        if quiz is None:
            raise NotFoundError("Quiz not found", {"quizId": quiz_id})
        return quiz

    async def create(self, data: Dict[str, Any]) -> Record:
        now = utc_now()
        questions = list(data.get("questions") or [])
        quiz = {
            **clean_patch(data),
            "questions": questions,
            "totalQuestions": len(questions),
            "passingScore": passing_score(data),
            "isActive": True,
            "createdAt": now,
            "updatedAt": now,
        }
        quiz_id = await self.store.add_document(QUIZ_COLLECTION, quiz)
        self.events.emit("quiz_created", quizId=quiz_id, lessonId=quiz.get("lessonId"))
        return {"id": quiz_id, **quiz}

    async def update(self, quiz_id: str, patch: Dict[str, Any]) -> Record:
        existing = await self._require(quiz_id)

        patch = {**clean_patch(patch), "updatedAt": utc_now()}
        if "questions" in patch:
            patch["totalQuestions"] = len(patch["questions"])
        await self.store.update_document(QUIZ_COLLECTION, quiz_id, patch)
        self.events.emit("quiz_updated", quizId=quiz_id, fields=sorted(patch))
        return {**existing, **patch}

    async def delete(self, quiz_id: str) -> int:
        """Remove the quiz and all of its attempts in one batch"""
        quiz = await self.store.get_document(QUIZ_COLLECTION, quiz_id)
        if quiz is None:
            raise NotFoundError("Quiz not found", {"quizId": quiz_id})

        attempts = await self.store.query_equals(QUIZ_ATTEMPTS_COLLECTION, "quizId", quiz_id)
        deleted = await self.store.batch_delete([quiz.ref] + [attempt.ref for attempt in attempts])
        self.events.emit("quiz_deleted", quizId=quiz_id, attemptsDeleted=len(attempts))
        return deleted

    async def toggle_status(self, quiz_id: str) -> Record:
        quiz = await self._require(quiz_id)
        return await self.update(quiz_id, {"isActive": not quiz.get("isActive", True)})

    # ==================== ATTEMPTS ====================

    async def submit_attempt(self, quiz_id: str, data: Dict[str, Any]) -> Record:
        quiz = await self._require(quiz_id)
        questions = quiz.get("questions") or []
        if not questions:
            raise ValidationError("Quiz has no questions", {"quizId": quiz_id})

        attempt = {
            "quizId": quiz_id,
            "userId": data["userId"],
            "answers": list(data.get("answers") or []),
            **score_answers(questions, data.get("answers") or []),
            "submittedAt": utc_now(),
            "timeSpent": data.get("timeSpent"),
        }
        attempt_id = await self.store.add_document(QUIZ_ATTEMPTS_COLLECTION, attempt)
        self.events.emit(
            "quiz_attempt_submitted",
            quizId=quiz_id,
            attemptId=attempt_id,
            userId=attempt["userId"],
            percentage=attempt["percentage"],
        )
        return {"id": attempt_id, **attempt}

    async def get_all_attempts(self, quiz_id: Optional[str] = None) -> List[Record]:
        """Attempts for one quiz (or every quiz), newest first"""
        if quiz_id:
            documents = await self.store.query_equals(QUIZ_ATTEMPTS_COLLECTION, "quizId", quiz_id)
        else:
            documents = await self.store.list_documents(QUIZ_ATTEMPTS_COLLECTION)
        return sorted(to_records(documents), key=_submitted_key, reverse=True)

    async def get_user_attempts(self, user_id: str, quiz_id: Optional[str] = None) -> List[Record]:
        """One user's attempts across every quiz, or one quiz, newest first"""
        documents = await self.store.query_equals(QUIZ_ATTEMPTS_COLLECTION, "userId", user_id)
        attempts = to_records(documents)
        if quiz_id:
            attempts = [a for a in attempts if a.get("quizId") == quiz_id]
        return sorted(attempts, key=_submitted_key, reverse=True)

    async def get_attempts(self, quiz_id: str, user_id: str) -> List[Record]:
        return await self.get_user_attempts(user_id, quiz_id)

    async def get_best_attempt(self, quiz_id: str, user_id: str) -> Optional[Record]:
        attempts = await self.get_attempts(quiz_id, user_id)
        if not attempts:
            return None
        # max() keeps the first maximum, i.e. the newest among equal scores
        return max(attempts, key=lambda a: a.get("score") or 0)

    async def get_analytics(self, quiz_id: str) -> Dict[str, Any]:
        quiz = await self._require(quiz_id)
        passing = passing_score(quiz)
        attempts = await self.get_all_attempts(quiz_id)
        if not attempts:
            return {
                "totalAttempts": 0,
                "averageScore": 0,
                "highestScore": 0,
                "lowestScore": 0,
                "passRate": 0,
                "uniqueUsers": 0,
                "passingScore": passing,
            }

        scores = [a.get("score") or 0 for a in attempts]
        passed = [a for a in attempts if (a.get("percentage") or 0) >= passing]
        return {
            "totalAttempts": len(attempts),
            "averageScore": round(sum(scores) / len(scores), 2),
            "highestScore": max(scores),
            "lowestScore": min(scores),
            "passRate": round(len(passed) / len(attempts) * 100, 2),
            "uniqueUsers": len({a.get("userId") for a in attempts}),
            "passingScore": passing,
        }
