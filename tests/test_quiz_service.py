"""Tests for quiz scoring, attempts and analytics."""

import pytest

from coursehub.core.errors import NotFoundError, StoreUnavailableError, ValidationError
from coursehub.courses.quiz_service import QuizService, score_answers

QUESTIONS = [
    {"question": "1 + 1", "options": ["1", "2"], "correctAnswer": "2"},
    {"question": "2 * 3", "options": ["5", "6"], "correctAnswer": "6"},
    {"question": "9 - 4", "options": ["5", "4"], "correctAnswer": "5"},
]


@pytest.fixture
def service(store, events):
    return QuizService(store, events)


class TestScoreAnswers:
    def test_partial_score(self):
        result = score_answers(QUESTIONS, ["2", "5", "5"])

        assert result["correctAnswers"] == 2
        assert result["totalQuestions"] == 3
        assert result["percentage"] == 67
        assert result["score"] == pytest.approx(2 / 3)

    def test_missing_answers_count_as_wrong(self):
        assert score_answers(QUESTIONS, ["2"])["correctAnswers"] == 1

    def test_no_questions(self):
        assert score_answers([], []) == {"score": 0.0, "correctAnswers": 0, "totalQuestions": 0, "percentage": 0}


class TestQuizService:
    @pytest.mark.asyncio
    async def test_create_defaults(self, service):
        quiz = await service.create({"title": "Arithmetic", "lessonId": "l1", "questions": QUESTIONS})

        assert quiz["totalQuestions"] == 3
        assert quiz["passingScore"] == 70
        assert quiz["isActive"] is True

    @pytest.mark.asyncio
    async def test_toggle(self, service):
        quiz = await service.create({"title": "Arithmetic", "questions": QUESTIONS})

        toggled = await service.toggle_status(quiz["id"])

        assert toggled["isActive"] is False

    @pytest.mark.asyncio
    async def test_attempt_on_empty_quiz_rejected(self, service):
        quiz = await service.create({"title": "Empty"})

        with pytest.raises(ValidationError):
            await service.submit_attempt(quiz["id"], {"userId": "u1", "answers": []})

    @pytest.mark.asyncio
    async def test_best_attempt_and_analytics(self, service):
        quiz = await service.create({"title": "Arithmetic", "questions": QUESTIONS, "passingScore": 60})
        await service.submit_attempt(quiz["id"], {"userId": "u1", "answers": ["2", "x", "x"]})
        await service.submit_attempt(quiz["id"], {"userId": "u1", "answers": ["2", "6", "5"]})
        await service.submit_attempt(quiz["id"], {"userId": "u2", "answers": ["2", "6", "x"]})

        best = await service.get_best_attempt(quiz["id"], "u1")
        analytics = await service.get_analytics(quiz["id"])

        assert best["correctAnswers"] == 3
        assert analytics["totalAttempts"] == 3
        assert analytics["uniqueUsers"] == 2
        assert analytics["highestScore"] == 1.0
        # 33% fails, 100% and 67% pass at 60
        assert analytics["passRate"] == pytest.approx(66.67)

    @pytest.mark.asyncio
    async def test_analytics_without_attempts(self, service):
        quiz = await service.create({"title": "Arithmetic", "questions": QUESTIONS})

        analytics = await service.get_analytics(quiz["id"])

        assert analytics["totalAttempts"] == 0
        assert analytics["passRate"] == 0

    @pytest.mark.asyncio
    async def test_delete_removes_attempts(self, store, service):
        quiz = await service.create({"title": "Arithmetic", "questions": QUESTIONS})
        await service.submit_attempt(quiz["id"], {"userId": "u1", "answers": ["2"]})

        assert await service.delete(quiz["id"]) == 2
        assert store.count("quizAttempts") == 0
        with pytest.raises(NotFoundError):
            await service.delete(quiz["id"])

    @pytest.mark.asyncio
    async def test_failed_delete_keeps_everything(self, store, service):
        quiz = await service.create({"title": "Arithmetic", "questions": QUESTIONS})
        await service.submit_attempt(quiz["id"], {"userId": "u1", "answers": ["2"]})
        store.fail_batches = True

        with pytest.raises(StoreUnavailableError):
            await service.delete(quiz["id"])
        assert store.count("quizzes") == 1
        assert store.count("quizAttempts") == 1


class TestUserAttempts:
    @pytest.mark.asyncio
    async def test_across_quizzes_and_filtered(self, service):
        first = await service.create({"title": "First", "questions": QUESTIONS})
        second = await service.create({"title": "Second", "questions": QUESTIONS})
        await service.submit_attempt(first["id"], {"userId": "u1", "answers": ["2"]})
        await service.submit_attempt(second["id"], {"userId": "u1", "answers": ["2", "6"]})
        await service.submit_attempt(second["id"], {"userId": "u2", "answers": ["2"]})

        everything = await service.get_user_attempts("u1")
        only_second = await service.get_user_attempts("u1", second["id"])

        assert [a["quizId"] for a in everything] == [second["id"], first["id"]]
        assert [a["correctAnswers"] for a in only_second] == [2]
        assert await service.get_user_attempts("nobody") == []
