from datetime import datetime, timedelta, timezone

from cbt.core.constants import QuestionTypeEnum, ExamStatusEnum
from cbt.crud.exam import exam as crud_exam
from cbt.schemas.exam import ExamSessionCreate, ExamConfig
from cbt.schemas.grading import Suggestion
from cbt.services.ai_grading import AIGradingError, GradingProvider

EXAM_START = datetime(2025, 1, 1, 8, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced replacement for utcnow."""

    def __init__(self, now: datetime = EXAM_START + timedelta(hours=1)):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakeGradingProvider(GradingProvider):
    def __init__(self, score: float = 24, feedback: str = "Solid explanation."):
        self.score = score
        self.feedback = feedback
        self.calls = []
        self.before_reply = None

    async def suggest_grade(self, question_text, student_answer, max_weight):
        self.calls.append((question_text, student_answer, max_weight))
        if self.before_reply:
            self.before_reply()
        return Suggestion(score=min(self.score, max_weight), feedback=self.feedback)


class FailingGradingProvider(GradingProvider):
    async def suggest_grade(self, question_text, student_answer, max_weight):
        raise AIGradingError("provider unavailable")


def mock_questions():
    return [
        {
            "id": "q1",
            "type": QuestionTypeEnum.MULTIPLE_CHOICE,
            "text": "Which layer of the OSI model is responsible for routing?",
            "options": ["Network", "Transport", "Data Link"],
            "weight": 10,
            "topic": "Networking",
            "correct_answer": "Network",
        },
        {
            "id": "q2",
            "type": QuestionTypeEnum.SHORT_ANSWER,
            "text": "What does RAM stand for?",
            "weight": 10,
            "topic": "Hardware",
            "correct_answer": "Random Access Memory",
        },
        {
            "id": "q3",
            "type": QuestionTypeEnum.ESSAY,
            "text": "Explain the difference between TCP and UDP.",
            "weight": 30,
            "topic": "Networking",
        },
    ]


def make_exam(exam_id: str = "exam-1", duration_minutes: int = 60, config: ExamConfig = None,
              start_time: datetime = EXAM_START, **overrides):
    data = {
        "title": "Computer Fundamentals",
        "start_time": start_time,
        "end_time": start_time + timedelta(hours=4),
        "duration_minutes": duration_minutes,
        "status": ExamStatusEnum.UPCOMING,
        "questions": mock_questions(),
        "config": config or ExamConfig(),
    }
    data.update(overrides)
    return crud_exam.create(obj_in=ExamSessionCreate(**data), id=exam_id)
