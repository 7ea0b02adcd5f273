from pydantic import BaseModel
from typing import Optional, Union
from datetime import datetime

from cbt.core.constants import QuestionGradingStateEnum

AnswerValue = Union[str, int, float]

class UserAnswer(BaseModel):
    question_id: str
    answer: AnswerValue = ""
    last_saved: datetime

    score: Optional[float] = None
    feedback: Optional[str] = None
    ai_suggested_score: Optional[float] = None
    ai_feedback: Optional[str] = None

    grading_state: QuestionGradingStateEnum = QuestionGradingStateEnum.UNGRADED
    ai_adopted: bool = False # An AI suggestion already seeded the score once

    def answer_text(self) -> str:
        return str(self.answer).strip()
