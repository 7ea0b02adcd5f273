from pydantic import BaseModel, Field, model_validator
from typing import Optional, List, Literal
from datetime import datetime

from cbt.core.constants import SubmissionStatusEnum, TimelineEventTypeEnum
from cbt.schemas.exam_state import ExamState
from cbt.schemas.question import Question
from cbt.schemas.user_answer import AnswerValue

class AttemptStart(BaseModel):
    exam_id: str
    candidate_name: str = Field(..., min_length=1)
    submission_id: Optional[str] = None # Resume an existing attempt

class AnswerUpdate(BaseModel):
    answer: AnswerValue

class NavigationRequest(BaseModel):
    index: Optional[int] = None
    direction: Optional[Literal["next", "previous"]] = None

    @model_validator(mode='after')
    def check_one_target(self):
        if (self.index is None) == (self.direction is None):
            raise ValueError("Provide exactly one of index or direction.")
        return self

class AttemptEventCreate(BaseModel):
    type: TimelineEventTypeEnum
    label: str = ""

class AttemptView(BaseModel):
    submission_id: str
    exam_id: str
    status: SubmissionStatusEnum
    progress: int
    state: ExamState
    question_order: List[str] = []
    current_question: Optional[Question] = None
    answered: List[str] = []
    unanswered: List[str] = []

class FinalizeResult(BaseModel):
    submission_id: str
    status: SubmissionStatusEnum
    submitted_at: Optional[datetime] = None
    answered: int = 0
    total_questions: int = 0
    final_score: Optional[float] = None # Only when the exam shows results immediately
