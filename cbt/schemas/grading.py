from pydantic import BaseModel, Field
from typing import Optional, List

from cbt.core.constants import QuestionTypeEnum, QuestionGradingStateEnum, ReviewStatusEnum

class Suggestion(BaseModel):
    """Provider reply after validation: score is already clamped into [0, weight]."""
    score: float
    feedback: str = ""

class ScoreUpdate(BaseModel):
    score: float
    feedback: Optional[str] = None

class QuestionGrade(BaseModel):
    question_id: str
    type: QuestionTypeEnum
    weight: int
    answer: Optional[str] = None
    score: Optional[float] = None
    feedback: Optional[str] = None
    ai_suggested_score: Optional[float] = None
    ai_feedback: Optional[str] = None
    state: QuestionGradingStateEnum = QuestionGradingStateEnum.UNGRADED

class GradingSummary(BaseModel):
    submission_id: str
    exam_id: str
    review_status: ReviewStatusEnum
    reviewed_count: int
    manually_gradable_count: int
    auto_score: float
    final_score: float
    max_score: int
    is_locked: bool = False
    questions: List[QuestionGrade] = []

class ReviewSession(BaseModel):
    """What one assessor is looking at; late AI replies for anything else are dropped."""
    assessor: str = "assessor"
    viewing_submission_id: Optional[str] = None
    viewing_question_id: Optional[str] = None
    navigation_seq: int = Field(default=0, ge=0)
