from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing import Optional, List, Dict
from datetime import datetime

from cbt.core.constants import ExamStatusEnum
from cbt.schemas.question import Question

class ExamConfig(BaseModel):
    randomize_questions: bool = False
    randomize_options: bool = False
    show_results_immediately: bool = False

class ExamSessionBase(BaseModel):
    title: str
    description: Optional[str] = None
    start_time: datetime
    end_time: datetime
    duration_minutes: int = Field(..., gt=0)
    status: ExamStatusEnum = ExamStatusEnum.UPCOMING
    questions: List[Question] = []
    config: ExamConfig = Field(default_factory=ExamConfig)

    @model_validator(mode='after')
    def check_window(self):
        if self.end_time < self.start_time:
            raise ValueError("Exam end_time must not precede start_time.")
        question_ids = [q.id for q in self.questions]
        if len(question_ids) != len(set(question_ids)):
            raise ValueError("Duplicate question ids in exam.")
        return self

    class Config:
        json_schema_extra = {
            "example": {
                "title": "Certification Exam - Level 1",
                "start_time": "2025-01-01T08:00:00Z",
                "end_time": "2025-01-01T10:00:00Z",
                "duration_minutes": 60,
                "status": "ONGOING",
                "config": {
                    "randomize_questions": True,
                    "randomize_options": True,
                    "show_results_immediately": False
                }
            }
        }

class ExamSessionCreate(ExamSessionBase):
    pass

class ExamSession(ExamSessionBase):
    id: str

    model_config = ConfigDict(frozen=True)

    def question_map(self) -> Dict[str, Question]:
        return {q.id: q for q in self.questions}

    def get_question(self, question_id: str) -> Optional[Question]:
        return next((q for q in self.questions if q.id == question_id), None)
