from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Optional, List

from cbt.core.constants import QuestionTypeEnum, DifficultyEnum

class QuestionBase(BaseModel):
    type: QuestionTypeEnum
    text: str
    options: Optional[List[str]] = None # Multiple choice only, in presentation order
    weight: int = Field(..., gt=0) # Maximum awardable score
    difficulty: DifficultyEnum = DifficultyEnum.MEDIUM
    topic: str = ""
    correct_answer: Optional[str] = None # Answer key for auto-grading
    source_package_id: Optional[str] = None

    @field_validator('correct_answer', mode='before')
    @classmethod
    def coerce_answer_key(cls, v):
        if v is None:
            return None
        return str(v)

    @model_validator(mode='after')
    def check_options(self):
        if self.options and self.type != QuestionTypeEnum.MULTIPLE_CHOICE:
            raise ValueError("Options are only allowed on multiple choice questions.")
        return self

class QuestionCreate(QuestionBase):
    pass

class Question(QuestionBase):
    id: str

    model_config = ConfigDict(frozen=True)
