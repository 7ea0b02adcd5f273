from pydantic import BaseModel, Field
from typing import Dict

from cbt.schemas.user_answer import UserAnswer

class ExamState(BaseModel):
    """Serializable state of one in-progress attempt."""
    answers: Dict[str, UserAnswer] = {}
    is_submitting: bool = False
    time_remaining: int = Field(default=0, ge=0) # seconds
    current_question_index: int = Field(default=0, ge=0)
