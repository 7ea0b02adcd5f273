from pydantic import BaseModel, field_validator
from typing import Optional, List
import datetime

from cbt.core.constants import ALL_EXAMS
from cbt.schemas.submission import Submission

class MonitorFilter(BaseModel):
    exam_id: str = ALL_EXAMS
    date: Optional[str] = None # YYYY-MM-DD
    applied: bool = False
    selected_submission_id: Optional[str] = None

    @field_validator('date', mode='before')
    @classmethod
    def normalize_date(cls, v):
        if v in (None, ""):
            return None
        return datetime.date.fromisoformat(str(v).strip()[:10]).isoformat()

    @field_validator('exam_id', mode='before')
    @classmethod
    def normalize_exam(cls, v):
        return v or ALL_EXAMS

class MonitorSummary(BaseModel):
    total: int = 0
    not_started: int = 0
    active: int = 0
    completed: int = 0
    disconnected: int = 0
    online: int = 0

class ReviewSummary(BaseModel):
    total: int = 0
    started: int = 0
    completed: int = 0
    not_reviewed: int = 0
    partially_reviewed: int = 0
    reviewed: int = 0

class MonitorSnapshot(BaseModel):
    filter: MonitorFilter
    submissions: List[Submission] = []
    summary: MonitorSummary = MonitorSummary()

class ReviewSnapshot(BaseModel):
    filter: MonitorFilter
    submissions: List[Submission] = []
    summary: ReviewSummary = ReviewSummary()
