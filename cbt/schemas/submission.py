from pydantic import BaseModel, ConfigDict, Field, field_validator, field_serializer
from typing import Optional, List, Dict
from datetime import datetime

from cbt.core.constants import SubmissionStatusEnum, TimelineEventTypeEnum, NO_ACTIVITY
from cbt.schemas.user_answer import UserAnswer

class TimelineEvent(BaseModel):
    timestamp: datetime
    type: TimelineEventTypeEnum
    label: str = ""

    model_config = ConfigDict(frozen=True)

class SubmissionBase(BaseModel):
    candidate_name: str
    exam_id: str
    status: SubmissionStatusEnum = Field(default=SubmissionStatusEnum.NOT_STARTED)
    progress: int = Field(default=0, ge=0, le=100)
    is_online: bool = False
    last_active: Optional[datetime] = None

    @field_validator('last_active', mode='before')
    @classmethod
    def parse_no_activity(cls, v):
        if v == NO_ACTIVITY or v == "":
            return None
        return v

class SubmissionCreate(SubmissionBase):
    pass

class Submission(SubmissionBase):
    id: str
    answers: Dict[str, UserAnswer] = {}
    flags: List[str] = []
    timeline_events: List[TimelineEvent] = []
    question_order: List[str] = []
    started_at: Optional[datetime] = None
    submitted_at: Optional[datetime] = None
    total_score: Optional[float] = None
    is_locked: bool = False

    @field_serializer('last_active')
    def serialize_last_active(self, value: Optional[datetime]):
        return value.isoformat() if value else NO_ACTIVITY

    def has_flag(self, flag: str) -> bool:
        return flag in self.flags

    def count_events(self, event_type: TimelineEventTypeEnum) -> int:
        return sum(1 for event in self.timeline_events if event.type == event_type)
