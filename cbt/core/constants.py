from enum import Enum


ALL_EXAMS = "ALL"
NO_ACTIVITY = "-"

class QuestionTypeEnum(str, Enum):
    MULTIPLE_CHOICE = "MULTIPLE_CHOICE"
    SHORT_ANSWER = "SHORT_ANSWER"
    ESSAY = "ESSAY"

class DifficultyEnum(str, Enum):
    EASY = "EASY"
    MEDIUM = "MEDIUM"
    HARD = "HARD"

class ExamStatusEnum(str, Enum):
    DRAFT = "DRAFT"
    UPCOMING = "UPCOMING"
    ONGOING = "ONGOING"
    COMPLETED = "COMPLETED"
    EXPIRED = "EXPIRED"

class SubmissionStatusEnum(str, Enum):
    NOT_STARTED = "NOT_STARTED"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    DISCONNECTED = "DISCONNECTED"

class TimelineEventTypeEnum(str, Enum):
    SESSION_START = "SESSION_START"
    CONNECTION_LOST = "CONNECTION_LOST"
    CONNECTION_RESTORED = "CONNECTION_RESTORED"
    APP_RESTART = "APP_RESTART"
    FOCUS_LOST = "FOCUS_LOST"
    INACTIVITY_FLAG = "INACTIVITY_FLAG"
    SUBMITTED = "SUBMITTED"

class QuestionGradingStateEnum(str, Enum):
    UNGRADED = "UNGRADED"
    AUTO_GRADED = "AUTO_GRADED"
    AI_SUGGESTED = "AI_SUGGESTED"
    MANUALLY_GRADED = "MANUALLY_GRADED"

class ReviewStatusEnum(str, Enum):
    NOT_REVIEWED = "NOT_REVIEWED"
    PARTIALLY_REVIEWED = "PARTIALLY_REVIEWED"
    REVIEWED = "REVIEWED"

class ReviewPolicyEnum(str, Enum):
    ESSAY_ONLY = "ESSAY_ONLY"
    ESSAY_AND_SHORT_ANSWER = "ESSAY_AND_SHORT_ANSWER"

class SubmissionFlagEnum(str, Enum):
    REPEATED_FOCUS_LOSS = "REPEATED_FOCUS_LOSS"
    UNSTABLE_CONNECTION = "UNSTABLE_CONNECTION"
    INACTIVITY = "INACTIVITY"

class AuditActionEnum(str, Enum):
    ATTEMPT_START = "ATTEMPT_START"
    SUBMISSION_FINALIZE = "SUBMISSION_FINALIZE"
    SCORE_OVERRIDE = "SCORE_OVERRIDE"
    AI_SUGGESTION = "AI_SUGGESTION"
    AI_SUGGESTION_ADOPTED = "AI_SUGGESTION_ADOPTED"
    GRADING_FINALIZE = "GRADING_FINALIZE"

class EventNameEnum(str, Enum):
    ATTEMPT_STARTED = "attempt_started"
    SUBMISSION_FINALIZED = "submission_finalized"
    SCORE_UPDATED = "score_updated"
    AI_SUGGESTION_STORED = "ai_suggestion_stored"
    AI_SUGGESTION_ADOPTED = "ai_suggestion_adopted"
    GRADING_FINALIZED = "grading_finalized"

MANUALLY_GRADABLE_TYPES = {
    ReviewPolicyEnum.ESSAY_ONLY: frozenset({QuestionTypeEnum.ESSAY}),
    ReviewPolicyEnum.ESSAY_AND_SHORT_ANSWER: frozenset({QuestionTypeEnum.ESSAY, QuestionTypeEnum.SHORT_ANSWER}),
}

AUTO_GRADABLE_TYPES = frozenset({QuestionTypeEnum.MULTIPLE_CHOICE, QuestionTypeEnum.SHORT_ANSWER})
