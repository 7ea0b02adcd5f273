import logging
from typing import List

from cbt.core.constants import AuditActionEnum, EventNameEnum
from cbt.crud.audit_log import audit_log as crud_audit_log
from cbt.schemas.audit_log import AuditLog
from cbt.utils.events import event_bus
from cbt.utils.time import utcnow

logger = logging.getLogger(__name__)


class AuditLogService:

    def record(self, action: AuditActionEnum, details: str, user: str = "SYSTEM") -> AuditLog:
        entry = crud_audit_log.create(obj_in={
            "timestamp": utcnow(),
            "action": action,
            "details": details,
            "user": user,
        })
        logger.info(f"Audit {action.value} by {user}: {details}")
        return entry

    def get_recent(self, limit: int = 100) -> List[AuditLog]:
        return crud_audit_log.get_recent(limit=limit)


audit_log_service = AuditLogService()


def handle_attempt_started(data: dict):
    audit_log_service.record(
        AuditActionEnum.ATTEMPT_START,
        f"{data.get('candidate_name')} started exam {data.get('exam_id')} (submission {data.get('submission_id')})",
        user=data.get("candidate_name") or "SYSTEM",
    )


def handle_submission_finalized(data: dict):
    reason = "time expired" if data.get("forced") else "submitted by participant"
    audit_log_service.record(
        AuditActionEnum.SUBMISSION_FINALIZE,
        f"Submission {data.get('submission_id')} finalized ({reason})",
    )


def handle_score_updated(data: dict):
    audit_log_service.record(
        AuditActionEnum.SCORE_OVERRIDE,
        f"Submission {data.get('submission_id')} question {data.get('question_id')} scored {data.get('score')}",
        user=data.get("assessor") or "SYSTEM",
    )


def handle_ai_suggestion_stored(data: dict):
    adopted = " (auto-adopted)" if data.get("adopted") else ""
    audit_log_service.record(
        AuditActionEnum.AI_SUGGESTION,
        f"AI suggested {data.get('score')} for submission {data.get('submission_id')} "
        f"question {data.get('question_id')}{adopted}",
        user=data.get("assessor") or "SYSTEM",
    )


def handle_ai_suggestion_adopted(data: dict):
    audit_log_service.record(
        AuditActionEnum.AI_SUGGESTION_ADOPTED,
        f"Assessor adopted AI score {data.get('score')} for submission {data.get('submission_id')} "
        f"question {data.get('question_id')}",
        user=data.get("assessor") or "SYSTEM",
    )


def handle_grading_finalized(data: dict):
    audit_log_service.record(
        AuditActionEnum.GRADING_FINALIZE,
        f"Grading locked for submission {data.get('submission_id')} with total {data.get('total_score')}",
        user=data.get("assessor") or "SYSTEM",
    )


def register_audit_handlers():
    event_bus.subscribe(EventNameEnum.ATTEMPT_STARTED, handle_attempt_started)
    event_bus.subscribe(EventNameEnum.SUBMISSION_FINALIZED, handle_submission_finalized)
    event_bus.subscribe(EventNameEnum.SCORE_UPDATED, handle_score_updated)
    event_bus.subscribe(EventNameEnum.AI_SUGGESTION_STORED, handle_ai_suggestion_stored)
    event_bus.subscribe(EventNameEnum.AI_SUGGESTION_ADOPTED, handle_ai_suggestion_adopted)
    event_bus.subscribe(EventNameEnum.GRADING_FINALIZED, handle_grading_finalized)


register_audit_handlers()
