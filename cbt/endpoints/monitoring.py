from typing import List
from fastapi import APIRouter

from cbt.schemas.response import APIResponse
from cbt.schemas.audit_log import AuditLog
from cbt.schemas.monitoring import MonitorFilter, MonitorSnapshot, ReviewSnapshot
from cbt.schemas.submission import Submission
from cbt.services.audit_log import audit_log_service
from cbt.services.monitoring import apply_filter, monitoring_service

router = APIRouter()

@router.post("/apply", response_model=APIResponse[MonitorSnapshot])
async def apply_monitor_filter(*, filter_in: MonitorFilter):
    snapshot = monitoring_service.snapshot(apply_filter(filter_in))
    return APIResponse(message="Monitoring snapshot retrieved successfully", data=snapshot)


@router.post("/review", response_model=APIResponse[ReviewSnapshot])
async def apply_review_filter(*, filter_in: MonitorFilter):
    snapshot = monitoring_service.review_snapshot(apply_filter(filter_in))
    return APIResponse(message="Review snapshot retrieved successfully", data=snapshot)


@router.get("/submissions/{submission_id}", response_model=APIResponse[Submission])
async def get_submission_detail(*, submission_id: str):
    submission = monitoring_service.get_selected(submission_id)
    return APIResponse(message="Submission retrieved successfully", data=submission)


@router.get("/audit-logs", response_model=APIResponse[List[AuditLog]])
async def get_audit_logs(limit: int = 100):
    logs = audit_log_service.get_recent(limit=limit)
    return APIResponse(message="Audit logs retrieved successfully", data=logs)
