import logging
from typing import Dict, Iterable, List, Optional

from fastapi import HTTPException, status

from cbt.core.config import settings
from cbt.core.constants import (
    ALL_EXAMS,
    ReviewPolicyEnum,
    ReviewStatusEnum,
    SubmissionStatusEnum,
)
from cbt.crud.exam import exam as crud_exam
from cbt.crud.submission import submission as crud_submission
from cbt.schemas.monitoring import (
    MonitorFilter,
    MonitorSnapshot,
    MonitorSummary,
    ReviewSnapshot,
    ReviewSummary,
)
from cbt.schemas.submission import Submission
from cbt.services import scoring
from cbt.utils.time import calendar_date

logger = logging.getLogger(__name__)


# Filter reducers. Changing a criterion invalidates the applied result.

def set_exam_filter(current: MonitorFilter, exam_id: Optional[str]) -> MonitorFilter:
    return MonitorFilter(exam_id=exam_id or ALL_EXAMS, date=current.date, applied=False)


def set_date_filter(current: MonitorFilter, date: Optional[str]) -> MonitorFilter:
    return MonitorFilter(exam_id=current.exam_id, date=date, applied=False)


def apply_filter(current: MonitorFilter) -> MonitorFilter:
    return current.model_copy(update={"applied": True, "selected_submission_id": None})


def reset_filter() -> MonitorFilter:
    return MonitorFilter()


def select_submission(current: MonitorFilter, submission_id: Optional[str]) -> MonitorFilter:
    return current.model_copy(update={"selected_submission_id": submission_id})


def matches(submission: Submission, exam_id: str = ALL_EXAMS, date: Optional[str] = None) -> bool:
    if exam_id != ALL_EXAMS and submission.exam_id != exam_id:
        return False
    if date is None:
        return True
    # Never-active submissions only show up without a date filter
    return calendar_date(submission.last_active) == date


def filter_submissions(submissions: Iterable[Submission], exam_id: str = ALL_EXAMS,
                       date: Optional[str] = None) -> List[Submission]:
    return [s for s in submissions if matches(s, exam_id or ALL_EXAMS, date)]


def summarize(submissions: List[Submission]) -> MonitorSummary:
    counts: Dict[SubmissionStatusEnum, int] = {s: 0 for s in SubmissionStatusEnum}
    for submission in submissions:
        counts[submission.status] += 1
    return MonitorSummary(
        total=len(submissions),
        not_started=counts[SubmissionStatusEnum.NOT_STARTED],
        active=counts[SubmissionStatusEnum.ACTIVE],
        completed=counts[SubmissionStatusEnum.COMPLETED],
        disconnected=counts[SubmissionStatusEnum.DISCONNECTED],
        online=sum(1 for s in submissions if s.is_online),
    )


def review_summary(submissions: List[Submission], policy: ReviewPolicyEnum) -> ReviewSummary:
    summary = ReviewSummary(total=len(submissions))
    for submission in submissions:
        if submission.status != SubmissionStatusEnum.NOT_STARTED:
            summary.started += 1
        if submission.status != SubmissionStatusEnum.COMPLETED:
            continue
        summary.completed += 1

        exam = crud_exam.get(submission.exam_id)
        if exam is None:
            logger.warning(f"Submission {submission.id} references unknown exam {submission.exam_id}")
            continue
        review = scoring.review_status(submission, exam, policy)
        if review == ReviewStatusEnum.REVIEWED:
            summary.reviewed += 1
        elif review == ReviewStatusEnum.PARTIALLY_REVIEWED:
            summary.partially_reviewed += 1
        else:
            summary.not_reviewed += 1
    return summary


class MonitoringService:
    """Read-only views over submissions. Everything returned is a copy."""

    def __init__(self, policy: ReviewPolicyEnum = settings.REVIEW_POLICY):
        self.policy = policy

    def _pull(self, current: MonitorFilter) -> List[Submission]:
        selected = filter_submissions(crud_submission.get_all(), current.exam_id, current.date)
        return [s.model_copy(deep=True) for s in selected]

    def snapshot(self, current: MonitorFilter) -> MonitorSnapshot:
        if not current.applied:
            return MonitorSnapshot(filter=current)

        submissions = self._pull(current)
        logger.debug(f"Monitor snapshot exam={current.exam_id} date={current.date}: {len(submissions)} submissions")
        return MonitorSnapshot(filter=current, submissions=submissions, summary=summarize(submissions))

    def review_snapshot(self, current: MonitorFilter) -> ReviewSnapshot:
        if not current.applied:
            return ReviewSnapshot(filter=current)

        submissions = self._pull(current)
        return ReviewSnapshot(
            filter=current,
            submissions=submissions,
            summary=review_summary(submissions, self.policy),
        )

    def get_selected(self, submission_id: str) -> Submission:
        submission = crud_submission.get(submission_id)
        if not submission:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Submission not found.")
        return submission.model_copy(deep=True)


monitoring_service = MonitoringService()
