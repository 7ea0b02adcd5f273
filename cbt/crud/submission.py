from typing import List

from cbt.crud.base import CRUDBase
from cbt.core.constants import SubmissionStatusEnum
from cbt.schemas.submission import Submission, SubmissionCreate

class CRUDSubmission(CRUDBase[Submission, SubmissionCreate]):
    id_prefix = "sub-"

    def get_all_by_exam(self, exam_id: str) -> List[Submission]:
        return [s for s in self._records.values() if s.exam_id == exam_id]

    def get_by_candidate_and_exam(self, candidate_name: str, exam_id: str) -> List[Submission]:
        return [
            s for s in self._records.values()
            if s.exam_id == exam_id and s.candidate_name == candidate_name
        ]

    def get_pending_review(self) -> List[Submission]:
        return [
            s for s in self._records.values()
            if s.status == SubmissionStatusEnum.COMPLETED and not s.is_locked
        ]


submission = CRUDSubmission(Submission)
