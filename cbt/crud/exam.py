from typing import List

from cbt.crud.base import CRUDBase
from cbt.core.constants import ExamStatusEnum
from cbt.schemas.exam import ExamSession, ExamSessionCreate

class CRUDExam(CRUDBase[ExamSession, ExamSessionCreate]):
    id_prefix = "exam-"

    def get_by_status(self, status: ExamStatusEnum) -> List[ExamSession]:
        return [e for e in self._records.values() if e.status == status]

    def replace(self, exam: ExamSession) -> ExamSession:
        # Exam sessions are frozen; status changes store a new instance
        return self.add(exam)


exam = CRUDExam(ExamSession)
