from typing import List
from fastapi import APIRouter, HTTPException, status

from cbt.schemas.response import APIResponse
from cbt.schemas.exam import ExamSession, ExamSessionCreate
from cbt.crud.exam import exam as crud_exam
from cbt.services.exam_attempt import derive_exam_status
from cbt.utils.time import utcnow

router = APIRouter()


def _with_derived_status(exam: ExamSession, now) -> ExamSession:
    return exam.model_copy(update={"status": derive_exam_status(exam, now)})


@router.post("/", response_model=APIResponse[ExamSession], status_code=status.HTTP_201_CREATED)
async def create_exam(*, exam_in: ExamSessionCreate):
    new_exam = crud_exam.create(obj_in=exam_in)
    return APIResponse(message="Exam created successfully", data=new_exam)


@router.get("/", response_model=APIResponse[List[ExamSession]])
async def get_all_exams(skip: int = 0, limit: int = 100):
    now = utcnow()
    exams = [_with_derived_status(e, now) for e in crud_exam.get_multi(skip=skip, limit=limit)]
    return APIResponse(message="Exams retrieved successfully", data=exams)


@router.get("/{exam_id}", response_model=APIResponse[ExamSession])
async def get_exam(*, exam_id: str):
    exam = crud_exam.get(exam_id)
    if not exam:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Exam not found.")
    return APIResponse(message="Exam retrieved successfully", data=_with_derived_status(exam, utcnow()))
