from typing import List, Optional
from fastapi import APIRouter, Header

from cbt.schemas.response import APIResponse
from cbt.schemas.grading import GradingSummary, ReviewSession, ScoreUpdate
from cbt.schemas.submission import Submission
from cbt.schemas.user_answer import UserAnswer
from cbt.crud.submission import submission as crud_submission
from cbt.services.grading import grading_service

router = APIRouter()

DEFAULT_ASSESSOR = "assessor"


@router.get("/pending-review", response_model=APIResponse[List[Submission]])
async def get_pending_review():
    submissions = [s.model_copy(deep=True) for s in crud_submission.get_pending_review()]
    return APIResponse(message="Submissions awaiting review retrieved successfully", data=submissions)


@router.get("/{submission_id}/grading", response_model=APIResponse[GradingSummary])
async def get_grading_summary(*, submission_id: str):
    summary = grading_service.get_summary(submission_id)
    return APIResponse(message="Grading summary retrieved successfully", data=summary)


@router.post("/{submission_id}/review", response_model=APIResponse[ReviewSession])
async def open_submission_for_review(
    *,
    submission_id: str,
    question_id: Optional[str] = None,
    x_assessor: str = Header(DEFAULT_ASSESSOR)
):
    if question_id:
        session = grading_service.view_question(x_assessor, submission_id, question_id)
    else:
        session = grading_service.view_submission(x_assessor, submission_id)
    return APIResponse(message="Review session updated", data=session)


@router.put("/{submission_id}/scores/{question_id}", response_model=APIResponse[UserAnswer])
async def set_score(
    *,
    submission_id: str,
    question_id: str,
    score_in: ScoreUpdate,
    x_assessor: str = Header(DEFAULT_ASSESSOR)
):
    answer = await grading_service.set_score(
        submission_id, question_id, score_in.score, score_in.feedback, assessor=x_assessor
    )
    return APIResponse(message="Score saved", data=answer)


@router.post("/{submission_id}/questions/{question_id}/ai-suggestion", response_model=APIResponse[UserAnswer])
async def request_ai_suggestion(
    *,
    submission_id: str,
    question_id: str,
    x_assessor: str = Header(DEFAULT_ASSESSOR)
):
    answer = await grading_service.request_ai_suggestion(x_assessor, submission_id, question_id)
    if answer is None:
        return APIResponse(message="No AI suggestion available", data=None)
    return APIResponse(message="AI suggestion stored", data=answer)


@router.post("/{submission_id}/questions/{question_id}/adopt-ai", response_model=APIResponse[UserAnswer])
async def adopt_ai_suggestion(
    *,
    submission_id: str,
    question_id: str,
    x_assessor: str = Header(DEFAULT_ASSESSOR)
):
    answer = await grading_service.adopt_ai_suggestion(submission_id, question_id, assessor=x_assessor)
    return APIResponse(message="AI suggestion adopted", data=answer)


@router.post("/{submission_id}/finalize-grading", response_model=APIResponse[GradingSummary])
async def finalize_grading(*, submission_id: str, x_assessor: str = Header(DEFAULT_ASSESSOR)):
    summary = await grading_service.finalize_grading(submission_id, assessor=x_assessor)
    return APIResponse(message="Grading finalized", data=summary)
