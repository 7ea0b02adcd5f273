from fastapi import APIRouter, status

from cbt.schemas.response import APIResponse
from cbt.schemas.attempt import (
    AnswerUpdate,
    AttemptEventCreate,
    AttemptStart,
    AttemptView,
    FinalizeResult,
    NavigationRequest,
)
from cbt.schemas.exam_state import ExamState
from cbt.schemas.submission import Submission
from cbt.schemas.user_answer import UserAnswer
from cbt.services.exam_attempt import exam_attempt_service

router = APIRouter()

@router.post("/", response_model=APIResponse[AttemptView], status_code=status.HTTP_201_CREATED)
async def start_attempt(*, attempt_in: AttemptStart):
    if attempt_in.submission_id:
        attempt = await exam_attempt_service.resume_attempt(attempt_in.submission_id)
        message = "Attempt resumed successfully"
    else:
        attempt = await exam_attempt_service.start_attempt(attempt_in.exam_id, attempt_in.candidate_name)
        message = "Attempt started successfully"
    view = exam_attempt_service.get_attempt_view(attempt.submission_id)
    return APIResponse(message=message, data=view)


@router.get("/{submission_id}", response_model=APIResponse[AttemptView])
async def get_attempt(*, submission_id: str):
    view = exam_attempt_service.get_attempt_view(submission_id)
    return APIResponse(message="Attempt retrieved successfully", data=view)


@router.put("/{submission_id}/answers/{question_id}", response_model=APIResponse[UserAnswer])
async def update_answer(*, submission_id: str, question_id: str, answer_in: AnswerUpdate):
    answer = exam_attempt_service.update_answer(submission_id, question_id, answer_in.answer)
    if answer is None:
        return APIResponse(message="Attempt already finalized; answer ignored", data=None)
    return APIResponse(message="Answer saved", data=answer)


@router.post("/{submission_id}/navigate", response_model=APIResponse[ExamState])
async def navigate(*, submission_id: str, nav_in: NavigationRequest):
    state = exam_attempt_service.navigate(submission_id, index=nav_in.index, direction=nav_in.direction)
    return APIResponse(message="Navigation updated", data=state)


@router.post("/{submission_id}/events", response_model=APIResponse[Submission])
async def record_event(*, submission_id: str, event_in: AttemptEventCreate):
    submission = exam_attempt_service.record_event(submission_id, event_in.type, event_in.label)
    return APIResponse(message="Event recorded", data=submission)


@router.post("/{submission_id}/finalize", response_model=APIResponse[FinalizeResult])
async def finalize_attempt(*, submission_id: str):
    submission = await exam_attempt_service.finalize(submission_id)
    return APIResponse(
        message="Attempt submitted successfully",
        data=exam_attempt_service.finalize_result(submission)
    )
