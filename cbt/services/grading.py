import logging
from datetime import datetime
from typing import Callable, Dict, Optional

from fastapi import HTTPException, status

from cbt.core.config import settings
from cbt.core.constants import (
    EventNameEnum,
    QuestionTypeEnum,
    ReviewPolicyEnum,
    ReviewStatusEnum,
    SubmissionStatusEnum,
)
from cbt.crud.exam import exam as crud_exam
from cbt.crud.submission import submission as crud_submission
from cbt.schemas.exam import ExamSession
from cbt.schemas.grading import GradingSummary, ReviewSession
from cbt.schemas.question import Question
from cbt.schemas.submission import Submission
from cbt.schemas.user_answer import UserAnswer
from cbt.services import scoring
from cbt.services.ai_grading import AIGradingError, GradingProvider, create_grading_provider
from cbt.utils.events import event_bus
from cbt.utils.time import utcnow

logger = logging.getLogger(__name__)


def open_submission(session: ReviewSession, submission_id: str) -> ReviewSession:
    return session.model_copy(update={
        "viewing_submission_id": submission_id,
        "viewing_question_id": None,
        "navigation_seq": session.navigation_seq + 1,
    })


def open_question(session: ReviewSession, question_id: str) -> ReviewSession:
    return session.model_copy(update={
        "viewing_question_id": question_id,
        "navigation_seq": session.navigation_seq + 1,
    })


class GradingService:

    def __init__(self, provider: Optional[GradingProvider] = None,
                 policy: ReviewPolicyEnum = settings.REVIEW_POLICY,
                 clock: Callable[[], datetime] = utcnow):
        self._provider = provider
        self.policy = policy
        self.clock = clock
        self._sessions: Dict[str, ReviewSession] = {}

    @property
    def provider(self) -> GradingProvider:
        if self._provider is None:
            self._provider = create_grading_provider()
        return self._provider

    def _load(self, submission_id: str):
        submission = crud_submission.get(submission_id)
        if not submission:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Submission not found.")
        exam = crud_exam.get(submission.exam_id)
        if not exam:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Exam not found.")
        return submission, exam

    def _get_question(self, exam: ExamSession, question_id: str) -> Question:
        question = exam.get_question(question_id)
        if not question:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Question does not belong to this exam."
            )
        return question

    def _require_editable(self, submission: Submission):
        if submission.is_locked:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Grading for this submission is locked."
            )
        if submission.status != SubmissionStatusEnum.COMPLETED:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Only completed submissions can be graded."
            )

    def _store_answer(self, submission: Submission, answer: UserAnswer):
        submission.answers = {**submission.answers, answer.question_id: answer}

    def get_session(self, assessor: str) -> ReviewSession:
        return self._sessions.get(assessor) or ReviewSession(assessor=assessor)

    def view_submission(self, assessor: str, submission_id: str) -> ReviewSession:
        self._load(submission_id)
        session = open_submission(self.get_session(assessor), submission_id)
        self._sessions[assessor] = session
        return session

    def view_question(self, assessor: str, submission_id: str, question_id: str) -> ReviewSession:
        _, exam = self._load(submission_id)
        self._get_question(exam, question_id)
        session = self.get_session(assessor)
        if session.viewing_submission_id != submission_id:
            session = open_submission(session, submission_id)
        session = open_question(session, question_id)
        self._sessions[assessor] = session
        return session

    def reset_sessions(self):
        self._sessions.clear()

    def get_summary(self, submission_id: str) -> GradingSummary:
        submission, exam = self._load(submission_id)
        return scoring.grading_summary(submission, exam, self.policy)

    async def set_score(self, submission_id: str, question_id: str, score: float,
                        feedback: Optional[str] = None, assessor: str = "SYSTEM") -> UserAnswer:
        submission, exam = self._load(submission_id)
        self._require_editable(submission)
        question = self._get_question(exam, question_id)

        answer = scoring.apply_manual_score(
            question, submission.answers.get(question_id), score, feedback, self.clock()
        )
        self._store_answer(submission, answer)

        await event_bus.publish(EventNameEnum.SCORE_UPDATED, {
            "submission_id": submission_id,
            "question_id": question_id,
            "score": answer.score,
            "assessor": assessor,
        })
        return answer

    async def request_ai_suggestion(self, assessor: str, submission_id: str,
                                    question_id: str) -> Optional[UserAnswer]:
        """
        Ask the provider for a suggested score and merge it if the assessor is still
        looking at the same question when it comes back. Requesting a suggestion
        opens the question for the assessor.

        Returns None when there is nothing to grade, the provider failed, or the
        reply went stale; the stored answer is left untouched in all three cases.
        """
        submission, exam = self._load(submission_id)
        self._require_editable(submission)
        question = self._get_question(exam, question_id)
        if question.type != QuestionTypeEnum.ESSAY:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="AI suggestions are only available for essay questions."
            )

        answer = submission.answers.get(question_id)
        if answer is None or not answer.answer_text():
            logger.info(f"No answer text for {submission_id}/{question_id}; skipping AI grading")
            return None

        session = self.get_session(assessor)
        if session.viewing_submission_id != submission_id or session.viewing_question_id != question_id:
            session = self.view_question(assessor, submission_id, question_id)
        seq = session.navigation_seq
        try:
            suggestion = await self.provider.suggest_grade(question.text, answer.answer_text(), question.weight)
        except AIGradingError as e:
            logger.warning(f"AI grading failed for {submission_id}/{question_id}: {e}")
            return None

        session = self.get_session(assessor)
        if (session.navigation_seq != seq
                or session.viewing_submission_id != submission_id
                or session.viewing_question_id != question_id):
            logger.info(f"Discarding stale AI suggestion for {submission_id}/{question_id}")
            return None

        # State may have moved on while the provider was thinking
        submission, _ = self._load(submission_id)
        if submission.is_locked:
            logger.info(f"Submission {submission_id} locked during AI grading; suggestion dropped")
            return None
        current = submission.answers.get(question_id, answer)

        merged, adopted = scoring.merge_ai_suggestion(question, current, suggestion)
        self._store_answer(submission, merged)

        await event_bus.publish(EventNameEnum.AI_SUGGESTION_STORED, {
            "submission_id": submission_id,
            "question_id": question_id,
            "score": merged.ai_suggested_score,
            "adopted": adopted,
            "assessor": session.assessor,
        })
        return merged

    async def adopt_ai_suggestion(self, submission_id: str, question_id: str,
                                  assessor: str = "SYSTEM") -> UserAnswer:
        submission, exam = self._load(submission_id)
        self._require_editable(submission)
        question = self._get_question(exam, question_id)

        answer = submission.answers.get(question_id)
        if answer is None or answer.ai_suggested_score is None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="There is no AI suggestion to adopt for this question."
            )

        adopted = scoring.apply_manual_score(
            question, answer, answer.ai_suggested_score, answer.ai_feedback, self.clock()
        )
        self._store_answer(submission, adopted)

        await event_bus.publish(EventNameEnum.AI_SUGGESTION_ADOPTED, {
            "submission_id": submission_id,
            "question_id": question_id,
            "score": adopted.score,
            "assessor": assessor,
        })
        return adopted

    async def finalize_grading(self, submission_id: str, assessor: str = "SYSTEM") -> GradingSummary:
        submission, exam = self._load(submission_id)
        if submission.is_locked:
            return scoring.grading_summary(submission, exam, self.policy)

        if submission.status != SubmissionStatusEnum.COMPLETED:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Only completed submissions can be finalized."
            )
        review = scoring.review_status(submission, exam, self.policy)
        if review != ReviewStatusEnum.REVIEWED:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"All manually graded questions must be scored first ({review.value})."
            )

        submission.total_score = scoring.final_score(submission, exam)
        submission.is_locked = True
        logger.info(f"Grading locked for {submission_id} with total {submission.total_score}")

        await event_bus.publish(EventNameEnum.GRADING_FINALIZED, {
            "submission_id": submission_id,
            "total_score": submission.total_score,
            "assessor": assessor,
        })
        return scoring.grading_summary(submission, exam, self.policy)


grading_service = GradingService()
