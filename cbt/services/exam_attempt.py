import functools
import logging
import random
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

from fastapi import HTTPException, status

from cbt.core.cache import AutosaveStorage, autosave_storage
from cbt.core.config import settings
from cbt.core.constants import (
    EventNameEnum,
    ExamStatusEnum,
    QuestionTypeEnum,
    SubmissionFlagEnum,
    SubmissionStatusEnum,
    TimelineEventTypeEnum,
)
from cbt.core.scheduler import schedule_clock, cancel_clock
from cbt.crud.exam import exam as crud_exam
from cbt.crud.submission import submission as crud_submission
from cbt.schemas.attempt import AttemptView, FinalizeResult
from cbt.schemas.exam import ExamSession
from cbt.schemas.exam_state import ExamState
from cbt.schemas.question import Question
from cbt.schemas.submission import Submission, SubmissionCreate, TimelineEvent
from cbt.schemas.user_answer import AnswerValue, UserAnswer
from cbt.services import navigator, scoring
from cbt.services.answer_store import AnswerStore
from cbt.services.clock import ExamClock
from cbt.utils.events import event_bus
from cbt.utils.time import utcnow, ensure_aware

logger = logging.getLogger(__name__)

EVENT_LABELS = {
    TimelineEventTypeEnum.SESSION_START: "Session started",
    TimelineEventTypeEnum.CONNECTION_LOST: "Connection lost",
    TimelineEventTypeEnum.CONNECTION_RESTORED: "Connection restored",
    TimelineEventTypeEnum.APP_RESTART: "Application restarted",
    TimelineEventTypeEnum.FOCUS_LOST: "Focus lost (switched tab or window)",
    TimelineEventTypeEnum.INACTIVITY_FLAG: "Inactivity detected",
    TimelineEventTypeEnum.SUBMITTED: "Answers submitted",
}


def derive_exam_status(exam: ExamSession, now: datetime) -> ExamStatusEnum:
    if exam.status in (ExamStatusEnum.DRAFT, ExamStatusEnum.EXPIRED, ExamStatusEnum.COMPLETED):
        return exam.status
    now = ensure_aware(now)
    if now < ensure_aware(exam.start_time):
        return ExamStatusEnum.UPCOMING
    if now <= ensure_aware(exam.end_time):
        return ExamStatusEnum.ONGOING
    return ExamStatusEnum.COMPLETED


def present_questions(exam: ExamSession, seed: str, order: Optional[List[str]] = None) -> List[Question]:
    """Question list as this candidate sees it. The same seed always yields the same presentation."""
    rng = random.Random(seed)
    by_id = exam.question_map()

    if order:
        questions = [by_id[qid] for qid in order if qid in by_id]
    else:
        questions = list(exam.questions)
        if exam.config.randomize_questions:
            rng.shuffle(questions)

    if not exam.config.randomize_options:
        return questions

    presented = []
    for question in questions:
        if question.type == QuestionTypeEnum.MULTIPLE_CHOICE and question.options:
            options = list(question.options)
            random.Random(f"{seed}:{question.id}").shuffle(options)
            question = question.model_copy(update={"options": options})
        presented.append(question)
    return presented


def append_event(submission: Submission, event_type: TimelineEventTypeEnum, label: str,
                 now: datetime) -> TimelineEvent:
    timestamp = ensure_aware(now)
    if submission.timeline_events:
        last = ensure_aware(submission.timeline_events[-1].timestamp)
        if timestamp < last:
            timestamp = last
    event = TimelineEvent(timestamp=timestamp, type=event_type, label=label or EVENT_LABELS[event_type])
    submission.timeline_events = [*submission.timeline_events, event]
    return event


def add_flag(submission: Submission, flag: SubmissionFlagEnum):
    if not submission.has_flag(flag.value):
        submission.flags = [*submission.flags, flag.value]
        logger.info(f"Submission {submission.id} flagged {flag.value}")


class ActiveAttempt:
    def __init__(self, submission_id: str, exam: ExamSession, questions: List[Question],
                 store: AnswerStore, clock: ExamClock, deadline: datetime):
        self.submission_id = submission_id
        self.exam = exam
        self.questions = questions
        self.store = store
        self.clock = clock
        self.deadline = deadline
        self.state = ExamState(time_remaining=clock.time_remaining)

    def exam_state(self) -> ExamState:
        return self.state.model_copy(update={
            "answers": self.store.snapshot(),
            "time_remaining": self.clock.time_remaining,
        })


class ExamAttemptService:

    def __init__(self, storage: AutosaveStorage = autosave_storage, clock: Callable[[], datetime] = utcnow):
        self.storage = storage
        self.clock = clock
        self._attempts: Dict[str, ActiveAttempt] = {}

    def _get_exam_or_404(self, exam_id: str) -> ExamSession:
        exam = crud_exam.get(exam_id)
        if not exam:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Exam not found.")
        return exam

    def _get_submission_or_404(self, submission_id: str) -> Submission:
        submission = crud_submission.get(submission_id)
        if not submission:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Submission not found.")
        return submission

    def _require_in_progress(self, submission: Submission) -> ActiveAttempt:
        if submission.status == SubmissionStatusEnum.COMPLETED:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="This attempt has already been finalized."
            )
        attempt = self._attempts.get(submission.id)
        if not attempt:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Attempt is not active. Resume it before answering."
            )
        return attempt

    def _require_question_in_exam(self, exam: ExamSession, question_id: str) -> Question:
        question = exam.get_question(question_id)
        if not question:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Question does not belong to this exam."
            )
        return question

    def _refresh_progress(self, submission: Submission, exam: ExamSession, answered_ids):
        question_ids = {q.id for q in exam.questions}
        answered = len(question_ids & set(answered_ids))
        submission.progress = scoring.compute_progress(answered, len(question_ids))

    def _build_attempt(self, submission: Submission, exam: ExamSession, time_remaining: Optional[int] = None) -> ActiveAttempt:
        store = AnswerStore(
            self.storage.key_for(exam.id, submission.id),
            storage=self.storage,
            clock=self.clock,
        )
        started_at = ensure_aware(submission.started_at or self.clock())
        deadline = started_at + timedelta(minutes=exam.duration_minutes)
        clock = ExamClock(
            exam.duration_minutes,
            on_expire=functools.partial(self.finalize, submission.id, True),
            time_remaining=time_remaining,
        )
        questions = present_questions(exam, submission.id, submission.question_order or None)
        attempt = ActiveAttempt(submission.id, exam, questions, store, clock, deadline)
        self._attempts[submission.id] = attempt
        return attempt

    def get_active_attempt(self, submission_id: str) -> Optional[ActiveAttempt]:
        return self._attempts.get(submission_id)

    async def start_attempt(self, exam_id: str, candidate_name: str) -> ActiveAttempt:
        exam = self._get_exam_or_404(exam_id)
        now = self.clock()

        exam_status = derive_exam_status(exam, now)
        if exam_status != ExamStatusEnum.ONGOING:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Exam is not open for attempts (status {exam_status.value})."
            )

        submission = crud_submission.create(obj_in=SubmissionCreate(
            candidate_name=candidate_name,
            exam_id=exam.id,
            status=SubmissionStatusEnum.ACTIVE,
            is_online=True,
            last_active=now,
        ))
        submission.started_at = now
        attempt = self._build_attempt(submission, exam)
        submission.question_order = [q.id for q in attempt.questions]
        append_event(submission, TimelineEventTypeEnum.SESSION_START, "", now)

        await attempt.store.restore()
        self._refresh_progress(submission, exam, attempt.store.answered_ids())
        schedule_clock(submission.id, functools.partial(self.tick, submission.id))

        logger.info(f"Attempt {submission.id} started by {candidate_name} for exam {exam.id}")
        await event_bus.publish(EventNameEnum.ATTEMPT_STARTED, {
            "submission_id": submission.id,
            "exam_id": exam.id,
            "candidate_name": candidate_name,
        })
        return attempt

    async def resume_attempt(self, submission_id: str) -> ActiveAttempt:
        """Reattach to an in-progress attempt after a reload or crash, restoring autosaved answers."""
        submission = self._get_submission_or_404(submission_id)
        if submission.status == SubmissionStatusEnum.COMPLETED:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="This attempt has already been finalized."
            )

        attempt = self._attempts.get(submission_id)
        if attempt:
            submission.status = SubmissionStatusEnum.ACTIVE
            submission.is_online = True
            submission.last_active = ensure_aware(self.clock())
            return attempt

        exam = self._get_exam_or_404(submission.exam_id)
        now = ensure_aware(self.clock())
        started_at = ensure_aware(submission.started_at or now)
        elapsed = int((now - started_at).total_seconds())
        remaining = max(0, exam.duration_minutes * 60 - elapsed)

        attempt = self._build_attempt(submission, exam, time_remaining=remaining)
        append_event(submission, TimelineEventTypeEnum.APP_RESTART, "", now)
        submission.status = SubmissionStatusEnum.ACTIVE
        submission.is_online = True
        submission.last_active = now

        restored = await attempt.store.restore()
        self._refresh_progress(submission, exam, attempt.store.answered_ids())
        logger.info(f"Attempt {submission_id} resumed with {restored} autosaved answers, {remaining}s left")

        if remaining == 0:
            await attempt.clock.expire_now()
        else:
            schedule_clock(submission_id, functools.partial(self.tick, submission_id))
        return attempt

    def update_answer(self, submission_id: str, question_id: str, value: AnswerValue) -> Optional[UserAnswer]:
        submission = self._get_submission_or_404(submission_id)
        attempt = self._require_in_progress(submission)
        self._require_question_in_exam(attempt.exam, question_id)

        answer = attempt.store.write(question_id, value)
        if answer is None:
            return None

        self._refresh_progress(submission, attempt.exam, attempt.store.answered_ids())
        submission.last_active = answer.last_saved
        return answer

    def navigate(self, submission_id: str, index: Optional[int] = None,
                 direction: Optional[str] = None) -> ExamState:
        submission = self._get_submission_or_404(submission_id)
        attempt = self._require_in_progress(submission)
        total = len(attempt.questions)

        if index is not None:
            attempt.state = navigator.go_to(attempt.state, index, total)
        elif direction == "next":
            attempt.state = navigator.next_question(attempt.state, total)
        elif direction == "previous":
            attempt.state = navigator.previous_question(attempt.state, total)
        return attempt.exam_state()

    def get_attempt_view(self, submission_id: str) -> AttemptView:
        submission = self._get_submission_or_404(submission_id)
        attempt = self._attempts.get(submission_id)

        if attempt is None:
            exam = self._get_exam_or_404(submission.exam_id)
            questions = present_questions(exam, submission.id, submission.question_order or None)
            state = ExamState(answers=submission.answers, is_submitting=False, time_remaining=0)
        else:
            questions = attempt.questions
            state = attempt.exam_state()

        return AttemptView(
            submission_id=submission.id,
            exam_id=submission.exam_id,
            status=submission.status,
            progress=submission.progress,
            state=state,
            question_order=[q.id for q in questions],
            current_question=navigator.current_question(state, questions),
            answered=navigator.answered_ids(state, questions),
            unanswered=navigator.unanswered_ids(state, questions),
        )

    async def tick(self, submission_id: str) -> int:
        attempt = self._attempts.get(submission_id)
        if not attempt:
            cancel_clock(submission_id)
            return 0
        return await attempt.clock.tick()

    async def finalize(self, submission_id: str, forced: bool = False) -> Submission:
        """Freeze the attempt into a COMPLETED submission. Calling it again is a no-op."""
        submission = self._get_submission_or_404(submission_id)
        if submission.status == SubmissionStatusEnum.COMPLETED:
            logger.debug(f"Finalize on completed submission {submission_id} ignored")
            return submission

        exam = self._get_exam_or_404(submission.exam_id)
        attempt = self._attempts.get(submission_id)
        if attempt is None:
            # No live attempt in this process: finalize from the durable autosave
            attempt = self._build_attempt(submission, exam, time_remaining=0)
            await attempt.store.restore()

        attempt.state = attempt.state.model_copy(update={"is_submitting": True})
        attempt.clock.stop()
        cancel_clock(submission_id)

        ledger = attempt.store.freeze(deadline=attempt.deadline)
        now = self.clock()

        submission.answers = scoring.auto_grade(ledger, list(exam.questions))
        self._refresh_progress(submission, exam, ledger.keys())
        submission.status = SubmissionStatusEnum.COMPLETED
        submission.submitted_at = now
        submission.last_active = now
        label = "Time expired; answers submitted automatically" if forced else EVENT_LABELS[TimelineEventTypeEnum.SUBMITTED]
        append_event(submission, TimelineEventTypeEnum.SUBMITTED, label, now)
        crud_submission.add(submission)

        await attempt.store.discard()
        self._attempts.pop(submission_id, None)

        logger.info(
            f"Submission {submission_id} finalized ({'forced' if forced else 'manual'}), "
            f"{len(ledger)}/{len(exam.questions)} answered"
        )
        await event_bus.publish(EventNameEnum.SUBMISSION_FINALIZED, {
            "submission_id": submission_id,
            "exam_id": exam.id,
            "forced": forced,
            "final_score": scoring.final_score(submission, exam),
        })
        return submission

    def finalize_result(self, submission: Submission) -> FinalizeResult:
        exam = self._get_exam_or_404(submission.exam_id)
        return FinalizeResult(
            submission_id=submission.id,
            status=submission.status,
            submitted_at=submission.submitted_at,
            answered=len([qid for qid in submission.answers if exam.get_question(qid)]),
            total_questions=len(exam.questions),
            final_score=scoring.final_score(submission, exam) if exam.config.show_results_immediately else None,
        )

    def record_event(self, submission_id: str, event_type: TimelineEventTypeEnum, label: str = "") -> Submission:
        submission = self._get_submission_or_404(submission_id)
        if submission.status == SubmissionStatusEnum.COMPLETED:
            logger.debug(f"Event {event_type.value} on completed submission {submission_id} ignored")
            return submission
        if event_type == TimelineEventTypeEnum.SUBMITTED:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Submission events are recorded by finalization only."
            )

        now = self.clock()
        append_event(submission, event_type, label, now)
        submission.last_active = now

        if event_type == TimelineEventTypeEnum.CONNECTION_LOST:
            submission.status = SubmissionStatusEnum.DISCONNECTED
            submission.is_online = False
            if submission.count_events(event_type) >= settings.CONNECTION_LOST_FLAG_THRESHOLD:
                add_flag(submission, SubmissionFlagEnum.UNSTABLE_CONNECTION)
        elif event_type in (TimelineEventTypeEnum.CONNECTION_RESTORED, TimelineEventTypeEnum.APP_RESTART):
            submission.status = SubmissionStatusEnum.ACTIVE
            submission.is_online = True
        elif event_type == TimelineEventTypeEnum.FOCUS_LOST:
            if submission.count_events(event_type) >= settings.FOCUS_LOST_FLAG_THRESHOLD:
                add_flag(submission, SubmissionFlagEnum.REPEATED_FOCUS_LOSS)
        elif event_type == TimelineEventTypeEnum.INACTIVITY_FLAG:
            add_flag(submission, SubmissionFlagEnum.INACTIVITY)

        return submission

    def reset(self):
        for submission_id in list(self._attempts):
            cancel_clock(submission_id)
        self._attempts.clear()


exam_attempt_service = ExamAttemptService()
