"""
Scoring rules for a submission.

Everything here is a pure function of the exam's question definitions and the
answer ledger; the grading service owns persistence, events and the AI call.
"""
import math
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from cbt.core.constants import (
    AUTO_GRADABLE_TYPES,
    MANUALLY_GRADABLE_TYPES,
    QuestionGradingStateEnum,
    QuestionTypeEnum,
    ReviewPolicyEnum,
    ReviewStatusEnum,
)
from cbt.schemas.exam import ExamSession
from cbt.schemas.grading import GradingSummary, QuestionGrade, Suggestion
from cbt.schemas.question import Question
from cbt.schemas.submission import Submission
from cbt.schemas.user_answer import UserAnswer


def clamp_score(score: float, weight: int) -> float:
    if score is None or math.isnan(score):
        return 0.0
    return float(min(max(score, 0), weight))


def compute_progress(answered: int, total: int) -> int:
    if total <= 0:
        return 0
    # Half-up rounding
    return int(math.floor(100 * answered / total + 0.5))


def answers_match(answer: UserAnswer, question: Question) -> bool:
    if question.correct_answer is None:
        return False
    return answer.answer_text() == question.correct_answer.strip()


def auto_grade_answer(question: Question, answer: UserAnswer) -> UserAnswer:
    if question.type not in AUTO_GRADABLE_TYPES or question.correct_answer is None:
        return answer
    if answer.grading_state == QuestionGradingStateEnum.MANUALLY_GRADED:
        return answer

    score = float(question.weight) if answers_match(answer, question) else 0.0
    return answer.model_copy(update={
        "score": score,
        "grading_state": QuestionGradingStateEnum.AUTO_GRADED,
    })


def auto_grade(answers: Dict[str, UserAnswer], questions: List[Question]) -> Dict[str, UserAnswer]:
    graded = dict(answers)
    for question in questions:
        answer = graded.get(question.id)
        if answer is not None:
            graded[question.id] = auto_grade_answer(question, answer)
    return graded


def apply_manual_score(question: Question, answer: Optional[UserAnswer], score: float,
                       feedback: Optional[str], now: datetime) -> UserAnswer:
    if answer is None:
        # Blank response graded by the assessor
        answer = UserAnswer(question_id=question.id, answer="", last_saved=now)

    update = {
        "score": clamp_score(score, question.weight),
        "last_saved": now,
        "grading_state": QuestionGradingStateEnum.MANUALLY_GRADED,
    }
    if feedback is not None:
        update["feedback"] = feedback
    return answer.model_copy(update=update)


def merge_ai_suggestion(question: Question, answer: UserAnswer,
                        suggestion: Suggestion) -> Tuple[UserAnswer, bool]:
    """Store a suggestion; seed score/feedback only when ungraded and never adopted before."""
    suggested = clamp_score(suggestion.score, question.weight)
    update = {
        "ai_suggested_score": suggested,
        "ai_feedback": suggestion.feedback,
    }
    if answer.grading_state != QuestionGradingStateEnum.MANUALLY_GRADED:
        update["grading_state"] = QuestionGradingStateEnum.AI_SUGGESTED

    adopt = answer.score is None and not answer.ai_adopted
    if adopt:
        update["score"] = suggested
        update["feedback"] = suggestion.feedback
        update["ai_adopted"] = True
    return answer.model_copy(update=update), adopt


def manually_gradable_questions(exam: ExamSession, policy: ReviewPolicyEnum) -> List[Question]:
    types = MANUALLY_GRADABLE_TYPES[policy]
    return [q for q in exam.questions if q.type in types]


def review_counts(submission: Submission, exam: ExamSession, policy: ReviewPolicyEnum) -> Tuple[int, int]:
    gradable = manually_gradable_questions(exam, policy)
    reviewed = sum(
        1 for q in gradable
        if q.id in submission.answers and submission.answers[q.id].score is not None
    )
    return reviewed, len(gradable)


def review_status(submission: Submission, exam: ExamSession, policy: ReviewPolicyEnum) -> ReviewStatusEnum:
    reviewed, total = review_counts(submission, exam, policy)
    if reviewed == total:
        return ReviewStatusEnum.REVIEWED
    if reviewed == 0:
        return ReviewStatusEnum.NOT_REVIEWED
    return ReviewStatusEnum.PARTIALLY_REVIEWED


def _sum_scores(submission: Submission, questions: List[Question]) -> float:
    total = 0.0
    for question in questions:
        answer = submission.answers.get(question.id)
        if answer is not None and answer.score is not None:
            total += answer.score
    return total


def auto_score(submission: Submission, exam: ExamSession) -> float:
    mcq = [q for q in exam.questions if q.type == QuestionTypeEnum.MULTIPLE_CHOICE]
    return _sum_scores(submission, mcq)


def final_score(submission: Submission, exam: ExamSession) -> float:
    return _sum_scores(submission, list(exam.questions))


def question_grade(question: Question, answer: Optional[UserAnswer]) -> QuestionGrade:
    if answer is None:
        return QuestionGrade(question_id=question.id, type=question.type, weight=question.weight)
    return QuestionGrade(
        question_id=question.id,
        type=question.type,
        weight=question.weight,
        answer=str(answer.answer),
        score=answer.score,
        feedback=answer.feedback,
        ai_suggested_score=answer.ai_suggested_score,
        ai_feedback=answer.ai_feedback,
        state=answer.grading_state,
    )


def grading_summary(submission: Submission, exam: ExamSession, policy: ReviewPolicyEnum) -> GradingSummary:
    reviewed, gradable = review_counts(submission, exam, policy)
    return GradingSummary(
        submission_id=submission.id,
        exam_id=exam.id,
        review_status=review_status(submission, exam, policy),
        reviewed_count=reviewed,
        manually_gradable_count=gradable,
        auto_score=auto_score(submission, exam),
        final_score=final_score(submission, exam),
        max_score=sum(q.weight for q in exam.questions),
        is_locked=submission.is_locked,
        questions=[question_grade(q, submission.answers.get(q.id)) for q in exam.questions],
    )
