"""Question navigation as pure reducers over ExamState. Moving never touches answers."""
from typing import List, Optional, Sequence

from cbt.schemas.exam_state import ExamState
from cbt.schemas.question import Question


def clamp_index(index: int, total: int) -> int:
    if total <= 0:
        return 0
    return max(0, min(index, total - 1))


def go_to(state: ExamState, index: int, total: int) -> ExamState:
    return state.model_copy(update={"current_question_index": clamp_index(index, total)})


def next_question(state: ExamState, total: int) -> ExamState:
    return go_to(state, state.current_question_index + 1, total)


def previous_question(state: ExamState, total: int) -> ExamState:
    return go_to(state, state.current_question_index - 1, total)


def current_question(state: ExamState, questions: Sequence[Question]) -> Optional[Question]:
    if not questions:
        return None
    return questions[clamp_index(state.current_question_index, len(questions))]


def answered_ids(state: ExamState, questions: Sequence[Question]) -> List[str]:
    return [q.id for q in questions if q.id in state.answers]


def unanswered_ids(state: ExamState, questions: Sequence[Question]) -> List[str]:
    return [q.id for q in questions if q.id not in state.answers]
