"""
Rolling statistics over the append-only answer log.

Both rollups are recomputed from scratch on every answer: the question's
attempt count and success rate, and the user's per-subject totals. They are
independent views, so a failure in one never stops the other, and neither
touches the answer that triggered them.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from simulados.core.errors import ConflictError, NotFoundError, ServiceError, ValidationError
from simulados.models.schemas import (
    AnswerRecord,
    AnswerRecordCreate,
    AnswerSubmit,
    SubjectRollup,
    UserSubjectStats,
)
from simulados.storage.base import Storage

logger = logging.getLogger(__name__)


@dataclass
class RollupReport:
    question_error: Optional[Exception] = None
    subject_error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.question_error is None and self.subject_error is None

    def errors(self) -> List[str]:
        out = []
        if self.question_error is not None:
            out.append(f"question rollup: {_describe(self.question_error)}")
        if self.subject_error is not None:
            out.append(f"subject rollup: {_describe(self.subject_error)}")
        return out


def _describe(error: Exception) -> str:
    return error.message if isinstance(error, ServiceError) else str(error)


def _percent(part: int, whole: int) -> float:
    return round(part / whole * 100, 2) if whole else 0.0


def question_rollup(answers: Sequence[AnswerRecord]) -> Tuple[int, float]:
    """(total attempts, success rate) for one question's answers."""
    total = len(answers)
    correct = sum(1 for a in answers if a.is_correct)
    return total, _percent(correct, total)


def subject_rollup(answers: Sequence[AnswerRecord]) -> SubjectRollup:
    total = len(answers)
    correct = sum(1 for a in answers if a.is_correct)
    # answers without a recorded time are left out of the mean
    timed = [a.time_spent for a in answers if a.time_spent is not None]
    average_time = round(sum(timed) / len(timed), 2) if timed else 0.0
    return SubjectRollup(
        total_questions=total,
        correct_answers=correct,
        average_time=average_time,
        success_rate=_percent(correct, total),
    )


async def refresh_question_rollup(storage: Storage, question_id: str) -> Tuple[int, float]:
    answers = await storage.list_answers_for_question(question_id)
    total, success_rate = question_rollup(answers)
    await storage.update_question_rollup(question_id, total, success_rate)
    return total, success_rate


async def refresh_subject_rollup(storage: Storage, user_id: str, subject: str) -> UserSubjectStats:
    answers = await storage.list_answers_for_user_subject(user_id, subject)
    return await storage.upsert_user_subject_stats(user_id, subject, subject_rollup(answers))


async def aggregate_answer(storage: Storage, answer: AnswerRecord, subject: str) -> RollupReport:
    report = RollupReport()
    try:
        await refresh_question_rollup(storage, answer.question_id)
    except Exception as e:
        # the answer is already stored; the subject rollup must still run
        logger.exception(f"Question rollup failed for question={answer.question_id}: {_describe(e)}")
        report.question_error = e
    try:
        await refresh_subject_rollup(storage, answer.user_id, subject)
    except Exception as e:
        logger.exception(f"Subject rollup failed for user={answer.user_id} subject={subject!r}: {_describe(e)}")
        report.subject_error = e
    return report


async def submit_answer(storage: Storage, user_id: str, payload: AnswerSubmit) -> Tuple[AnswerRecord, RollupReport]:
    """Record one answer, grading it against the question, then refresh the rollups."""
    question = await storage.get_question(payload.question_id)
    if question is None:
        raise NotFoundError("Question not found", question_id=payload.question_id)

    if payload.simulado_id:
        exam = await storage.get_practice_exam(payload.simulado_id)
        if exam is None:
            raise NotFoundError("Simulado not found", simulado_id=payload.simulado_id)
        if exam.user_id != user_id:
            raise ConflictError("Simulado belongs to another user", simulado_id=payload.simulado_id)
        if question.id not in exam.question_ids:
            raise ValidationError("Question is not part of this simulado",
                                  simulado_id=exam.id, question_id=question.id)

    answer = await storage.create_answer_record(
        AnswerRecordCreate(
            user_id=user_id,
            question_id=question.id,
            simulado_id=payload.simulado_id,
            selected_alternative=payload.selected_alternative,
            is_correct=payload.selected_alternative == question.correct_alternative,
            time_spent=payload.time_spent,
        )
    )
    report = await aggregate_answer(storage, answer, question.subject)
    return answer, report
