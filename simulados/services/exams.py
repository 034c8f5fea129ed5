import logging
from typing import Dict, FrozenSet, List

from simulados.core.errors import ConflictError, NotFoundError, ValidationError
from simulados.models.orm import utcnow
from simulados.models.schemas import ExamStatus, PracticeExam, PracticeExamCreate, PracticeExamIn, PracticeExamUpdate
from simulados.storage.base import Storage

logger = logging.getLogger(__name__)

TRANSITIONS: Dict[ExamStatus, FrozenSet[ExamStatus]] = {
    ExamStatus.NOT_STARTED: frozenset({ExamStatus.IN_PROGRESS, ExamStatus.COMPLETED, ExamStatus.ABANDONED}),
    ExamStatus.IN_PROGRESS: frozenset({ExamStatus.COMPLETED, ExamStatus.ABANDONED}),
    ExamStatus.COMPLETED: frozenset(),
    ExamStatus.ABANDONED: frozenset(),
}


async def list_exams(storage: Storage, user_id: str) -> List[PracticeExam]:
    return await storage.list_practice_exams(user_id)


async def create_exam(storage: Storage, user_id: str, payload: PracticeExamIn) -> PracticeExam:
    exam = await storage.create_practice_exam(PracticeExamCreate(user_id=user_id, **payload.model_dump()))
    logger.info(f"Created {exam.type.value} simulado {exam.id} for {user_id} with {len(exam.question_ids)} questions")
    return exam


async def get_exam(storage: Storage, user_id: str, exam_id: str) -> PracticeExam:
    exam = await storage.get_practice_exam(exam_id)
    # someone else's exam is reported as missing
    if exam is None or exam.user_id != user_id:
        raise NotFoundError("Simulado not found", simulado_id=exam_id)
    return exam


async def update_practice_exam(storage: Storage, user_id: str, exam_id: str, changes: PracticeExamUpdate) -> PracticeExam:
    exam = await storage.get_practice_exam(exam_id)
    if exam is None:
        raise NotFoundError("Simulado not found", simulado_id=exam_id)
    if exam.user_id != user_id:
        raise ConflictError("Simulado belongs to another user", simulado_id=exam_id)

    fields = changes.model_dump(exclude_unset=True, exclude_none=True)
    new_status = fields.get("status")
    if new_status is not None and new_status != exam.status:
        if new_status not in TRANSITIONS[exam.status]:
            raise ValidationError(f"Cannot move simulado from {exam.status.value} to {new_status.value}",
                                  simulado_id=exam_id)
        if new_status == ExamStatus.IN_PROGRESS and exam.started_at is None:
            fields.setdefault("started_at", utcnow())
        if new_status == ExamStatus.COMPLETED:
            fields.setdefault("completed_at", utcnow())
        logger.info(f"Simulado {exam_id}: {exam.status.value} -> {new_status.value}")

    if not fields:
        return exam
    updated = await storage.update_practice_exam(exam_id, fields)
    if updated is None:
        raise NotFoundError("Simulado not found", simulado_id=exam_id)
    return updated
