import pytest

from simulados.core.errors import ConflictError, NotFoundError, ValidationError
from simulados.models.schemas import ExamStatus, PracticeExamCreate, PracticeExamUpdate
from simulados.services.exams import get_exam, update_practice_exam


@pytest.fixture
async def exam(storage):
    return await storage.create_practice_exam(PracticeExamCreate(
        user_id="u1", title="Simulado", subjects=["Matemática"], total_questions=5, time_limit=10))


async def test_start_then_complete_stamps_times(storage, exam):
    started = await update_practice_exam(storage, "u1", exam.id, PracticeExamUpdate(status=ExamStatus.IN_PROGRESS))
    assert started.status == ExamStatus.IN_PROGRESS
    assert started.started_at is not None
    assert started.completed_at is None

    done = await update_practice_exam(storage, "u1", exam.id, PracticeExamUpdate(
        status=ExamStatus.COMPLETED, score=80, correct_answers=4, time_spent=540))
    assert done.status == ExamStatus.COMPLETED
    assert done.completed_at is not None
    assert (done.score, done.correct_answers, done.time_spent) == (80, 4, 540)
    assert done.question_ids == exam.question_ids


async def test_terminal_states_are_final(storage, exam):
    await update_practice_exam(storage, "u1", exam.id, PracticeExamUpdate(status=ExamStatus.ABANDONED))
    with pytest.raises(ValidationError):
        await update_practice_exam(storage, "u1", exam.id, PracticeExamUpdate(status=ExamStatus.IN_PROGRESS))


async def test_cannot_go_back_to_not_started(storage, exam):
    await update_practice_exam(storage, "u1", exam.id, PracticeExamUpdate(status="in_progress"))
    with pytest.raises(ValidationError):
        await update_practice_exam(storage, "u1", exam.id, PracticeExamUpdate(status="not_started"))


async def test_same_status_is_a_no_op_transition(storage, exam):
    updated = await update_practice_exam(storage, "u1", exam.id, PracticeExamUpdate(status="not_started", score=10))
    assert updated.status == ExamStatus.NOT_STARTED
    assert updated.score == 10


async def test_ownership(storage, exam):
    with pytest.raises(ConflictError):
        await update_practice_exam(storage, "u2", exam.id, PracticeExamUpdate(status="in_progress"))
    with pytest.raises(NotFoundError):
        await update_practice_exam(storage, "u1", "missing", PracticeExamUpdate(status="in_progress"))
    with pytest.raises(NotFoundError):
        await get_exam(storage, "u2", exam.id)
    assert (await get_exam(storage, "u1", exam.id)).id == exam.id


def test_score_is_bounded():
    with pytest.raises(ValueError):
        PracticeExamUpdate(score=101)
