import functools
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from simulados.core.errors import StorageError
from simulados.models import orm
from simulados.models.schemas import (
    AnswerRecord,
    AnswerRecordCreate,
    PracticeExam,
    PracticeExamCreate,
    Question,
    QuestionCreate,
    QuestionFilters,
    SubjectRollup,
    UserProfile,
    UserProfileIn,
    UserSubjectStats,
)
from simulados.storage.base import Storage, plain_fields

logger = logging.getLogger(__name__)


def _db_errors(func):
    """Roll back and surface SQLAlchemy failures as StorageError."""
    @functools.wraps(func)
    async def wrapper(self, *args, **kwargs):
        try:
            return await func(self, *args, **kwargs)
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"{func.__name__} failed: {e}")
            raise StorageError(f"Database operation failed: {func.__name__}") from e
    return wrapper


class SqlStorage(Storage):
    """SQLAlchemy adapter. Each write commits on its own."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # ========== Questions ==========

    @_db_errors
    async def get_questions(self, filters: QuestionFilters) -> List[Question]:
        stmt = select(orm.Question).where(orm.Question.is_active.is_(True))
        if filters.subject:
            stmt = stmt.where(orm.Question.subject == filters.subject)
        if filters.exam_board:
            stmt = stmt.where(orm.Question.exam_board == filters.exam_board)
        if filters.exam_year:
            stmt = stmt.where(orm.Question.exam_year == filters.exam_year)
        if filters.exam_type:
            stmt = stmt.where(orm.Question.exam_type == filters.exam_type)
        if filters.difficulty:
            stmt = stmt.where(orm.Question.difficulty == filters.difficulty.value)
        stmt = stmt.order_by(orm.Question.created_at.desc())
        if filters.limit:
            stmt = stmt.limit(filters.limit)
        if filters.offset:
            stmt = stmt.offset(filters.offset)
        rows = (await self.session.scalars(stmt)).all()
        return [Question.model_validate(r) for r in rows]

    @_db_errors
    async def get_question(self, question_id: str) -> Optional[Question]:
        row = await self.session.get(orm.Question, question_id)
        return Question.model_validate(row) if row else None

    @_db_errors
    async def create_question(self, data: QuestionCreate) -> Question:
        row = orm.Question(**data.model_dump(mode="json"), success_rate=0.0, total_attempts=0)
        self.session.add(row)
        await self.session.commit()
        return Question.model_validate(row)

    @_db_errors
    async def update_question_rollup(self, question_id: str, total_attempts: int, success_rate: float) -> None:
        result = await self.session.execute(
            update(orm.Question)
            .where(orm.Question.id == question_id)
            .values(total_attempts=total_attempts, success_rate=success_rate, updated_at=orm.utcnow())
        )
        await self.session.commit()
        if result.rowcount == 0:
            logger.warning(f"Rollup target question {question_id} does not exist")

    # ========== Profiles ==========

    async def _profile_row(self, user_id: str) -> Optional[orm.UserProfile]:
        return await self.session.scalar(select(orm.UserProfile).where(orm.UserProfile.user_id == user_id))

    @_db_errors
    async def get_user_profile(self, user_id: str) -> Optional[UserProfile]:
        row = await self._profile_row(user_id)
        return UserProfile.model_validate(row) if row else None

    @_db_errors
    async def save_user_profile(self, user_id: str, data: UserProfileIn) -> UserProfile:
        row = await self._profile_row(user_id)
        if row is None:
            row = orm.UserProfile(user_id=user_id)
            self.session.add(row)
        for key, value in data.model_dump(mode="json").items():
            setattr(row, key, value)
        row.updated_at = orm.utcnow()
        await self.session.commit()
        return UserProfile.model_validate(row)

    @_db_errors
    async def update_user_profile(self, user_id: str, fields: Dict[str, Any]) -> Optional[UserProfile]:
        row = await self._profile_row(user_id)
        if row is None:
            return None
        for key, value in plain_fields(fields).items():
            setattr(row, key, value)
        row.updated_at = orm.utcnow()
        await self.session.commit()
        return UserProfile.model_validate(row)

    # ========== Practice exams ==========

    @_db_errors
    async def list_practice_exams(self, user_id: str) -> List[PracticeExam]:
        stmt = (
            select(orm.PracticeExam)
            .where(orm.PracticeExam.user_id == user_id)
            .order_by(orm.PracticeExam.created_at.desc())
        )
        return [PracticeExam.model_validate(r) for r in (await self.session.scalars(stmt)).all()]

    @_db_errors
    async def get_practice_exam(self, exam_id: str) -> Optional[PracticeExam]:
        row = await self.session.get(orm.PracticeExam, exam_id)
        return PracticeExam.model_validate(row) if row else None

    @_db_errors
    async def create_practice_exam(self, exam: PracticeExamCreate) -> PracticeExam:
        row = orm.PracticeExam(**exam.model_dump(mode="json"), status="not_started", correct_answers=0)
        self.session.add(row)
        await self.session.commit()
        return PracticeExam.model_validate(row)

    @_db_errors
    async def update_practice_exam(self, exam_id: str, fields: Dict[str, Any]) -> Optional[PracticeExam]:
        row = await self.session.get(orm.PracticeExam, exam_id)
        if row is None:
            return None
        for key, value in plain_fields(fields).items():
            setattr(row, key, value)
        await self.session.commit()
        return PracticeExam.model_validate(row)

    # ========== Answers ==========

    @_db_errors
    async def create_answer_record(self, record: AnswerRecordCreate) -> AnswerRecord:
        row = orm.AnswerRecord(**record.model_dump())
        self.session.add(row)
        await self.session.commit()
        return AnswerRecord.model_validate(row)

    @_db_errors
    async def list_answers(self, user_id: str, question_id: Optional[str] = None,
                           simulado_id: Optional[str] = None) -> List[AnswerRecord]:
        stmt = select(orm.AnswerRecord).where(orm.AnswerRecord.user_id == user_id)
        if question_id:
            stmt = stmt.where(orm.AnswerRecord.question_id == question_id)
        if simulado_id:
            stmt = stmt.where(orm.AnswerRecord.simulado_id == simulado_id)
        stmt = stmt.order_by(orm.AnswerRecord.created_at.desc())
        return [AnswerRecord.model_validate(r) for r in (await self.session.scalars(stmt)).all()]

    @_db_errors
    async def list_answers_for_question(self, question_id: str) -> List[AnswerRecord]:
        stmt = select(orm.AnswerRecord).where(orm.AnswerRecord.question_id == question_id)
        return [AnswerRecord.model_validate(r) for r in (await self.session.scalars(stmt)).all()]

    @_db_errors
    async def list_answers_for_user_subject(self, user_id: str, subject: str) -> List[AnswerRecord]:
        stmt = (
            select(orm.AnswerRecord)
            .join(orm.Question, orm.AnswerRecord.question_id == orm.Question.id)
            .where(orm.AnswerRecord.user_id == user_id, orm.Question.subject == subject)
        )
        return [AnswerRecord.model_validate(r) for r in (await self.session.scalars(stmt)).all()]

    # ========== Statistics ==========

    async def _stats_row(self, user_id: str, subject: str) -> Optional[orm.UserSubjectStats]:
        return await self.session.scalar(
            select(orm.UserSubjectStats).where(
                orm.UserSubjectStats.user_id == user_id, orm.UserSubjectStats.subject == subject
            )
        )

    @_db_errors
    async def get_user_subject_stats(self, user_id: str, subject: str) -> Optional[UserSubjectStats]:
        row = await self._stats_row(user_id, subject)
        return UserSubjectStats.model_validate(row) if row else None

    @_db_errors
    async def list_user_subject_stats(self, user_id: str, subject: Optional[str] = None) -> List[UserSubjectStats]:
        stmt = select(orm.UserSubjectStats).where(orm.UserSubjectStats.user_id == user_id)
        if subject:
            stmt = stmt.where(orm.UserSubjectStats.subject == subject)
        stmt = stmt.order_by(orm.UserSubjectStats.last_updated.desc())
        return [UserSubjectStats.model_validate(r) for r in (await self.session.scalars(stmt)).all()]

    @_db_errors
    async def upsert_user_subject_stats(self, user_id: str, subject: str, rollup: SubjectRollup) -> UserSubjectStats:
        row = await self._stats_row(user_id, subject)
        if row is None:
            row = orm.UserSubjectStats(user_id=user_id, subject=subject)
            self.session.add(row)
        _apply_rollup(row, rollup)
        try:
            await self.session.commit()
        except IntegrityError:
            # another request inserted the (user, subject) row first
            await self.session.rollback()
            row = await self._stats_row(user_id, subject)
            _apply_rollup(row, rollup)
            await self.session.commit()
        return UserSubjectStats.model_validate(row)


def _apply_rollup(row: orm.UserSubjectStats, rollup: SubjectRollup) -> None:
    row.total_questions = rollup.total_questions
    row.correct_answers = rollup.correct_answers
    row.average_time = rollup.average_time
    row.success_rate = rollup.success_rate
    row.last_updated = orm.utcnow()
