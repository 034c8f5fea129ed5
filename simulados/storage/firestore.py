"""
Firestore adapter.

Documents keep the camelCase field names the web client has always written
(``questions``, ``userProfiles``, ``simulados``, ``userAnswers``,
``userStats``). Firestore has no joins, so the user/subject answer scan
batch-reads the referenced questions.
"""
import functools
import hashlib
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from google.api_core import exceptions as google_exceptions
from google.cloud.firestore_v1.base_query import FieldFilter
from pydantic.alias_generators import to_camel

from simulados.core.errors import StorageError
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

QUESTIONS = "questions"
USER_PROFILES = "userProfiles"
SIMULADOS = "simulados"
USER_ANSWERS = "userAnswers"
USER_STATS = "userStats"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _document(fields: Dict[str, Any]) -> Dict[str, Any]:
    return {to_camel(k): v for k, v in plain_fields(fields).items()}


def _firestore_errors(func):
    @functools.wraps(func)
    async def wrapper(self, *args, **kwargs):
        try:
            return await func(self, *args, **kwargs)
        except google_exceptions.GoogleAPIError as e:
            logger.error(f"{func.__name__} failed: {e}")
            raise StorageError(f"Firestore operation failed: {func.__name__}") from e
    return wrapper


def stats_document_id(user_id: str, subject: str) -> str:
    """One document per (user, subject), whatever characters either part contains."""
    return hashlib.sha1(f"{user_id}\x00{subject}".encode("utf-8")).hexdigest()


class FirestoreStorage(Storage):

    def __init__(self, client):
        self.client = client

    def _col(self, name: str):
        return self.client.collection(name)

    async def _get(self, collection: str, doc_id: str, model):
        snap = await self._col(collection).document(doc_id).get()
        if not snap.exists:
            return None
        return model.model_validate({"id": snap.id, **snap.to_dict()})

    async def _add(self, collection: str, data: Dict[str, Any], model):
        _, ref = await self._col(collection).add(data)
        return model.model_validate({"id": ref.id, **data})

    # ========== Questions ==========

    @_firestore_errors
    async def get_questions(self, filters: QuestionFilters) -> List[Question]:
        query = self._col(QUESTIONS).where(filter=FieldFilter("isActive", "==", True))
        for field, value in (
            ("subject", filters.subject),
            ("examBoard", filters.exam_board),
            ("examYear", filters.exam_year),
            ("examType", filters.exam_type),
            ("difficulty", filters.difficulty.value if filters.difficulty else None),
        ):
            if value:
                query = query.where(filter=FieldFilter(field, "==", value))
        query = query.order_by("createdAt", direction="DESCENDING")
        if filters.offset:
            query = query.offset(filters.offset)
        if filters.limit:
            query = query.limit(filters.limit)
        return [Question.model_validate({"id": s.id, **s.to_dict()}) for s in await query.get()]

    @_firestore_errors
    async def get_question(self, question_id: str) -> Optional[Question]:
        return await self._get(QUESTIONS, question_id, Question)

    @_firestore_errors
    async def create_question(self, data: QuestionCreate) -> Question:
        now = _now()
        doc = plain_fields(data.model_dump(by_alias=True))
        doc.update(successRate=0.0, totalAttempts=0, createdAt=now, updatedAt=now)
        return await self._add(QUESTIONS, doc, Question)

    @_firestore_errors
    async def update_question_rollup(self, question_id: str, total_attempts: int, success_rate: float) -> None:
        try:
            await self._col(QUESTIONS).document(question_id).update(
                {"totalAttempts": total_attempts, "successRate": success_rate, "updatedAt": _now()}
            )
        except google_exceptions.NotFound:
            logger.warning(f"Rollup target question {question_id} does not exist")

    # ========== Profiles ==========

    @_firestore_errors
    async def get_user_profile(self, user_id: str) -> Optional[UserProfile]:
        snaps = await self._col(USER_PROFILES).where(filter=FieldFilter("userId", "==", user_id)).limit(1).get()
        if not snaps:
            return None
        return UserProfile.model_validate({"id": snaps[0].id, **snaps[0].to_dict()})

    @_firestore_errors
    async def save_user_profile(self, user_id: str, data: UserProfileIn) -> UserProfile:
        now = _now()
        doc = plain_fields(data.model_dump(by_alias=True))
        existing = await self.get_user_profile(user_id)
        if existing is None:
            doc.update(userId=user_id, createdAt=now, updatedAt=now)
            return await self._add(USER_PROFILES, doc, UserProfile)
        doc["updatedAt"] = now
        await self._col(USER_PROFILES).document(existing.id).update(doc)
        return await self._get(USER_PROFILES, existing.id, UserProfile)

    @_firestore_errors
    async def update_user_profile(self, user_id: str, fields: Dict[str, Any]) -> Optional[UserProfile]:
        existing = await self.get_user_profile(user_id)
        if existing is None:
            return None
        await self._col(USER_PROFILES).document(existing.id).update({**_document(fields), "updatedAt": _now()})
        return await self._get(USER_PROFILES, existing.id, UserProfile)

    # ========== Practice exams ==========

    @_firestore_errors
    async def list_practice_exams(self, user_id: str) -> List[PracticeExam]:
        query = (
            self._col(SIMULADOS)
            .where(filter=FieldFilter("userId", "==", user_id))
            .order_by("createdAt", direction="DESCENDING")
        )
        return [PracticeExam.model_validate({"id": s.id, **s.to_dict()}) for s in await query.get()]

    @_firestore_errors
    async def get_practice_exam(self, exam_id: str) -> Optional[PracticeExam]:
        return await self._get(SIMULADOS, exam_id, PracticeExam)

    @_firestore_errors
    async def create_practice_exam(self, exam: PracticeExamCreate) -> PracticeExam:
        doc = plain_fields(exam.model_dump(by_alias=True))
        doc.update(status="not_started", correctAnswers=0, createdAt=_now())
        return await self._add(SIMULADOS, doc, PracticeExam)

    @_firestore_errors
    async def update_practice_exam(self, exam_id: str, fields: Dict[str, Any]) -> Optional[PracticeExam]:
        try:
            await self._col(SIMULADOS).document(exam_id).update({**_document(fields), "updatedAt": _now()})
        except google_exceptions.NotFound:
            return None
        return await self._get(SIMULADOS, exam_id, PracticeExam)

    # ========== Answers ==========

    @_firestore_errors
    async def create_answer_record(self, record: AnswerRecordCreate) -> AnswerRecord:
        doc = record.model_dump(by_alias=True)
        doc["createdAt"] = _now()
        return await self._add(USER_ANSWERS, doc, AnswerRecord)

    @_firestore_errors
    async def list_answers(self, user_id: str, question_id: Optional[str] = None,
                           simulado_id: Optional[str] = None) -> List[AnswerRecord]:
        query = self._col(USER_ANSWERS).where(filter=FieldFilter("userId", "==", user_id))
        if question_id:
            query = query.where(filter=FieldFilter("questionId", "==", question_id))
        if simulado_id:
            query = query.where(filter=FieldFilter("simuladoId", "==", simulado_id))
        query = query.order_by("createdAt", direction="DESCENDING")
        return [AnswerRecord.model_validate({"id": s.id, **s.to_dict()}) for s in await query.get()]

    @_firestore_errors
    async def list_answers_for_question(self, question_id: str) -> List[AnswerRecord]:
        snaps = await self._col(USER_ANSWERS).where(filter=FieldFilter("questionId", "==", question_id)).get()
        return [AnswerRecord.model_validate({"id": s.id, **s.to_dict()}) for s in snaps]

    @_firestore_errors
    async def list_answers_for_user_subject(self, user_id: str, subject: str) -> List[AnswerRecord]:
        snaps = await self._col(USER_ANSWERS).where(filter=FieldFilter("userId", "==", user_id)).get()
        answers = [AnswerRecord.model_validate({"id": s.id, **s.to_dict()}) for s in snaps]
        if not answers:
            return []
        refs = [self._col(QUESTIONS).document(qid) for qid in {a.question_id for a in answers}]
        in_subject = set()
        async for snap in self.client.get_all(refs, field_paths=["subject"]):
            if snap.exists and snap.get("subject") == subject:
                in_subject.add(snap.id)
        return [a for a in answers if a.question_id in in_subject]

    # ========== Statistics ==========

    @_firestore_errors
    async def get_user_subject_stats(self, user_id: str, subject: str) -> Optional[UserSubjectStats]:
        return await self._get(USER_STATS, stats_document_id(user_id, subject), UserSubjectStats)

    @_firestore_errors
    async def list_user_subject_stats(self, user_id: str, subject: Optional[str] = None) -> List[UserSubjectStats]:
        query = self._col(USER_STATS).where(filter=FieldFilter("userId", "==", user_id))
        if subject:
            query = query.where(filter=FieldFilter("subject", "==", subject))
        stats = [UserSubjectStats.model_validate({"id": s.id, **s.to_dict()}) for s in await query.get()]
        return sorted(stats, key=lambda s: s.last_updated or datetime.min.replace(tzinfo=timezone.utc), reverse=True)

    @_firestore_errors
    async def upsert_user_subject_stats(self, user_id: str, subject: str, rollup: SubjectRollup) -> UserSubjectStats:
        doc_id = stats_document_id(user_id, subject)
        doc = {"userId": user_id, "subject": subject, **rollup.model_dump(by_alias=True), "lastUpdated": _now()}
        await self._col(USER_STATS).document(doc_id).set(doc, merge=True)
        return UserSubjectStats.model_validate({"id": doc_id, **doc})
