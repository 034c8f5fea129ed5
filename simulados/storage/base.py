"""
Persistence contract shared by the SQL and Firestore adapters.

The services only talk to this interface. Every method is a coroutine and
adapters raise ``StorageError`` when the backing store fails.
"""
from abc import ABC, abstractmethod
import enum
from typing import Any, Dict, List, Optional

from simulados.models.schemas import (
    AnswerRecord,
    AnswerRecordCreate,
    Difficulty,
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


def plain_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Enum members to their values so both backends store plain strings."""
    return {k: (v.value if isinstance(v, enum.Enum) else v) for k, v in fields.items()}


class Storage(ABC):

    # ========== Questions ==========

    @abstractmethod
    async def get_questions(self, filters: QuestionFilters) -> List[Question]:
        """Active questions matching ``filters``, newest first."""

    async def get_active_questions(self, subject: str, difficulty: Difficulty, limit: int) -> List[Question]:
        return await self.get_questions(QuestionFilters(subject=subject, difficulty=difficulty, limit=limit))

    @abstractmethod
    async def get_question(self, question_id: str) -> Optional[Question]: ...

    @abstractmethod
    async def create_question(self, data: QuestionCreate) -> Question: ...

    @abstractmethod
    async def update_question_rollup(self, question_id: str, total_attempts: int, success_rate: float) -> None: ...

    # ========== Profiles ==========

    @abstractmethod
    async def get_user_profile(self, user_id: str) -> Optional[UserProfile]: ...

    @abstractmethod
    async def save_user_profile(self, user_id: str, data: UserProfileIn) -> UserProfile:
        """Create the profile or overwrite the existing one."""

    @abstractmethod
    async def update_user_profile(self, user_id: str, fields: Dict[str, Any]) -> Optional[UserProfile]: ...

    # ========== Practice exams ==========

    @abstractmethod
    async def list_practice_exams(self, user_id: str) -> List[PracticeExam]: ...

    @abstractmethod
    async def get_practice_exam(self, exam_id: str) -> Optional[PracticeExam]: ...

    @abstractmethod
    async def create_practice_exam(self, exam: PracticeExamCreate) -> PracticeExam: ...

    @abstractmethod
    async def update_practice_exam(self, exam_id: str, fields: Dict[str, Any]) -> Optional[PracticeExam]: ...

    # ========== Answers ==========

    @abstractmethod
    async def create_answer_record(self, record: AnswerRecordCreate) -> AnswerRecord:
        """Durably record an answer before any rollup runs."""

    @abstractmethod
    async def list_answers(self, user_id: str, question_id: Optional[str] = None,
                           simulado_id: Optional[str] = None) -> List[AnswerRecord]: ...

    @abstractmethod
    async def list_answers_for_question(self, question_id: str) -> List[AnswerRecord]: ...

    @abstractmethod
    async def list_answers_for_user_subject(self, user_id: str, subject: str) -> List[AnswerRecord]:
        """The user's answers whose question belongs to ``subject``."""

    # ========== Statistics ==========

    @abstractmethod
    async def get_user_subject_stats(self, user_id: str, subject: str) -> Optional[UserSubjectStats]: ...

    @abstractmethod
    async def list_user_subject_stats(self, user_id: str, subject: Optional[str] = None) -> List[UserSubjectStats]: ...

    @abstractmethod
    async def upsert_user_subject_stats(self, user_id: str, subject: str, rollup: SubjectRollup) -> UserSubjectStats: ...
