"""
Persistence-agnostic entities and request payloads.

Attributes are snake_case in Python and camelCase on the wire and in
Firestore documents; both spellings are accepted on input.
"""
from datetime import datetime
from typing import List, Optional
import enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Difficulty(str, enum.Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class DifficultyPolicy(str, enum.Enum):
    ADAPTIVE = "adaptive"
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class ExamType(str, enum.Enum):
    DIAGNOSTIC = "diagnostic"
    PRACTICE = "practice"
    MOCK_EXAM = "mock_exam"


class ExamStatus(str, enum.Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


class UserType(str, enum.Enum):
    CONCURSEIRO = "concurseiro"
    MILITAR = "militar"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# ========== Entities ==========

class Alternative(CamelModel):
    id: str
    text: str


class Question(CamelModel):
    id: str
    title: str
    statement: str
    alternatives: List[Alternative]
    correct_alternative: str
    explanation: Optional[str] = None
    subject: str
    exam_board: Optional[str] = None
    exam_year: Optional[int] = None
    exam_type: Optional[str] = None
    difficulty: Difficulty = Difficulty.MEDIUM
    tags: List[str] = []
    success_rate: float = 0.0
    total_attempts: int = 0
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class UserProfile(CamelModel):
    id: str
    user_id: str
    user_type: Optional[UserType] = None
    goals: List[str] = []
    weekly_hours: Optional[str] = None
    study_times: List[str] = []
    subjects: List[str] = []
    onboarding_completed: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class UserSubjectStats(CamelModel):
    id: str
    user_id: str
    subject: str
    total_questions: int = 0
    correct_answers: int = 0
    average_time: float = 0.0
    success_rate: float = 0.0
    last_updated: Optional[datetime] = None


class PracticeExam(CamelModel):
    id: str
    user_id: str
    title: str
    type: ExamType = ExamType.PRACTICE
    subjects: List[str] = []
    total_questions: int
    time_limit: Optional[int] = None
    difficulty: DifficultyPolicy = DifficultyPolicy.ADAPTIVE
    status: ExamStatus = ExamStatus.NOT_STARTED
    question_ids: List[str] = []
    score: Optional[float] = None
    correct_answers: int = 0
    time_spent: Optional[int] = None
    created_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class AnswerRecord(CamelModel):
    id: str
    user_id: str
    question_id: str
    simulado_id: Optional[str] = None
    selected_alternative: str
    is_correct: bool
    time_spent: Optional[int] = None
    created_at: Optional[datetime] = None


# ========== Writes ==========

class QuestionCreate(CamelModel):
    title: str
    statement: str
    alternatives: List[Alternative] = Field(min_length=2)
    correct_alternative: str
    explanation: Optional[str] = None
    subject: str = Field(min_length=1)
    exam_board: Optional[str] = None
    exam_year: Optional[int] = None
    exam_type: Optional[str] = None
    difficulty: Difficulty = Difficulty.MEDIUM
    tags: List[str] = []
    is_active: bool = True


class QuestionFilters(CamelModel):
    subject: Optional[str] = None
    exam_board: Optional[str] = None
    exam_year: Optional[int] = None
    exam_type: Optional[str] = None
    difficulty: Optional[Difficulty] = None
    limit: Optional[int] = None
    offset: int = 0


class UserProfileIn(CamelModel):
    user_type: UserType
    goals: List[str] = []
    weekly_hours: str
    study_times: List[str] = []
    subjects: List[str] = []
    onboarding_completed: bool = False


class PracticeExamCreate(CamelModel):
    user_id: str
    title: str
    type: ExamType = ExamType.PRACTICE
    subjects: List[str]
    total_questions: int
    time_limit: Optional[int] = None
    difficulty: DifficultyPolicy = DifficultyPolicy.ADAPTIVE
    question_ids: List[str] = []


class PracticeExamIn(CamelModel):
    """A simulado assembled by the client (diagnostics, mock exams)."""
    title: str = Field(min_length=1)
    type: ExamType = ExamType.PRACTICE
    subjects: List[str] = []
    total_questions: int = Field(ge=1)
    time_limit: Optional[int] = Field(default=None, ge=1)
    difficulty: DifficultyPolicy = DifficultyPolicy.ADAPTIVE
    question_ids: List[str] = []


class PracticeExamUpdate(CamelModel):
    status: Optional[ExamStatus] = None
    score: Optional[float] = Field(default=None, ge=0, le=100)
    correct_answers: Optional[int] = Field(default=None, ge=0)
    time_spent: Optional[int] = Field(default=None, ge=0)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class AnswerSubmit(CamelModel):
    question_id: str
    selected_alternative: str = Field(min_length=1)
    simulado_id: Optional[str] = None
    time_spent: Optional[int] = Field(default=None, ge=0)


class AnswerRecordCreate(CamelModel):
    user_id: str
    question_id: str
    simulado_id: Optional[str] = None
    selected_alternative: str
    is_correct: bool
    time_spent: Optional[int] = None


class SubjectRollup(CamelModel):
    total_questions: int
    correct_answers: int
    average_time: float
    success_rate: float
