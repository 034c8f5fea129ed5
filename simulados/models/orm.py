from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import uuid

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Index, Integer, JSON, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from simulados.core.database import Base


def _uuid() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserProfile(Base):
    __tablename__ = "user_profiles"
    __table_args__ = (
        UniqueConstraint("user_id", name="uq_user_profiles_user"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    user_type: Mapped[Optional[str]] = mapped_column(String(20))
    goals: Mapped[List[str]] = mapped_column(JSON, default=list)
    weekly_hours: Mapped[Optional[str]] = mapped_column(String(50))
    study_times: Mapped[List[str]] = mapped_column(JSON, default=list)
    subjects: Mapped[List[str]] = mapped_column(JSON, default=list)
    onboarding_completed: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class Question(Base):
    __tablename__ = "questions"
    __table_args__ = (
        Index("idx_questions_subject_difficulty", "subject", "difficulty", "is_active"),
        Index("idx_questions_created_at", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    statement: Mapped[str] = mapped_column(Text, nullable=False)
    alternatives: Mapped[List[Dict[str, Any]]] = mapped_column(JSON, nullable=False)
    correct_alternative: Mapped[str] = mapped_column(String(10), nullable=False)
    explanation: Mapped[Optional[str]] = mapped_column(Text)
    subject: Mapped[str] = mapped_column(String(120), nullable=False)
    exam_board: Mapped[Optional[str]] = mapped_column(String(120))
    exam_year: Mapped[Optional[int]] = mapped_column(Integer)
    exam_type: Mapped[Optional[str]] = mapped_column(String(120))
    difficulty: Mapped[str] = mapped_column(String(10), default="medium", nullable=False)
    tags: Mapped[List[str]] = mapped_column(JSON, default=list)
    success_rate: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    total_attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class PracticeExam(Base):
    __tablename__ = "simulados"
    __table_args__ = (
        Index("idx_simulados_user", "user_id", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(20), default="practice", nullable=False)
    subjects: Mapped[List[str]] = mapped_column(JSON, default=list)
    total_questions: Mapped[int] = mapped_column(Integer, nullable=False)
    time_limit: Mapped[Optional[int]] = mapped_column(Integer)
    difficulty: Mapped[str] = mapped_column(String(10), default="adaptive", nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="not_started", nullable=False)
    question_ids: Mapped[List[str]] = mapped_column(JSON, default=list)
    score: Mapped[Optional[float]] = mapped_column(Float)
    correct_answers: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    time_spent: Mapped[Optional[int]] = mapped_column(Integer)
    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class AnswerRecord(Base):
    __tablename__ = "user_answers"
    __table_args__ = (
        Index("idx_user_answers_user", "user_id"),
        Index("idx_user_answers_question", "question_id"),
        Index("idx_user_answers_simulado", "simulado_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    question_id: Mapped[str] = mapped_column(String(36), ForeignKey("questions.id", ondelete="CASCADE"), nullable=False)
    simulado_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("simulados.id", ondelete="CASCADE"))
    selected_alternative: Mapped[str] = mapped_column(String(10), nullable=False)
    is_correct: Mapped[bool] = mapped_column(Boolean, nullable=False)
    time_spent: Mapped[Optional[int]] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class UserSubjectStats(Base):
    __tablename__ = "user_stats"
    __table_args__ = (
        UniqueConstraint("user_id", "subject", name="uq_user_stats_user_subject"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    subject: Mapped[str] = mapped_column(String(120), nullable=False)
    total_questions: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    correct_answers: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    average_time: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    success_rate: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    last_updated: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
