"""
Adaptive practice-exam ("simulado") generation.

Difficulty is chosen per subject from the user's stored success rate, the
candidate pools of all subjects are concatenated, shuffled uniformly and cut
to the requested size.
"""
import logging
import math
import random
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional, Sequence, Union

from simulados.core.config import settings
from simulados.core.errors import NotFoundError, ServiceError, ValidationError
from simulados.models.schemas import (
    Difficulty,
    DifficultyPolicy,
    ExamType,
    PracticeExam,
    PracticeExamCreate,
    Question,
)
from simulados.storage.base import Storage

logger = logging.getLogger(__name__)


@dataclass
class GeneratedExam:
    exam: PracticeExam
    questions: List[Question]


def difficulty_for_success_rate(success_rate: Optional[float]) -> Difficulty:
    """Below 40% -> easy, above 70% -> hard, anything else (or no history) -> medium."""
    if success_rate is None:
        return Difficulty.MEDIUM
    if success_rate < settings.ADAPTIVE_EASY_BELOW:
        return Difficulty.EASY
    if success_rate > settings.ADAPTIVE_HARD_ABOVE:
        return Difficulty.HARD
    return Difficulty.MEDIUM


def per_subject_limit(total_questions: int, subject_count: int) -> int:
    return math.ceil(total_questions / subject_count)


def shuffle_and_truncate(pool: Sequence[Question], total_questions: int,
                         rng: Optional[random.Random] = None) -> List[Question]:
    """Uniform random permutation of ``pool``, cut to ``total_questions``."""
    selected = list(pool)
    (rng or random.Random()).shuffle(selected)
    return selected[:total_questions]


def default_title(today: Optional[date] = None) -> str:
    return f"Simulado Inteligente - {(today or date.today()).strftime('%d/%m/%Y')}"


async def resolve_subjects(storage: Storage, user_id: str, subjects: Optional[Sequence[str]]) -> List[str]:
    """Requested subjects, else the profile's; never empty."""
    resolved = _dedupe(subjects or [])
    if not resolved:
        profile = await storage.get_user_profile(user_id)
        if profile is None:
            raise NotFoundError("User profile not found; specify the subjects explicitly", user_id=user_id)
        resolved = _dedupe(profile.subjects)
    if not resolved:
        raise ValidationError("No subjects specified")
    return resolved


async def resolve_difficulties(storage: Storage, user_id: str, subjects: Sequence[str],
                               policy: DifficultyPolicy) -> Dict[str, Difficulty]:
    if policy != DifficultyPolicy.ADAPTIVE:
        fixed = Difficulty(policy.value)
        return {subject: fixed for subject in subjects}

    difficulties = {}
    for subject in subjects:
        stats = await storage.get_user_subject_stats(user_id, subject)
        difficulties[subject] = difficulty_for_success_rate(stats.success_rate if stats else None)
    logger.debug(f"Adaptive difficulties for {user_id}: {difficulties}")
    return difficulties


async def generate_practice_exam(
    storage: Storage,
    user_id: str,
    subjects: Optional[Sequence[str]] = None,
    total_questions: Optional[int] = None,
    difficulty: Union[DifficultyPolicy, str] = DifficultyPolicy.ADAPTIVE,
    title: Optional[str] = None,
    exam_type: Union[ExamType, str] = ExamType.PRACTICE,
    time_limit: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> GeneratedExam:
    if total_questions is None:
        total_questions = settings.DEFAULT_TOTAL_QUESTIONS
    if total_questions <= 0:
        raise ValidationError("totalQuestions must be a positive integer", total_questions=total_questions)
    policy = DifficultyPolicy(difficulty)

    resolved = await resolve_subjects(storage, user_id, subjects)
    difficulties = await resolve_difficulties(storage, user_id, resolved, policy)
    limit = per_subject_limit(total_questions, len(resolved))

    pool: List[Question] = []
    for subject in resolved:
        try:
            candidates = await storage.get_active_questions(subject, difficulties[subject], limit)
        except ServiceError:
            logger.error(f"Loading candidates failed for subject={subject!r} difficulty={difficulties[subject].value}")
            raise
        pool.extend(candidates)

    selected = shuffle_and_truncate(_unique_questions(pool), total_questions, rng)
    if len(selected) < total_questions:
        logger.info(f"Candidate pool exhausted: {len(selected)}/{total_questions} questions for {resolved}")

    exam = await storage.create_practice_exam(
        PracticeExamCreate(
            user_id=user_id,
            title=title or default_title(),
            type=ExamType(exam_type),
            subjects=resolved,
            total_questions=total_questions,
            time_limit=time_limit if time_limit is not None else settings.MINUTES_PER_QUESTION * total_questions,
            difficulty=policy,
            question_ids=[q.id for q in selected],
        )
    )
    logger.info(f"Created simulado {exam.id} for {user_id} with {len(selected)} questions")
    return GeneratedExam(exam=exam, questions=selected)


def _dedupe(subjects: Sequence[str]) -> List[str]:
    seen: Dict[str, None] = {}
    for subject in subjects:
        subject = subject.strip()
        if subject:
            seen.setdefault(subject, None)
    return list(seen)


def _unique_questions(pool: Sequence[Question]) -> List[Question]:
    by_id: Dict[str, Question] = {}
    for question in pool:
        by_id.setdefault(question.id, question)
    return list(by_id.values())
