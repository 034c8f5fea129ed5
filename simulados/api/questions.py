import logging
from fastapi import APIRouter, Depends, Query
from typing import List, Optional

from simulados.core.auth import TokenData, get_current_user, require_roles
from simulados.core.errors import NotFoundError, ValidationError
from simulados.models.schemas import Difficulty, Question, QuestionCreate, QuestionFilters
from simulados.storage.base import Storage
from simulados.storage.factory import get_storage

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=List[Question])
async def list_questions(
    subject: Optional[str] = None,
    exam_board: Optional[str] = Query(default=None, alias="examBoard"),
    exam_year: Optional[int] = Query(default=None, alias="examYear"),
    exam_type: Optional[str] = Query(default=None, alias="examType"),
    difficulty: Optional[Difficulty] = None,
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    user: TokenData = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    filters = QuestionFilters(subject=subject, exam_board=exam_board, exam_year=exam_year, exam_type=exam_type,
                              difficulty=difficulty, limit=limit, offset=offset)
    return await storage.get_questions(filters)


@router.get("/{question_id}", response_model=Question)
async def get_question(question_id: str, user: TokenData = Depends(get_current_user),
                       storage: Storage = Depends(get_storage)):
    question = await storage.get_question(question_id)
    if question is None:
        raise NotFoundError("Question not found", question_id=question_id)
    return question


@router.post("", response_model=Question, status_code=201)
async def create_question(payload: QuestionCreate, user: TokenData = Depends(require_roles("author", "admin")),
                          storage: Storage = Depends(get_storage)):
    ids = [a.id for a in payload.alternatives]
    if len(set(ids)) != len(ids):
        raise ValidationError("Alternative ids must be unique", alternatives=ids)
    if payload.correct_alternative not in ids:
        raise ValidationError("correctAlternative must match one of the alternatives",
                              correct_alternative=payload.correct_alternative)
    question = await storage.create_question(payload)
    logger.info(f"Question {question.id} ({question.subject}) created by {user.sub}")
    return question
