from fastapi import APIRouter, Depends, Query
from typing import List, Optional

from simulados.core.auth import TokenData, get_current_user
from simulados.models.schemas import AnswerRecord, AnswerSubmit
from simulados.services.statistics import submit_answer
from simulados.storage.base import Storage
from simulados.storage.factory import get_storage

router = APIRouter()


class AnswerSubmitted(AnswerRecord):
    # rollups that failed after the answer was stored
    rollup_errors: List[str] = []


@router.post("", response_model=AnswerSubmitted, status_code=201)
async def create_answer(payload: AnswerSubmit, user: TokenData = Depends(get_current_user),
                        storage: Storage = Depends(get_storage)):
    answer, report = await submit_answer(storage, user.sub, payload)
    return AnswerSubmitted(**answer.model_dump(), rollup_errors=report.errors())


@router.get("", response_model=List[AnswerRecord])
async def list_answers(
    question_id: Optional[str] = Query(default=None, alias="questionId"),
    simulado_id: Optional[str] = Query(default=None, alias="simuladoId"),
    user: TokenData = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    return await storage.list_answers(user.sub, question_id=question_id, simulado_id=simulado_id)
