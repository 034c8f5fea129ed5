from fastapi import APIRouter, Depends
from pydantic import Field
from typing import List, Optional

from simulados.core.auth import TokenData, get_current_user
from simulados.core.config import settings
from simulados.models.schemas import (
    CamelModel,
    DifficultyPolicy,
    ExamType,
    PracticeExam,
    PracticeExamIn,
    PracticeExamUpdate,
    Question,
)
from simulados.services import exams
from simulados.services.adaptive import generate_practice_exam
from simulados.storage.base import Storage
from simulados.storage.factory import get_storage

router = APIRouter()


class GenerateRequest(CamelModel):
    subjects: Optional[List[str]] = None
    total_questions: int = Field(default=settings.DEFAULT_TOTAL_QUESTIONS, ge=1, le=settings.MAX_TOTAL_QUESTIONS)
    difficulty: DifficultyPolicy = DifficultyPolicy.ADAPTIVE
    title: Optional[str] = None
    type: ExamType = ExamType.PRACTICE
    time_limit: Optional[int] = Field(default=None, ge=1)


class GeneratedOut(CamelModel):
    simulado: PracticeExam
    questions: List[Question]


@router.post("/generate", response_model=GeneratedOut, status_code=201)
async def generate(payload: GenerateRequest, user: TokenData = Depends(get_current_user),
                   storage: Storage = Depends(get_storage)):
    generated = await generate_practice_exam(
        storage,
        user.sub,
        subjects=payload.subjects,
        total_questions=payload.total_questions,
        difficulty=payload.difficulty,
        title=payload.title,
        exam_type=payload.type,
        time_limit=payload.time_limit,
    )
    return GeneratedOut(simulado=generated.exam, questions=generated.questions)


@router.post("", response_model=PracticeExam, status_code=201)
async def create_simulado(payload: PracticeExamIn, user: TokenData = Depends(get_current_user),
                          storage: Storage = Depends(get_storage)):
    return await exams.create_exam(storage, user.sub, payload)


@router.get("", response_model=List[PracticeExam])
async def list_simulados(user: TokenData = Depends(get_current_user), storage: Storage = Depends(get_storage)):
    return await exams.list_exams(storage, user.sub)


@router.get("/{simulado_id}", response_model=PracticeExam)
async def get_simulado(simulado_id: str, user: TokenData = Depends(get_current_user),
                       storage: Storage = Depends(get_storage)):
    return await exams.get_exam(storage, user.sub, simulado_id)


@router.patch("/{simulado_id}", response_model=PracticeExam)
async def update_simulado(simulado_id: str, changes: PracticeExamUpdate,
                          user: TokenData = Depends(get_current_user), storage: Storage = Depends(get_storage)):
    return await exams.update_practice_exam(storage, user.sub, simulado_id, changes)
