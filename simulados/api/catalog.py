from fastapi import APIRouter

from simulados.models.schemas import Difficulty, UserType

router = APIRouter()

SUBJECTS = [
    "Direito Constitucional",
    "Direito Administrativo",
    "Direito Penal",
    "Direito Civil",
    "Direito Processual Civil",
    "Direito Processual Penal",
    "Português",
    "Matemática",
    "Informática",
    "Atualidades",
]

EXAM_BOARDS = ["VUNESP", "FCC", "CESPE/CEBRASPE", "FGV", "ESAF", "IBFC", "AOCP", "CONSULPLAN"]

STUDY_TIME_OPTIONS = ["1-5 horas", "5-10 horas", "10-20 horas", "20-30 horas", "Mais de 30 horas"]

STUDY_PERIODS = ["Manhã", "Tarde", "Noite", "Madrugada"]


@router.get("")
async def get_catalog():
    """Option lists used by onboarding and the question filters."""
    return {
        "subjects": SUBJECTS,
        "examBoards": EXAM_BOARDS,
        "difficulties": [d.value for d in Difficulty],
        "userTypes": [u.value for u in UserType],
        "studyTimeOptions": STUDY_TIME_OPTIONS,
        "studyPeriods": STUDY_PERIODS,
    }
