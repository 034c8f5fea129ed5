"""
Seed the configured store with sample questions.

    python -m simulados.seed
"""
import asyncio
import logging
from typing import List

from simulados.core.config import settings
from simulados.models.schemas import Alternative, Difficulty, QuestionCreate, QuestionFilters
from simulados.storage.base import Storage
from simulados.storage.factory import open_storage

logger = logging.getLogger(__name__)


def _alternatives(*texts: str) -> List[Alternative]:
    return [Alternative(id=chr(ord("a") + i), text=t) for i, t in enumerate(texts)]


SAMPLE_QUESTIONS = [
    QuestionCreate(
        title="Direito Constitucional - Princípios Fundamentais",
        statement="Qual dos seguintes é um princípio fundamental da República Federativa do Brasil?",
        alternatives=_alternatives("Soberania", "Cidadania", "Dignidade da pessoa humana",
                                   "Todas as alternativas estão corretas"),
        correct_alternative="d",
        explanation="Todos os itens mencionados são princípios fundamentais da República Federativa do Brasil, "
                    "conforme o Art. 1º da Constituição Federal.",
        subject="Direito Constitucional",
        exam_board="VUNESP",
        exam_year=2023,
        exam_type="Concurso Público",
        difficulty=Difficulty.MEDIUM,
        tags=["princípios fundamentais", "constituição"],
    ),
    QuestionCreate(
        title="Direito Administrativo - Atos Administrativos",
        statement="Qual das características abaixo NÃO é própria dos atos administrativos?",
        alternatives=_alternatives("Presunção de legitimidade", "Imperatividade", "Irrevogabilidade absoluta",
                                   "Autoexecutoriedade"),
        correct_alternative="c",
        explanation="A irrevogabilidade absoluta não é característica dos atos administrativos. Os atos podem ser "
                    "revogados pela própria Administração por motivos de conveniência e oportunidade.",
        subject="Direito Administrativo",
        exam_board="FCC",
        exam_year=2023,
        exam_type="Concurso Público",
        difficulty=Difficulty.HARD,
        tags=["atos administrativos", "características"],
    ),
    QuestionCreate(
        title="Matemática - Porcentagem",
        statement="Um produto de R$ 200,00 recebeu desconto de 15%. Qual o novo preço?",
        alternatives=_alternatives("R$ 170,00", "R$ 175,00", "R$ 185,00", "R$ 230,00"),
        correct_alternative="a",
        explanation="15% de 200 é 30; 200 - 30 = 170.",
        subject="Matemática",
        exam_board="VUNESP",
        exam_year=2022,
        exam_type="Concurso Público",
        difficulty=Difficulty.EASY,
        tags=["porcentagem"],
    ),
    QuestionCreate(
        title="Matemática - Razão e Proporção",
        statement="Se 4 agentes fazem uma ronda em 6 horas, em quanto tempo 3 agentes fazem a mesma ronda?",
        alternatives=_alternatives("4 horas", "4,5 horas", "8 horas", "9 horas"),
        correct_alternative="c",
        explanation="Grandezas inversamente proporcionais: 4 x 6 = 3 x t, logo t = 8.",
        subject="Matemática",
        exam_board="FGV",
        exam_year=2023,
        exam_type="Concurso Público",
        difficulty=Difficulty.MEDIUM,
        tags=["proporção"],
    ),
    QuestionCreate(
        title="Português - Concordância Verbal",
        statement="Assinale a alternativa em que a concordância verbal está correta.",
        alternatives=_alternatives("Fazem dois anos que ingressei na corporação.",
                                   "Houveram muitas ocorrências na madrugada.",
                                   "Faz dois anos que ingressei na corporação.",
                                   "Existe muitas viaturas no pátio."),
        correct_alternative="c",
        explanation="O verbo fazer indicando tempo decorrido é impessoal e fica no singular.",
        subject="Português",
        exam_board="CESPE/CEBRASPE",
        exam_year=2022,
        exam_type="Concurso Público",
        difficulty=Difficulty.MEDIUM,
        tags=["concordância"],
    ),
]


async def seed_questions(storage: Storage, questions: List[QuestionCreate] = SAMPLE_QUESTIONS) -> int:
    """Insert the questions not already stored; a question is identified by its subject and title."""
    seeded = 0
    for question in questions:
        existing = await storage.get_questions(QuestionFilters(subject=question.subject))
        if any(q.title == question.title for q in existing):
            logger.info(f"Skipping existing question '{question.title}'")
            continue
        created = await storage.create_question(question)
        logger.info(f"Seeded question {created.id} ({created.subject})")
        seeded += 1
    return seeded


async def main():
    if settings.STORAGE_BACKEND == "sql" and settings.DATABASE_AUTO_CREATE:
        from simulados.core.database import init_db
        await init_db()

    async with open_storage() as storage:
        count = await seed_questions(storage)
    logger.info(f"Seeded {count} questions into the {settings.STORAGE_BACKEND} store")

    if settings.STORAGE_BACKEND == "sql":
        from simulados.core.database import close_db
        await close_db()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    asyncio.run(main())
