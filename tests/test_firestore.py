import copy
import uuid
from collections import defaultdict

import pytest
from google.api_core import exceptions as google_exceptions

from simulados.core.errors import StorageError
from simulados.models.schemas import (
    Alternative,
    AnswerRecordCreate,
    AnswerSubmit,
    Difficulty,
    ExamStatus,
    PracticeExamCreate,
    QuestionCreate,
    SubjectRollup,
    UserProfileIn,
    UserType,
)
from simulados.services.adaptive import generate_practice_exam
from simulados.services.statistics import aggregate_answer, submit_answer
from simulados.storage.firestore import USER_STATS, FirestoreStorage, _document, stats_document_id


class FakeSnapshot:
    def __init__(self, doc_id, data):
        self.id = doc_id
        self._data = data

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return copy.deepcopy(self._data)

    def get(self, field):
        return self._data[field]


class FakeDocument:
    def __init__(self, docs, doc_id):
        self._docs = docs
        self.id = doc_id

    async def get(self):
        return FakeSnapshot(self.id, self._docs.get(self.id))

    async def set(self, data, merge=False):
        current = self._docs.get(self.id) if merge else None
        self._docs[self.id] = {**(current or {}), **copy.deepcopy(data)}

    async def update(self, data):
        if self.id not in self._docs:
            raise google_exceptions.NotFound(f"No document to update: {self.id}")
        self._docs[self.id].update(copy.deepcopy(data))


class FakeQuery:
    """Equality filters, one order_by, offset and limit: what the adapter uses."""

    def __init__(self, docs, filters=(), order=None, skip=0, take=None):
        self._docs = docs
        self._filters = filters
        self._order = order
        self._skip = skip
        self._take = take

    def _copy(self, **changes):
        state = dict(filters=self._filters, order=self._order, skip=self._skip, take=self._take)
        state.update(changes)
        return FakeQuery(self._docs, **state)

    def where(self, filter):
        assert filter.op_string == "=="
        return self._copy(filters=self._filters + (filter,))

    def order_by(self, field, direction="ASCENDING"):
        return self._copy(order=(field, direction == "DESCENDING"))

    def offset(self, n):
        return self._copy(skip=n)

    def limit(self, n):
        return self._copy(take=n)

    async def get(self):
        rows = [(doc_id, data) for doc_id, data in self._docs.items()
                if all(data.get(f.field_path) == f.value for f in self._filters)]
        if self._order:
            field, descending = self._order
            rows.sort(key=lambda row: row[1][field], reverse=descending)
        rows = rows[self._skip:]
        if self._take is not None:
            rows = rows[:self._take]
        return [FakeSnapshot(doc_id, copy.deepcopy(data)) for doc_id, data in rows]


class FakeCollection(FakeQuery):
    def document(self, doc_id=None):
        return FakeDocument(self._docs, doc_id or uuid.uuid4().hex)

    async def add(self, data):
        ref = self.document()
        await ref.set(data)
        return None, ref


class FakeFirestore:
    def __init__(self):
        self.collections = defaultdict(dict)

    def collection(self, name):
        return FakeCollection(self.collections[name])

    async def get_all(self, refs, field_paths=None):
        for ref in refs:
            snap = await ref.get()
            if snap.exists and field_paths:
                snap = FakeSnapshot(snap.id, {k: v for k, v in snap.to_dict().items() if k in field_paths})
            yield snap


@pytest.fixture
def firestore_client():
    return FakeFirestore()


@pytest.fixture
def fs(firestore_client):
    return FirestoreStorage(firestore_client)


async def _question(fs, subject="Matemática", difficulty=Difficulty.MEDIUM, correct="a"):
    return await fs.create_question(QuestionCreate(
        title=f"{subject} ({difficulty.value})",
        statement="Enunciado",
        alternatives=[Alternative(id="a", text="A"), Alternative(id="b", text="B")],
        correct_alternative=correct,
        subject=subject,
        difficulty=difficulty,
    ))


async def _answer(fs, user_id, question, correct):
    return await fs.create_answer_record(AnswerRecordCreate(
        user_id=user_id, question_id=question.id,
        selected_alternative=question.correct_alternative if correct else "b", is_correct=correct))


def test_stats_document_id_is_unambiguous():
    assert stats_document_id("u1", "Matemática") == stats_document_id("u1", "Matemática")
    assert stats_document_id("u1", "Raciocínio Lógico/Matemático") != \
        stats_document_id("u1", "Raciocínio Lógico-Matemático")
    assert stats_document_id("u1__x", "y") != stats_document_id("u1", "x__y")
    assert "/" not in stats_document_id("u/1", "CESPE/CEBRASPE")


def test_document_fields_are_camel_case_plain_values():
    doc = _document({"status": ExamStatus.COMPLETED, "correct_answers": 4, "time_spent": None})
    assert doc == {"status": "completed", "correctAnswers": 4, "timeSpent": None}


async def test_documents_are_stored_in_camel_case(fs, firestore_client):
    question = await _question(fs)
    stored = firestore_client.collections["questions"][question.id]
    assert stored["correctAlternative"] == "a"
    assert stored["isActive"] is True
    assert stored["totalAttempts"] == 0
    assert (await fs.get_question(question.id)).subject == "Matemática"


async def test_user_subject_join(fs):
    math = await _question(fs, "Matemática")
    port = await _question(fs, "Português")
    await _answer(fs, "u1", math, True)
    await _answer(fs, "u1", port, False)
    await _answer(fs, "u1", math, False)
    await _answer(fs, "u2", math, True)

    answers = await fs.list_answers_for_user_subject("u1", "Matemática")

    assert len(answers) == 2
    assert {a.question_id for a in answers} == {math.id}
    assert await fs.list_answers_for_user_subject("u1", "Atualidades") == []
    assert await fs.list_answers_for_user_subject("nobody", "Matemática") == []


async def test_stats_upsert_keeps_one_document_per_subject(fs, firestore_client):
    first = SubjectRollup(total_questions=1, correct_answers=0, average_time=0, success_rate=0.0)
    second = SubjectRollup(total_questions=2, correct_answers=1, average_time=12.5, success_rate=50.0)
    await fs.upsert_user_subject_stats("u1", "Raciocínio Lógico/Matemático", first)
    await fs.upsert_user_subject_stats("u1", "Raciocínio Lógico-Matemático", first)
    await fs.upsert_user_subject_stats("u1", "Raciocínio Lógico/Matemático", second)

    assert len(firestore_client.collections[USER_STATS]) == 2
    slash = await fs.get_user_subject_stats("u1", "Raciocínio Lógico/Matemático")
    dash = await fs.get_user_subject_stats("u1", "Raciocínio Lógico-Matemático")
    assert (slash.total_questions, slash.success_rate) == (2, 50.0)
    assert (dash.total_questions, dash.success_rate) == (1, 0.0)
    listed = await fs.list_user_subject_stats("u1", "Raciocínio Lógico/Matemático")
    assert [s.subject for s in listed] == ["Raciocínio Lógico/Matemático"]


@pytest.mark.parametrize("order", [(0, 1), (1, 0)])
async def test_racing_submissions_converge(fs, firestore_client, order):
    questions = [await _question(fs, "Direito Penal"), await _question(fs, "Direito Penal")]
    answers = [await _answer(fs, "u1", q, i == 0) for i, q in enumerate(questions)]

    for i in order:
        await aggregate_answer(fs, answers[i], "Direito Penal")

    stats = await fs.get_user_subject_stats("u1", "Direito Penal")
    assert stats.total_questions == 2
    assert stats.correct_answers == 1
    assert len(firestore_client.collections[USER_STATS]) == 1


async def test_submit_answer_updates_both_rollups(fs):
    question = await _question(fs, "Português", correct="b")

    answer, report = await submit_answer(fs, "u1", AnswerSubmit(question_id=question.id,
                                                                selected_alternative="b", time_spent=30))

    assert report.ok
    assert answer.is_correct is True
    refreshed = await fs.get_question(question.id)
    assert (refreshed.total_attempts, refreshed.success_rate) == (1, 100.0)
    stats = await fs.get_user_subject_stats("u1", "Português")
    assert (stats.total_questions, stats.average_time) == (1, 30.0)


async def test_missing_documents(fs):
    await fs.update_question_rollup("missing", 3, 33.33)
    assert await fs.get_question("missing") is None
    assert await fs.update_practice_exam("missing", {"status": ExamStatus.IN_PROGRESS}) is None
    assert await fs.update_user_profile("u1", {"onboarding_completed": True}) is None


async def test_exam_and_profile_round_trip(fs):
    exam = await fs.create_practice_exam(PracticeExamCreate(
        user_id="u1", title="Simulado", subjects=["Matemática"], total_questions=3, question_ids=["q1"]))
    updated = await fs.update_practice_exam(exam.id, {"status": ExamStatus.COMPLETED, "score": 90.0})
    assert updated.status == ExamStatus.COMPLETED
    assert updated.score == 90.0
    assert [e.id for e in await fs.list_practice_exams("u1")] == [exam.id]

    await fs.save_user_profile("u1", UserProfileIn(user_type=UserType.MILITAR, weekly_hours="1-5 horas"))
    saved = await fs.save_user_profile("u1", UserProfileIn(user_type=UserType.MILITAR, weekly_hours="5-10 horas",
                                                           subjects=["Matemática"]))
    assert saved.weekly_hours == "5-10 horas"
    assert (await fs.update_user_profile("u1", {"onboarding_completed": True})).onboarding_completed is True


async def test_generate_with_firestore_backend(fs):
    for _ in range(3):
        await _question(fs, "Matemática", Difficulty.MEDIUM)
    await _question(fs, "Matemática", Difficulty.HARD)

    generated = await generate_practice_exam(fs, "u1", subjects=["Matemática"], total_questions=5)

    assert len(generated.questions) == 3
    assert all(q.difficulty == Difficulty.MEDIUM for q in generated.questions)
    assert (await fs.get_practice_exam(generated.exam.id)).question_ids == generated.exam.question_ids


async def test_api_errors_become_storage_errors(fs, firestore_client, monkeypatch):
    def unavailable(name):
        raise google_exceptions.ServiceUnavailable("firestore down")

    monkeypatch.setattr(firestore_client, "collection", unavailable)
    with pytest.raises(StorageError):
        await fs.get_question("q1")
