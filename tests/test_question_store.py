# ============================================================================
# Question Store Tests
# ============================================================================
import pytest
from uuid import uuid4
from sqlalchemy import select

from app.core.exceptions import DuplicateQuestion, EntityNotFound, InvalidRequest, NotOwner
from app.models.mistake import Mistake
from app.models.question import CustomQuestion
from app.services.practice.mistake_ledger import MistakeLedger
from app.services.questions.question_store import QuestionStore, from_custom, label_options

def _custom(**overrides) -> CustomQuestion:
    data = {
        "id": uuid4(),
        "user_id": "user-1",
        "type": "multiple_choice",
        "content": "Pick one",
        "options": ["red", "green", "blue"],
        "answer": "B",
        "subject": "Colours",
    }
    data.update(overrides)
    return CustomQuestion(**data)

class TestNormalization:
    """Tests for mapping custom questions onto the standard shape"""

    def test_label_options(self):
        assert label_options(["x", "y"]) == [
            {"label": "A", "text": "x"},
            {"label": "B", "text": "y"},
        ]

    def test_single_choice(self):
        view = from_custom(_custom())
        assert view.type == "choice"
        assert view.answer == "B"
        assert view.difficulty == "medium"
        assert view.category == "Colours"
        assert view.is_custom is True

    def test_comma_separated_answer_becomes_multiple(self):
        view = from_custom(_custom(answer="A,C"))
        assert view.type == "multiple"
        assert view.answer == ["A", "C"]

    def test_pipe_separated_answer_becomes_multiple(self):
        view = from_custom(_custom(answer="A|B"))
        assert view.answer == ["A", "B"]

    def test_option_text_answer_becomes_label(self):
        view = from_custom(_custom(answer="blue"))
        assert view.answer == "C"

    def test_fill_blank(self):
        view = from_custom(_custom(type="fill_blank", options=[], answer="Harare"))
        assert view.type == "fill"
        assert view.options == []

    def test_short_answer(self):
        view = from_custom(_custom(type="short_answer", options=[], answer="Because"))
        assert view.type == "text"

    def test_answer_hidden_by_default(self):
        data = from_custom(_custom()).to_dict()
        assert "answer" not in data
        assert "explanation" not in data

class TestLookup:
    """Tests for the unified lookup"""

    @pytest.mark.asyncio
    async def test_standard_question(self, db_session, sample_questions):
        view = await QuestionStore(db_session).get(sample_questions[0].id)
        assert view.is_custom is False
        assert view.title == "Capital"

    @pytest.mark.asyncio
    async def test_custom_question(self, db_session, sample_custom_question):
        view = await QuestionStore(db_session).get(sample_custom_question.id)
        assert view.is_custom is True
        assert view.answer == ["B", "D"]

    @pytest.mark.asyncio
    async def test_restricted_lookup(self, db_session, sample_custom_question):
        store = QuestionStore(db_session)
        assert await store.get(sample_custom_question.id, is_custom=False) is None

    @pytest.mark.asyncio
    async def test_missing_question(self, db_session):
        assert await QuestionStore(db_session).get(uuid4()) is None

    @pytest.mark.asyncio
    async def test_get_many(self, db_session, sample_questions, sample_custom_question):
        refs = [(sample_questions[0].id, False), (sample_custom_question.id, True), (uuid4(), False)]
        found = await QuestionStore(db_session).get_many(refs)
        assert set(found) == set(refs[:2])

class TestStandardQuestions:
    """Tests for maintaining the standard bank"""

    @pytest.mark.asyncio
    async def test_list_by_category(self, db_session, sample_questions):
        questions, total = await QuestionStore(db_session).list_standard(category="Math")
        assert total == 3
        assert all(q.category == "Math" for q in questions)

    @pytest.mark.asyncio
    async def test_choice_needs_two_options(self, db_session):
        with pytest.raises(InvalidRequest):
            await QuestionStore(db_session).create_standard({
                "title": "Lonely",
                "content": "Only one option",
                "type": "choice",
                "category": "Math",
                "difficulty": "easy",
                "options": [{"label": "A", "text": "yes"}],
                "answer": "A",
                "explanation": "There is nothing else.",
            })

    @pytest.mark.asyncio
    async def test_update_missing(self, db_session):
        with pytest.raises(EntityNotFound):
            await QuestionStore(db_session).update_standard(uuid4(), {"title": "New"})

class TestCustomLibrary:
    """Tests for the per-user custom library"""

    @pytest.mark.asyncio
    async def test_save_uses_course_name(self, db_session, user_id):
        store = QuestionStore(db_session)
        saved = await store.save_custom(
            user_id,
            [{"type": "short_answer", "content": "Why?", "answer": "Because", "subject": "Ignored"}],
            course_name="Philosophy"
        )
        assert saved[0].subject == "Philosophy"

        questions, total, subjects = await store.list_custom(user_id)
        assert total == 1
        assert subjects == ["Philosophy"]

    @pytest.mark.asyncio
    async def test_duplicate_content(self, db_session, sample_custom_question, user_id):
        with pytest.raises(DuplicateQuestion):
            await QuestionStore(db_session).save_custom(
                user_id,
                [{"type": "short_answer", "content": sample_custom_question.content, "answer": "x"}],
                course_name="Numbers"
            )

    @pytest.mark.asyncio
    async def test_delete_by_other_user(self, db_session, sample_custom_question):
        with pytest.raises(NotOwner):
            await QuestionStore(db_session).delete_custom(sample_custom_question.id, "someone-else")

    @pytest.mark.asyncio
    async def test_delete_removes_mistakes(self, db_session, sample_custom_question, user_id):
        await MistakeLedger(db_session).record_wrong_answer(
            user_id, from_custom(sample_custom_question), ["A"]
        )
        await db_session.commit()

        await QuestionStore(db_session).delete_custom(sample_custom_question.id, user_id)

        mistakes = (await db_session.execute(select(Mistake))).scalars().all()
        assert mistakes == []

    @pytest.mark.asyncio
    async def test_delete_subject(self, db_session, sample_custom_question, user_id):
        store = QuestionStore(db_session)
        assert await store.delete_custom_subject(user_id, "Numbers") == 1

        with pytest.raises(EntityNotFound):
            await store.delete_custom_subject(user_id, "Numbers")
