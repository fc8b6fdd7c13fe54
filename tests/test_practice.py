# ============================================================================
# Practice Session Tests
# ============================================================================
import pytest
from datetime import datetime
from uuid import uuid4
from sqlalchemy import select

from app.core.exceptions import EntityNotFound, InvalidRequest, NotOwner
from app.models.mistake import Mistake
from app.models.practice import PracticeSession
from app.services.practice.mistake_ledger import MistakeLedger
from app.services.practice.session_manager import PracticeSessionManager
from app.services.questions.question_store import from_custom, from_standard

class TestStartSession:
    """Tests for session creation"""

    @pytest.mark.asyncio
    async def test_daily_session(self, db_session, sample_questions, user_id):
        manager = PracticeSessionManager(db_session)
        session, questions = await manager.start_session(user_id, "daily", count=3)

        assert session.total_questions == 3
        assert len(questions) == 3
        assert session.correct_count == 0
        assert session.accuracy == 0
        assert session.completed is False
        assert all(entry.is_correct is False for entry in session.questions)

    @pytest.mark.asyncio
    async def test_category_session(self, db_session, sample_questions, user_id):
        session, questions = await PracticeSessionManager(db_session).start_session(
            user_id, "category", category="Science", count=10
        )
        assert session.title == "Science Practice"
        assert [q.category for q in questions] == ["Science"]

    @pytest.mark.asyncio
    async def test_category_session_needs_category(self, db_session, user_id):
        with pytest.raises(InvalidRequest):
            await PracticeSessionManager(db_session).start_session(user_id, "category")

    @pytest.mark.asyncio
    async def test_review_session_uses_open_mistakes(
        self, db_session, sample_questions, sample_custom_question, user_id
    ):
        ledger = MistakeLedger(db_session)
        await ledger.record_wrong_answer(user_id, from_standard(sample_questions[0]), "B")
        await ledger.record_wrong_answer(user_id, from_custom(sample_custom_question), ["A"])
        await ledger.record_wrong_answer(user_id, from_standard(sample_questions[1]), ["A"])
        await ledger.resolve(user_id, sample_questions[1].id)
        await db_session.commit()

        session, questions = await PracticeSessionManager(db_session).start_session(user_id, "review")

        assert {(q.id, q.is_custom) for q in questions} == {
            (sample_questions[0].id, False),
            (sample_custom_question.id, True),
        }
        assert {entry.is_custom for entry in session.questions} == {False, True}

class TestSubmit:
    """Tests for practice submission"""

    @pytest.mark.asyncio
    async def test_server_computes_accuracy(self, db_session, sample_questions, user_id):
        manager = PracticeSessionManager(db_session)
        session, _ = await manager.start_session(user_id, "category", category="Math", count=3)
        capital, primes, answer = sample_questions[:3]

        practice = await manager.submit(session.id, user_id, answers={
            str(capital.id): "A",
            str(primes.id): ["C", "A"],
            str(answer.id): "41",
        })

        assert practice["totalQuestions"] == 3
        assert practice["correctCount"] == 2
        assert practice["accuracy"] == pytest.approx(200 / 3)
        assert practice["completed"] is True
        assert practice["timeCompleted"] is not None

    @pytest.mark.asyncio
    async def test_unanswered_entries_stay_unanswered(self, db_session, sample_questions, user_id):
        manager = PracticeSessionManager(db_session)
        session, _ = await manager.start_session(user_id, "category", category="Math", count=3)

        practice = await manager.submit(session.id, user_id, answers={str(sample_questions[0].id): "A"})

        answered = [q for q in practice["questions"] if q["userAnswer"] is not None]
        assert len(answered) == 1
        assert practice["correctCount"] == 1

    @pytest.mark.asyncio
    async def test_completion_only(self, db_session, sample_questions, user_id):
        manager = PracticeSessionManager(db_session)
        session, _ = await manager.start_session(user_id, "daily", count=4)

        practice = await manager.submit(session.id, user_id, completed=True)

        assert practice["completed"] is True
        assert practice["correctCount"] == 0
        assert practice["accuracy"] == 0

    @pytest.mark.asyncio
    async def test_empty_session_accuracy(self, db_session, user_id):
        manager = PracticeSessionManager(db_session)
        session, _ = await manager.start_session(user_id, "random")

        practice = await manager.submit(session.id, user_id, completed=True)

        assert practice["totalQuestions"] == 0
        assert practice["accuracy"] == 0

    @pytest.mark.asyncio
    async def test_double_submission(self, db_session, sample_questions, user_id):
        manager = PracticeSessionManager(db_session)
        session, _ = await manager.start_session(user_id, "category", category="Math", count=3)
        capital = sample_questions[0]

        first = await manager.submit(session.id, user_id, answers={str(capital.id): "B"})
        second = await manager.submit(session.id, user_id, answers={str(capital.id): "A"})

        assert first["totalQuestions"] == second["totalQuestions"] == 3
        assert first["correctCount"] == 0
        assert second["correctCount"] == 1
        assert second["accuracy"] == pytest.approx(100 / 3)
        assert first["timeCompleted"] is not None
        assert (
            datetime.fromisoformat(second["timeCompleted"])
            >= datetime.fromisoformat(first["timeCompleted"])
        )

    @pytest.mark.asyncio
    async def test_nothing_to_update(self, db_session, sample_questions, user_id):
        manager = PracticeSessionManager(db_session)
        session, _ = await manager.start_session(user_id, "daily", count=2)

        with pytest.raises(InvalidRequest):
            await manager.submit(session.id, user_id)

    @pytest.mark.asyncio
    async def test_other_user_cannot_submit(self, db_session, sample_questions, user_id):
        manager = PracticeSessionManager(db_session)
        session, _ = await manager.start_session(user_id, "daily", count=2)

        with pytest.raises(NotOwner):
            await manager.submit(session.id, "someone-else", completed=True)

    @pytest.mark.asyncio
    async def test_unknown_session(self, db_session, user_id):
        with pytest.raises(EntityNotFound):
            await PracticeSessionManager(db_session).submit(uuid4(), user_id, completed=True)

    @pytest.mark.asyncio
    async def test_submission_updates_ledger(self, db_session, sample_questions, user_id):
        ledger = MistakeLedger(db_session)
        capital, primes = sample_questions[:2]
        await ledger.record_wrong_answer(user_id, from_standard(capital), "B")
        await ledger.record_wrong_answer(user_id, from_standard(primes), ["A"])
        await db_session.commit()

        manager = PracticeSessionManager(db_session)
        session, _ = await manager.start_session(user_id, "review")
        await manager.submit(session.id, user_id, answers={
            str(capital.id): "A",
            str(primes.id): ["B"],
        })

        result = await db_session.execute(
            select(Mistake).execution_options(populate_existing=True)
        )
        statuses = {m.question_id: m.status for m in result.scalars().all()}
        assert statuses == {capital.id: "resolved", primes.id: "reviewing"}

    @pytest.mark.asyncio
    async def test_ledger_failure_keeps_submission(
        self, db_session, sample_questions, user_id, monkeypatch
    ):
        manager = PracticeSessionManager(db_session)
        session, _ = await manager.start_session(user_id, "category", category="Math", count=3)
        session_id = session.id

        async def broken_status_updates(user, updates):
            raise RuntimeError("ledger unavailable")

        monkeypatch.setattr(manager.ledger, "apply_status_updates", broken_status_updates)

        practice = await manager.submit(
            session_id, user_id, answers={str(sample_questions[0].id): "A"}
        )

        assert practice["completed"] is True
        assert practice["correctCount"] == 1

        stored = (await db_session.execute(
            select(PracticeSession)
            .where(PracticeSession.id == session_id)
            .execution_options(populate_existing=True)
        )).scalar_one()
        assert stored.completed is True
        assert stored.correct_count == 1
        assert stored.accuracy == pytest.approx(100 / 3)
        assert stored.time_completed is not None

class TestSessionDetail:
    """Tests for reading a session back"""

    @pytest.mark.asyncio
    async def test_owner_sees_answers(self, db_session, sample_questions, user_id):
        manager = PracticeSessionManager(db_session)
        session, _ = await manager.start_session(user_id, "daily", count=2)

        detail = await manager.get_session_detail(session.id, user_id)

        assert len(detail["questions"]) == 2
        assert all("answer" in q["questionDetail"] for q in detail["questions"])

    @pytest.mark.asyncio
    async def test_other_viewer_sees_no_answers(self, db_session, sample_questions, user_id):
        manager = PracticeSessionManager(db_session)
        session, _ = await manager.start_session(user_id, "daily", count=2)

        detail = await manager.get_session_detail(session.id, "someone-else")

        assert all("answer" not in q["questionDetail"] for q in detail["questions"])
        assert all("explanation" not in q["questionDetail"] for q in detail["questions"])

    @pytest.mark.asyncio
    async def test_list_sessions(self, db_session, sample_questions, user_id):
        manager = PracticeSessionManager(db_session)
        await manager.start_session(user_id, "daily", count=1)
        await manager.start_session(user_id, "random", count=1)
        await manager.start_session("someone-else", "daily", count=1)

        sessions, total = await manager.list_sessions(user_id, practice_type="daily")

        assert total == 1
        assert sessions[0].practice_type == "daily"
