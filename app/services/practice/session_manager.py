# ============================================================================
# Practice Session Management Service
# ============================================================================
"""
Creates practice sessions, renders them, and finalizes them on submission.

Aggregates (correct count, accuracy) are always recomputed from the
per-question entries; numbers sent by the client are never stored. After a
submission is committed, the mistake ledger is brought in line with the final
verdicts as a best-effort follow-up.
"""
from typing import Any, Dict, List, Optional, Tuple
from datetime import datetime
from uuid import UUID
import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import utcnow
from app.core.exceptions import EntityNotFound, InvalidRequest, NotOwner
from app.models.mistake import MistakeStatus
from app.models.practice import PracticeQuestion, PracticeSession, PracticeType
from app.services.practice.answer_verifier import grade
from app.services.practice.mistake_ledger import MistakeLedger
from app.services.questions.question_store import QuestionStore, QuestionView

logger = logging.getLogger(__name__)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def session_summary(session: PracticeSession) -> Dict[str, Any]:
    """Session fields without per-question entries"""
    return {
        "id": str(session.id),
        "userId": session.user_id,
        "title": session.title,
        "type": session.practice_type,
        "category": session.category,
        "totalQuestions": session.total_questions,
        "correctCount": session.correct_count,
        "accuracy": session.accuracy,
        "timeStarted": _iso(session.time_started),
        "timeCompleted": _iso(session.time_completed),
        "completed": session.completed,
    }


def entry_dict(entry: PracticeQuestion) -> Dict[str, Any]:
    return {
        "questionId": str(entry.question_id),
        "isCustom": entry.is_custom,
        "isCorrect": entry.is_correct,
        "userAnswer": entry.user_answer,
        "timeSpent": entry.time_spent,
    }


class PracticeSessionManager:
    """
    Manages practice sessions.

    Session types:
    - daily / random: random standard questions
    - category: standard questions of one category
    - review: questions still open in the user's mistake ledger
    """

    TITLES = {
        PracticeType.DAILY.value: "Daily Practice - {date}",
        PracticeType.CATEGORY.value: "{category} Practice",
        PracticeType.REVIEW.value: "Mistake Review",
        PracticeType.RANDOM.value: "Random Practice",
    }

    def __init__(self, db: AsyncSession):
        self.db = db
        self.questions = QuestionStore(db)
        self.ledger = MistakeLedger(db)

    # ==================== Session Lifecycle ====================

    async def start_session(
        self,
        user_id: Optional[str],
        practice_type: str,
        category: Optional[str] = None,
        count: int = 10
    ) -> Tuple[PracticeSession, List[QuestionView]]:
        """Pick the questions for a new session and store it with every entry unanswered"""
        if practice_type == PracticeType.CATEGORY.value and not category:
            raise InvalidRequest("Category is required for category practice")

        questions = await self._select_questions(user_id, practice_type, category, count)

        session = PracticeSession(
            user_id=user_id,
            title=self.TITLES[practice_type].format(
                date=utcnow().date().isoformat(), category=category
            ),
            practice_type=practice_type,
            category=category,
            total_questions=len(questions),
            correct_count=0,
            accuracy=0.0,
            time_started=utcnow(),
            completed=False,
            questions=[
                PracticeQuestion(
                    position=index,
                    question_id=q.id,
                    is_custom=q.is_custom,
                    is_correct=False,
                )
                for index, q in enumerate(questions)
            ],
        )
        self.db.add(session)
        await self.db.commit()

        logger.info(
            f"Started {practice_type} session {session.id} for user {user_id} "
            f"with {len(questions)} questions"
        )
        return session, questions

    async def _select_questions(
        self,
        user_id: Optional[str],
        practice_type: str,
        category: Optional[str],
        count: int
    ) -> List[QuestionView]:
        if practice_type == PracticeType.CATEGORY.value:
            return await self.questions.sample(count, category=category)

        if practice_type == PracticeType.REVIEW.value:
            if not user_id:
                return []
            refs = await self.ledger.open_question_refs(user_id, count)
            found = await self.questions.get_many(refs)
            return [found[ref] for ref in refs if ref in found]

        return await self.questions.sample(count)

    async def get_session(self, session_id: UUID) -> PracticeSession:
        session = await self.db.get(PracticeSession, session_id)
        if not session:
            raise EntityNotFound("Practice", str(session_id))
        return session

    async def get_session_detail(self, session_id: UUID, viewer_id: Optional[str]) -> Dict[str, Any]:
        """Session with each entry's question merged in; answers only for the owner"""
        session = await self.get_session(session_id)
        is_owner = viewer_id is not None and session.user_id == viewer_id
        found = await self.questions.get_many(
            (entry.question_id, entry.is_custom) for entry in session.questions
        )

        detail = session_summary(session)
        detail["questions"] = []
        for entry in session.questions:
            question = found.get((entry.question_id, entry.is_custom))
            item = entry_dict(entry)
            item["questionDetail"] = question.to_dict(include_answer=is_owner) if question else None
            detail["questions"].append(item)
        return detail

    async def list_sessions(
        self,
        user_id: str,
        practice_type: Optional[str] = None,
        page: int = 1,
        limit: int = 10
    ) -> Tuple[List[PracticeSession], int]:
        conditions = [PracticeSession.user_id == user_id]
        if practice_type:
            conditions.append(PracticeSession.practice_type == practice_type)

        total = (await self.db.execute(
            select(func.count(PracticeSession.id)).where(*conditions)
        )).scalar() or 0
        result = await self.db.execute(
            select(PracticeSession)
            .where(*conditions)
            .order_by(PracticeSession.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    # ==================== Submission ====================

    async def submit(
        self,
        session_id: UUID,
        acting_user_id: str,
        answers: Optional[Dict[str, Any]] = None,
        time_spent: Optional[Dict[str, int]] = None,
        completed: Optional[bool] = None,
        time_completed: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """
        Finalize a session and return its final state.

        With `answers`, every matching entry is graded on the server and the
        rest are left as they are. Without it, only the completion fields are
        applied. Either way the aggregates are recomputed from the entries.
        """
        session = await self.get_session(session_id)
        if session.user_id and session.user_id != acting_user_id:
            raise NotOwner("practice sessions")

        if answers is not None:
            await self._grade_entries(session, answers, time_spent or {})
            session.time_completed = utcnow()
            session.completed = True
        elif completed is not None or time_completed is not None:
            session.completed = True if completed is None else completed
            if session.completed:
                session.time_completed = time_completed or utcnow()
        else:
            raise InvalidRequest("Nothing to update: send answers or a completion flag")

        self._recompute_aggregates(session)
        await self.db.commit()
        logger.info(
            f"Submitted session {session.id}: {session.correct_count}/"
            f"{session.total_questions} correct ({session.accuracy:.1f}%)"
        )

        final_state = session_summary(session)
        final_state["questions"] = [entry_dict(entry) for entry in session.questions]

        await self._sync_ledger(session, acting_user_id)
        return final_state

    async def _grade_entries(
        self,
        session: PracticeSession,
        answers: Dict[str, Any],
        time_spent: Dict[str, int]
    ) -> None:
        found = await self.questions.get_many(
            (entry.question_id, entry.is_custom) for entry in session.questions
        )
        for entry in session.questions:
            key = str(entry.question_id)
            if key not in answers:
                continue
            question = found.get((entry.question_id, entry.is_custom))
            if not question:
                logger.warning(f"Question {key} of session {session.id} no longer exists")
                continue

            entry.user_answer = answers[key]
            entry.is_correct, _ = grade(question, answers[key])
            if key in time_spent:
                entry.time_spent = time_spent[key]

    @staticmethod
    def _recompute_aggregates(session: PracticeSession) -> None:
        session.total_questions = len(session.questions)
        session.correct_count = sum(1 for entry in session.questions if entry.is_correct)
        session.accuracy = (
            session.correct_count / session.total_questions * 100
            if session.total_questions else 0.0
        )

    async def _sync_ledger(self, session: PracticeSession, user_id: str) -> None:
        """Resolve ledger entries answered correctly, put the rest under review"""
        updates = [
            {
                "questionId": entry.question_id,
                "isCustom": entry.is_custom,
                "status": (
                    MistakeStatus.RESOLVED.value if entry.is_correct
                    else MistakeStatus.REVIEWING.value
                ),
            }
            for entry in session.questions
        ]
        if not updates:
            return
        session_id = session.id
        try:
            result = await self.ledger.apply_status_updates(user_id, updates)
        except Exception as e:
            # The submission itself is already committed
            logger.error(f"Mistake status sync failed for session {session_id}: {e}")
            await self.db.rollback()
            return
        logger.info(f"Mistake status sync for session {session_id}: {result.stats()}")
