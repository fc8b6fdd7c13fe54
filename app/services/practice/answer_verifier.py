# ============================================================================
# Answer Verification Service
# ============================================================================
"""
Grades a submitted answer against a question's canonical answer.

Comparison policy:
- Multiple-choice (canonical answer is a list of labels): the submission must
  be a list with the same members, order ignored.
- Everything else: exact equality, then a second pass with leading/trailing
  whitespace stripped from both sides. Case and inner whitespace still count.

A wrong answer is written to the mistake ledger; a right answer resolves the
ledger entry for that question if one exists.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple
from uuid import UUID
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import EntityNotFound
from app.models.question import QuestionType
from app.services.practice.mistake_ledger import MistakeLedger
from app.services.questions.question_store import QuestionStore, QuestionView

logger = logging.getLogger(__name__)

NO_EXPLANATION = "No explanation available"


class MatchStrategy(str, Enum):
    """How a verdict was reached"""
    SET_MATCH = "set_match"
    EXACT_MATCH = "exact_match"
    TRIMMED_MATCH = "trimmed_match"
    NO_MATCH = "no_match"


@dataclass
class VerificationResult:
    is_correct: bool
    strategy: MatchStrategy
    correct_answer: Any = None
    explanation: str = ""
    question: Optional[QuestionView] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "isCorrect": self.is_correct,
            "correctAnswer": None if self.is_correct else self.correct_answer,
            "explanation": self.explanation or NO_EXPLANATION,
        }


# ============================================================================
# Comparison
# ============================================================================
def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def compare_answers(canonical: Any, submitted: Any) -> Tuple[bool, MatchStrategy]:
    """Apply the comparison policy and report which pass decided it"""
    if isinstance(canonical, (list, tuple)):
        if not isinstance(submitted, (list, tuple)) or len(submitted) != len(canonical):
            return False, MatchStrategy.NO_MATCH
        expected = sorted(_as_text(item) or "" for item in canonical)
        given = sorted(_as_text(item) or "" for item in submitted)
        if expected == given:
            return True, MatchStrategy.SET_MATCH
        return False, MatchStrategy.NO_MATCH

    if canonical == submitted:
        return True, MatchStrategy.EXACT_MATCH

    expected_text = _as_text(canonical)
    given_text = _as_text(submitted)
    if expected_text is None or given_text is None or isinstance(submitted, (list, tuple, dict)):
        return False, MatchStrategy.NO_MATCH
    if expected_text.strip() == given_text.strip():
        return True, MatchStrategy.TRIMMED_MATCH
    return False, MatchStrategy.NO_MATCH


def grade(question: QuestionView, submitted: Any) -> Tuple[bool, MatchStrategy]:
    """
    Grade a submission for a question.

    Single-choice submissions are read as a label first; only a submission
    that is not one of the labels is looked up as option text.
    """
    if (
        question.type == QuestionType.CHOICE.value
        and isinstance(submitted, str)
        and isinstance(question.answer, str)
    ):
        labels = {option.get("label") for option in question.options}
        if submitted not in labels:
            label = question.label_for_text(submitted)
            if label is not None:
                submitted = label
    return compare_answers(question.answer, submitted)


# ============================================================================
# Answer Verifier
# ============================================================================
class AnswerVerifier:
    """Verifies answers and keeps the mistake ledger in step with the verdict"""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.questions = QuestionStore(db)
        self.ledger = MistakeLedger(db)

    async def verify(self, question_id: UUID, user_answer: Any, user_id: str) -> VerificationResult:
        question = await self.questions.get(question_id)
        if not question:
            raise EntityNotFound("Question", str(question_id))

        is_correct, strategy = grade(question, user_answer)
        logger.debug(
            f"Verified question {question_id} (custom={question.is_custom}) "
            f"for user {user_id}: {strategy.value}"
        )

        if is_correct:
            if await self.ledger.resolve(user_id, question.id, question.is_custom):
                logger.info(f"Resolved mistake for user {user_id}, question {question.id}")
        else:
            await self.ledger.record_wrong_answer(user_id, question, user_answer)
        await self.db.commit()

        return VerificationResult(
            is_correct=is_correct,
            strategy=strategy,
            correct_answer=question.answer,
            explanation=question.explanation,
            question=question,
        )
