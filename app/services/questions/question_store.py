# ============================================================================
# Question Store
# ============================================================================
"""
Single access point for the two question collections.

Standard questions (curated, global) and custom questions (owned by one user)
are stored in separate tables with different shapes. Everything outside this
module works with QuestionView, a normalized shape tagged with its source, so
the merge rules live in one place.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union
from uuid import UUID
import logging

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import DuplicateQuestion, EntityNotFound, InvalidRequest, NotOwner
from app.models.mistake import Mistake
from app.models.question import (
    CustomQuestion, CustomQuestionType, Difficulty, Question, QuestionType
)

logger = logging.getLogger(__name__)

MULTI_ANSWER_SEPARATORS = (",", "|")
CHOICE_TYPES = {QuestionType.CHOICE.value, QuestionType.MULTIPLE.value}
REQUIRED_FIELDS = {"title", "content", "type", "category", "difficulty", "answer", "explanation"}

QuestionRef = Tuple[UUID, bool]


class QuestionSource(str, Enum):
    STANDARD = "standard"
    CUSTOM = "custom"


@dataclass
class QuestionView:
    """Normalized question, whichever collection it came from"""
    id: UUID
    source: QuestionSource
    title: str
    content: str
    type: str
    category: str
    difficulty: str
    answer: Union[str, List[str]]
    explanation: str = ""
    options: List[Dict[str, str]] = field(default_factory=list)
    subcategory: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    owner_id: Optional[str] = None

    @property
    def is_custom(self) -> bool:
        return self.source == QuestionSource.CUSTOM

    @property
    def ref(self) -> QuestionRef:
        return (self.id, self.is_custom)

    def label_for_text(self, text: str) -> Optional[str]:
        for option in self.options:
            if option.get("text") == text:
                return option.get("label")
        return None

    def to_dict(self, include_answer: bool = False) -> Dict[str, Any]:
        data = {
            "id": str(self.id),
            "isCustom": self.is_custom,
            "title": self.title,
            "content": self.content,
            "type": self.type,
            "category": self.category,
            "subcategory": self.subcategory,
            "difficulty": self.difficulty,
            "options": self.options,
            "tags": self.tags,
        }
        if include_answer:
            data["answer"] = self.answer
            data["explanation"] = self.explanation
        return data


# ============================================================================
# Normalization
# ============================================================================
def label_options(texts: Iterable[str]) -> List[Dict[str, str]]:
    return [{"label": chr(65 + i), "text": text} for i, text in enumerate(texts)]


def from_standard(question: Question) -> QuestionView:
    return QuestionView(
        id=question.id,
        source=QuestionSource.STANDARD,
        title=question.title,
        content=question.content,
        type=question.type,
        category=question.category,
        subcategory=question.subcategory,
        difficulty=question.difficulty,
        options=list(question.options or []),
        answer=question.answer,
        explanation=question.explanation or "",
        tags=list(question.tags or []),
    )


def from_custom(question: CustomQuestion) -> QuestionView:
    """
    Map a user-authored question onto the standard vocabulary.

    multiple_choice answers written as "A,C" or "A|C" become a multiple-choice
    question with a list of labels; an answer given as option text is replaced
    by that option's label.
    """
    options = label_options(question.options or [])
    answer: Union[str, List[str]] = question.answer

    if question.type == CustomQuestionType.MULTIPLE_CHOICE.value:
        separator = next((s for s in MULTI_ANSWER_SEPARATORS if s in question.answer), None)
        if separator:
            question_type = QuestionType.MULTIPLE.value
            answer = [_to_label(part.strip(), options) for part in question.answer.split(separator)]
        else:
            question_type = QuestionType.CHOICE.value
            answer = _to_label(question.answer, options)
    elif question.type == CustomQuestionType.FILL_BLANK.value:
        question_type = QuestionType.FILL.value
    else:
        question_type = QuestionType.TEXT.value

    return QuestionView(
        id=question.id,
        source=QuestionSource.CUSTOM,
        title=question.subject,
        content=question.content,
        type=question_type,
        category=question.subject,
        difficulty=Difficulty.MEDIUM.value,
        options=options,
        answer=answer,
        explanation=question.explanation or "",
        owner_id=question.user_id,
    )


def _to_label(answer: str, options: List[Dict[str, str]]) -> str:
    for option in options:
        if option["text"] == answer:
            return option["label"]
    return answer


# ============================================================================
# Question Store
# ============================================================================
class QuestionStore:
    """Lookup and maintenance of standard and custom questions"""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ==================== Unified lookup ====================

    async def get(self, question_id: UUID, is_custom: Optional[bool] = None) -> Optional[QuestionView]:
        """Find a question, trying the standard collection before the custom one"""
        if is_custom is not True:
            question = await self.db.get(Question, question_id)
            if question:
                return from_standard(question)
        if is_custom is not False:
            custom = await self.db.get(CustomQuestion, question_id)
            if custom:
                return from_custom(custom)
        return None

    async def get_many(self, refs: Iterable[QuestionRef]) -> Dict[QuestionRef, QuestionView]:
        refs = list(refs)
        standard_ids = {qid for qid, custom in refs if not custom}
        custom_ids = {qid for qid, custom in refs if custom}
        found: Dict[QuestionRef, QuestionView] = {}

        if standard_ids:
            result = await self.db.execute(select(Question).where(Question.id.in_(standard_ids)))
            for question in result.scalars().all():
                view = from_standard(question)
                found[view.ref] = view
        if custom_ids:
            result = await self.db.execute(
                select(CustomQuestion).where(CustomQuestion.id.in_(custom_ids))
            )
            for question in result.scalars().all():
                view = from_custom(question)
                found[view.ref] = view
        return found

    async def sample(self, count: int, category: Optional[str] = None) -> List[QuestionView]:
        """Random standard questions, or the first `count` of a category"""
        query = select(Question)
        if category:
            query = query.where(Question.category == category).order_by(Question.created_at)
        else:
            query = query.order_by(func.random())
        result = await self.db.execute(query.limit(count))
        return [from_standard(q) for q in result.scalars().all()]

    # ==================== Standard questions ====================

    async def list_standard(
        self,
        category: Optional[str] = None,
        difficulty: Optional[str] = None,
        question_type: Optional[str] = None,
        page: int = 1,
        limit: int = 10
    ) -> Tuple[List[QuestionView], int]:
        conditions = []
        if category:
            conditions.append(Question.category == category)
        if difficulty:
            conditions.append(Question.difficulty == difficulty)
        if question_type:
            conditions.append(Question.type == question_type)

        total = (await self.db.execute(
            select(func.count(Question.id)).where(*conditions)
        )).scalar() or 0
        result = await self.db.execute(
            select(Question)
            .where(*conditions)
            .order_by(Question.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return [from_standard(q) for q in result.scalars().all()], total

    async def create_standard(self, data: Dict[str, Any]) -> QuestionView:
        self._check_options(data.get("type"), data.get("options"))
        question = Question(**data)
        self.db.add(question)
        await self.db.commit()
        logger.info(f"Created standard question {question.id}")
        return from_standard(question)

    async def update_standard(self, question_id: UUID, data: Dict[str, Any]) -> QuestionView:
        question = await self.db.get(Question, question_id)
        if not question:
            raise EntityNotFound("Question", str(question_id))
        missing = sorted(key for key in REQUIRED_FIELDS if key in data and data[key] is None)
        if missing:
            raise InvalidRequest(f"Fields cannot be null: {', '.join(missing)}")
        self._check_options(data.get("type", question.type), data.get("options", question.options))
        for key, value in data.items():
            setattr(question, key, value)
        await self.db.commit()
        return from_standard(question)

    async def delete_standard(self, question_id: UUID) -> None:
        question = await self.db.get(Question, question_id)
        if not question:
            raise EntityNotFound("Question", str(question_id))
        await self.db.delete(question)
        await self.db.commit()
        logger.info(f"Deleted standard question {question_id}")

    @staticmethod
    def _check_options(question_type: Optional[str], options: Optional[List[Any]]) -> None:
        if question_type in CHOICE_TYPES and (not options or len(options) < 2):
            raise InvalidRequest("Choice questions must have at least 2 options")

    # ==================== Custom library ====================

    async def list_custom(
        self,
        user_id: str,
        subject: Optional[str] = None,
        question_type: Optional[str] = None,
        page: int = 1,
        limit: int = 20
    ) -> Tuple[List[CustomQuestion], int, List[str]]:
        conditions = [CustomQuestion.user_id == user_id]
        if subject:
            conditions.append(CustomQuestion.subject == subject)
        if question_type:
            conditions.append(CustomQuestion.type == question_type)

        total = (await self.db.execute(
            select(func.count(CustomQuestion.id)).where(*conditions)
        )).scalar() or 0
        result = await self.db.execute(
            select(CustomQuestion)
            .where(*conditions)
            .order_by(CustomQuestion.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        subjects = await self.db.execute(
            select(CustomQuestion.subject)
            .where(CustomQuestion.user_id == user_id)
            .distinct()
            .order_by(CustomQuestion.subject)
        )
        return list(result.scalars().all()), total, list(subjects.scalars().all())

    async def save_custom(
        self,
        user_id: str,
        questions: List[Dict[str, Any]],
        course_name: Optional[str] = None
    ) -> List[CustomQuestion]:
        saved = []
        for data in questions:
            subject = course_name or data.get("subject")
            if not subject:
                raise InvalidRequest("Each question needs a subject or a course name")
            saved.append(CustomQuestion(
                user_id=user_id,
                type=data["type"],
                content=data["content"],
                options=data.get("options") or [],
                answer=data["answer"],
                explanation=data.get("explanation"),
                subject=subject,
            ))
        self.db.add_all(saved)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise DuplicateQuestion()
        logger.info(f"Saved {len(saved)} custom questions for user {user_id}")
        return saved

    async def delete_custom(self, question_id: UUID, user_id: str) -> None:
        """Delete one custom question together with its ledger entries"""
        question = await self.db.get(CustomQuestion, question_id)
        if not question:
            raise EntityNotFound("Question", str(question_id))
        if question.user_id != user_id:
            raise NotOwner("questions")

        await self._delete_mistakes_for([question.id])
        await self.db.delete(question)
        await self.db.commit()
        logger.info(f"Deleted custom question {question_id} for user {user_id}")

    async def delete_custom_subject(self, user_id: str, subject: str) -> int:
        result = await self.db.execute(
            select(CustomQuestion.id)
            .where(CustomQuestion.user_id == user_id, CustomQuestion.subject == subject)
        )
        question_ids = list(result.scalars().all())
        if not question_ids:
            raise EntityNotFound("Question library", subject)

        await self._delete_mistakes_for(question_ids)
        await self.db.execute(
            delete(CustomQuestion).where(CustomQuestion.id.in_(question_ids))
        )
        await self.db.commit()
        logger.info(f"Deleted library '{subject}' ({len(question_ids)} questions) for user {user_id}")
        return len(question_ids)

    async def _delete_mistakes_for(self, question_ids: List[UUID]) -> None:
        await self.db.execute(
            delete(Mistake)
            .where(Mistake.question_id.in_(question_ids), Mistake.is_custom.is_(True))
            .execution_options(synchronize_session=False)
        )
