# ============================================================================
# Mistake Ledger
# ============================================================================
"""
Per-user record of wrongly answered questions.

One entry exists per (user, question, is_custom). Wrong answers are recorded
with a single atomic upsert so two concurrent first-wrong-answers cannot drop a
count. Status changes are conditional updates filtered on the current status,
which makes repeated requests for the same status cheap no-ops.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple
from uuid import UUID
import logging

from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import utcnow
from app.core.exceptions import EntityNotFound, InvalidRequest, NotOwner
from app.models.mistake import Mistake, MistakeStatus
from app.services.questions.question_store import QuestionView

logger = logging.getLogger(__name__)

UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}
VALID_STATUSES = {s.value for s in MistakeStatus}
EDITABLE_FIELDS = {"status", "notes", "category"}
NON_NULL_FIELDS = {"status", "category"}


@dataclass
class StatusUpdateResult:
    """Outcome of a batch status update"""
    total: int = 0
    successful: int = 0
    unchanged: int = 0
    failed: int = 0
    updated: List[Mistake] = field(default_factory=list)

    def stats(self) -> Dict[str, int]:
        return {
            "total": self.total,
            "successful": self.successful,
            "unchanged": self.unchanged,
            "failed": self.failed,
        }


class MistakeLedger:
    """Maintains the mistake ledger of one database session"""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ==================== Recording ====================

    async def record_wrong_answer(
        self,
        user_id: str,
        question: QuestionView,
        wrong_answer: Any
    ) -> Mistake:
        """
        Create the entry for a first wrong answer or bump an existing one.

        Existing entries get wrong_count + 1, the latest answer and timestamp,
        and their status forced back to unresolved.
        """
        now = utcnow()
        values = {
            "user_id": user_id,
            "question_id": question.id,
            "is_custom": question.is_custom,
            "category": question.category,
            "wrong_answer": wrong_answer,
            "wrong_count": 1,
            "last_wrong_date": now,
            "status": MistakeStatus.UNRESOLVED.value,
        }

        insert = UPSERT_DIALECTS.get(self.db.get_bind().dialect.name)
        if insert is not None:
            stmt = insert(Mistake).values(**values)
            stmt = stmt.on_conflict_do_update(
                index_elements=["user_id", "question_id", "is_custom"],
                set_={
                    "wrong_count": Mistake.wrong_count + 1,
                    "wrong_answer": stmt.excluded.wrong_answer,
                    "last_wrong_date": stmt.excluded.last_wrong_date,
                    "category": stmt.excluded.category,
                    "status": MistakeStatus.UNRESOLVED.value,
                    "updated_at": now,
                }
            )
            await self.db.execute(stmt)
        else:
            await self._record_without_upsert(values, now)

        mistake = await self._find(user_id, question.id, question.is_custom)
        logger.info(
            f"Recorded mistake for user {user_id}, question {question.id} "
            f"(custom={question.is_custom}, count={mistake.wrong_count})"
        )
        return mistake

    async def _record_without_upsert(self, values: Dict[str, Any], now) -> None:
        bumped = await self._bump(values, now)
        if bumped:
            return
        try:
            async with self.db.begin_nested():
                self.db.add(Mistake(**values))
        except IntegrityError:
            # Lost the race against a concurrent first insert
            logger.warning(
                f"Concurrent insert for question {values['question_id']}, retrying as update"
            )
            await self._bump(values, now)

    async def _bump(self, values: Dict[str, Any], now) -> bool:
        result = await self.db.execute(
            update(Mistake)
            .where(
                Mistake.user_id == values["user_id"],
                Mistake.question_id == values["question_id"],
                Mistake.is_custom == values["is_custom"],
            )
            .values(
                wrong_count=Mistake.wrong_count + 1,
                wrong_answer=values["wrong_answer"],
                last_wrong_date=now,
                category=values["category"],
                status=MistakeStatus.UNRESOLVED.value,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    async def _find(self, user_id: str, question_id: UUID, is_custom: bool) -> Optional[Mistake]:
        result = await self.db.execute(
            select(Mistake)
            .where(
                Mistake.user_id == user_id,
                Mistake.question_id == question_id,
                Mistake.is_custom == is_custom,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    # ==================== Status changes ====================

    async def resolve(self, user_id: str, question_id: UUID, is_custom: Optional[bool] = None) -> bool:
        """Mark an existing entry resolved; False if there was nothing to change"""
        return await self._set_status(user_id, question_id, MistakeStatus.RESOLVED.value, is_custom)

    async def _set_status(
        self,
        user_id: str,
        question_id: UUID,
        status: str,
        is_custom: Optional[bool] = None
    ) -> bool:
        conditions = [
            Mistake.user_id == user_id,
            Mistake.question_id == question_id,
            Mistake.status != status,
        ]
        if is_custom is not None:
            conditions.append(Mistake.is_custom == is_custom)
        result = await self.db.execute(
            update(Mistake)
            .where(*conditions)
            .values(status=status, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    async def apply_status_updates(
        self,
        user_id: str,
        updates: Iterable[Dict[str, Any]]
    ) -> StatusUpdateResult:
        """
        Apply a list of {questionId, status, isCustom?} pairs independently.

        Each pair runs in its own savepoint so a failing pair is rolled back
        alone and counted as failed. A pair whose entry is missing or already
        has the requested status is counted as unchanged.
        """
        outcome = StatusUpdateResult()
        changed: List[Tuple[UUID, Optional[bool]]] = []

        for item in updates:
            outcome.total += 1
            question_id = item.get("questionId")
            status = item.get("status")
            is_custom = item.get("isCustom")
            try:
                question_uuid = question_id if isinstance(question_id, UUID) else UUID(str(question_id))
            except ValueError:
                logger.warning(f"Skipping status update with invalid question id: {question_id}")
                outcome.failed += 1
                continue
            if status not in VALID_STATUSES:
                logger.warning(f"Skipping status update with invalid status: {status}")
                outcome.failed += 1
                continue

            try:
                async with self.db.begin_nested():
                    was_changed = await self._set_status(user_id, question_uuid, status, is_custom)
            except SQLAlchemyError as e:
                logger.error(f"Failed to update mistake status: questionId={question_id}, status={status}: {e}")
                outcome.failed += 1
                continue

            if was_changed:
                outcome.successful += 1
                changed.append((question_uuid, is_custom))
            else:
                outcome.unchanged += 1

        await self.db.commit()

        for question_uuid, is_custom in changed:
            conditions = [Mistake.user_id == user_id, Mistake.question_id == question_uuid]
            if is_custom is not None:
                conditions.append(Mistake.is_custom == is_custom)
            result = await self.db.execute(
                select(Mistake).where(*conditions).execution_options(populate_existing=True)
            )
            outcome.updated.extend(result.scalars().all())

        logger.info(f"Mistake status batch for user {user_id}: {outcome.stats()}")
        return outcome

    async def bulk_set_status(self, user_id: str, mistake_ids: List[UUID], status: str) -> int:
        """Set the status of several of the user's own entries by entry id"""
        if status not in VALID_STATUSES:
            raise InvalidRequest(f"Invalid status: {status}")
        result = await self.db.execute(
            update(Mistake)
            .where(Mistake.id.in_(mistake_ids), Mistake.user_id == user_id)
            .values(status=status, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        return result.rowcount

    # ==================== Queries ====================

    async def list_mistakes(
        self,
        user_id: str,
        category: Optional[str] = None,
        statuses: Optional[List[str]] = None,
        page: int = 1,
        limit: int = 20
    ) -> Tuple[List[Mistake], int]:
        conditions = [Mistake.user_id == user_id]
        if category:
            conditions.append(Mistake.category == category)
        if statuses:
            conditions.append(Mistake.status.in_(statuses))

        total = (await self.db.execute(
            select(func.count(Mistake.id)).where(*conditions)
        )).scalar() or 0
        result = await self.db.execute(
            select(Mistake)
            .where(*conditions)
            .order_by(Mistake.last_wrong_date.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    async def open_question_refs(self, user_id: str, limit: int) -> List[Tuple[UUID, bool]]:
        """Questions still due for review, most recently missed first"""
        result = await self.db.execute(
            select(Mistake.question_id, Mistake.is_custom)
            .where(
                Mistake.user_id == user_id,
                Mistake.status.in_([MistakeStatus.UNRESOLVED.value, MistakeStatus.REVIEWING.value]),
            )
            .order_by(Mistake.last_wrong_date.desc())
            .limit(limit)
        )
        return [(row.question_id, row.is_custom) for row in result.all()]

    async def status_counts(self, user_id: str) -> Dict[str, int]:
        result = await self.db.execute(
            select(Mistake.status, func.count(Mistake.id))
            .where(Mistake.user_id == user_id)
            .group_by(Mistake.status)
        )
        counts = {s.value: 0 for s in MistakeStatus}
        counts.update({status: count for status, count in result.all()})
        return counts

    # ==================== Single entries ====================

    async def get(self, mistake_id: UUID) -> Mistake:
        mistake = await self.db.get(Mistake, mistake_id)
        if not mistake:
            raise EntityNotFound("Mistake", str(mistake_id))
        return mistake

    async def update(self, mistake_id: UUID, user_id: str, changes: Dict[str, Any]) -> Mistake:
        mistake = await self.get(mistake_id)
        if mistake.user_id != user_id:
            raise NotOwner("mistakes")
        if "status" in changes and changes["status"] not in VALID_STATUSES:
            raise InvalidRequest(f"Invalid status: {changes['status']}")
        for key in NON_NULL_FIELDS:
            if key in changes and changes[key] is None:
                raise InvalidRequest(f"{key} cannot be null")

        for key, value in changes.items():
            if key in EDITABLE_FIELDS:
                setattr(mistake, key, value)
        await self.db.commit()
        return mistake

    async def delete(self, mistake_id: UUID, user_id: str) -> None:
        mistake = await self.get(mistake_id)
        if mistake.user_id != user_id:
            raise NotOwner("mistakes")
        await self.db.delete(mistake)
        await self.db.commit()

    async def bulk_delete(self, user_id: str, mistake_ids: List[UUID]) -> int:
        """Delete several entries; all of them must exist and belong to the user"""
        result = await self.db.execute(
            select(func.count(Mistake.id))
            .where(Mistake.id.in_(mistake_ids), Mistake.user_id == user_id)
        )
        owned = result.scalar() or 0
        if owned != len(set(mistake_ids)):
            raise NotOwner("mistakes")

        await self.db.execute(
            delete(Mistake)
            .where(Mistake.id.in_(mistake_ids))
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        return owned
