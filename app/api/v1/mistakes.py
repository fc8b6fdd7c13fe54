# ============================================================================
# Mistake Ledger Endpoints
# ============================================================================
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from uuid import UUID

from app.core.database import get_db
from app.api.deps import Pagination, get_current_user_id, get_session_user_id
from app.models.mistake import Mistake
from app.schemas.mistake import BatchStatusUpdateRequest, BulkDeleteRequest, BulkStatusRequest, MistakeUpdate
from app.services.practice.mistake_ledger import MistakeLedger
from app.services.questions.question_store import QuestionStore, QuestionView

router = APIRouter(prefix="/mistakes", tags=["mistakes"])

def _mistake_dict(
    mistake: Mistake,
    question: Optional[QuestionView] = None,
    include_user: bool = True
) -> dict:
    data = {
        "id": str(mistake.id),
        "questionId": str(mistake.question_id),
        "isCustom": mistake.is_custom,
        "category": mistake.category,
        "wrongAnswer": mistake.wrong_answer,
        "wrongCount": mistake.wrong_count,
        "lastWrongDate": mistake.last_wrong_date.isoformat() if mistake.last_wrong_date else None,
        "notes": mistake.notes,
        "status": mistake.status,
        "question": question.to_dict(include_answer=True) if question else None,
    }
    if include_user:
        data["userId"] = mistake.user_id
    return data

async def _with_questions(db: AsyncSession, mistakes: List[Mistake]) -> List[dict]:
    found = await QuestionStore(db).get_many((m.question_id, m.is_custom) for m in mistakes)
    return [_mistake_dict(m, found.get((m.question_id, m.is_custom))) for m in mistakes]

# ============================================================================
# Collection
# ============================================================================
@router.get("")
async def list_mistakes(
    category: Optional[str] = None,
    status: Optional[str] = Query(None, description="Comma-separated statuses"),
    pagination: Pagination = Depends(),
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    """List the caller's ledger entries, most recently missed first"""
    statuses = [s.strip() for s in status.split(",") if s.strip()] if status else None
    mistakes, total = await MistakeLedger(db).list_mistakes(
        user_id,
        category=category,
        statuses=statuses,
        page=pagination.page,
        limit=pagination.limit
    )
    return {
        "mistakes": await _with_questions(db, mistakes),
        "pagination": pagination.to_dict(total)
    }

@router.put("")
async def bulk_update_status(
    request: BulkStatusRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    updated = await MistakeLedger(db).bulk_set_status(user_id, request.mistake_ids, request.status.value)
    return {
        "message": f"Updated {updated} mistakes",
        "updatedCount": updated
    }

@router.put("/batch-update")
async def batch_update_status(
    request: BatchStatusUpdateRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    """
    Set the status of several entries addressed by question id.

    Each pair succeeds or fails on its own; the response counts how many
    changed, were already in place, or failed.
    """
    result = await MistakeLedger(db).apply_status_updates(user_id, request.updates)
    stats = result.stats()
    return {
        "success": True,
        "message": (
            f"Updated {stats['successful']} of {stats['total']} mistakes "
            f"({stats['unchanged']} unchanged, {stats['failed']} failed)"
        ),
        "updated": [_mistake_dict(m) for m in result.updated],
        "stats": stats
    }

@router.delete("/batch")
async def batch_delete(
    request: BulkDeleteRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    deleted = await MistakeLedger(db).bulk_delete(user_id, request.mistake_ids)
    return {
        "message": f"Deleted {deleted} mistakes",
        "deletedCount": deleted
    }

# ============================================================================
# Single Entry
# ============================================================================
@router.get("/{mistake_id}")
async def get_mistake(
    mistake_id: UUID,
    session_user_id: Optional[str] = Depends(get_session_user_id),
    db: AsyncSession = Depends(get_db)
):
    """Read one entry; the owner id is only shown to the owner"""
    mistake = await MistakeLedger(db).get(mistake_id)
    question = await QuestionStore(db).get(mistake.question_id, mistake.is_custom)
    return _mistake_dict(mistake, question, include_user=mistake.user_id == session_user_id)

@router.put("/{mistake_id}")
async def update_mistake(
    mistake_id: UUID,
    request: MistakeUpdate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    mistake = await MistakeLedger(db).update(
        mistake_id, user_id, request.model_dump(mode="json", exclude_unset=True)
    )
    return {
        "message": "Mistake updated successfully",
        "mistake": _mistake_dict(mistake)
    }

@router.delete("/{mistake_id}")
async def delete_mistake(
    mistake_id: UUID,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    await MistakeLedger(db).delete(mistake_id, user_id)
    return {"message": "Mistake deleted successfully"}
