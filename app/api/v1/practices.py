# ============================================================================
# Practice Session Endpoints
# ============================================================================
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
from uuid import UUID

from app.core.database import get_db
from app.api.deps import Pagination, get_session_user_id, require_acting_user, resolve_acting_user
from app.models.practice import PracticeType
from app.schemas.practice import StartPracticeRequest, SubmitPracticeRequest
from app.services.practice.session_manager import PracticeSessionManager, session_summary

router = APIRouter(prefix="/practices", tags=["practices"])

@router.get("")
async def list_practices(
    type: Optional[PracticeType] = None,
    user_id: Optional[str] = Query(None, alias="userId"),
    pagination: Pagination = Depends(),
    session_user_id: Optional[str] = Depends(get_session_user_id),
    db: AsyncSession = Depends(get_db)
):
    """List the acting user's sessions, newest first"""
    acting_user_id = require_acting_user(user_id, session_user_id)
    sessions, total = await PracticeSessionManager(db).list_sessions(
        acting_user_id,
        practice_type=type.value if type else None,
        page=pagination.page,
        limit=pagination.limit
    )
    return {
        "practices": [session_summary(s) for s in sessions],
        "pagination": pagination.to_dict(total)
    }

@router.post("", status_code=201)
async def start_practice(
    request: StartPracticeRequest,
    session_user_id: Optional[str] = Depends(get_session_user_id),
    db: AsyncSession = Depends(get_db)
):
    """
    Start a practice session.

    Anonymous sessions are allowed; review sessions of an anonymous caller are
    simply empty.
    """
    acting_user_id = resolve_acting_user(request.user_id, session_user_id)
    session, questions = await PracticeSessionManager(db).start_session(
        acting_user_id,
        request.type.value,
        category=request.category,
        count=request.count
    )

    practice = session_summary(session)
    practice["questions"] = [q.to_dict() for q in questions]
    return {
        "message": "Practice created successfully",
        "practice": practice
    }

@router.get("/{practice_id}")
async def get_practice(
    practice_id: UUID,
    session_user_id: Optional[str] = Depends(get_session_user_id),
    db: AsyncSession = Depends(get_db)
):
    """Session detail; answers are only included for the authenticated owner"""
    return await PracticeSessionManager(db).get_session_detail(practice_id, session_user_id)

@router.put("/{practice_id}")
async def submit_practice(
    practice_id: UUID,
    request: SubmitPracticeRequest,
    session_user_id: Optional[str] = Depends(get_session_user_id),
    db: AsyncSession = Depends(get_db)
):
    """
    Submit answers for a session or mark it completed.

    The response carries the final session state with aggregates computed
    on the server.
    """
    acting_user_id = require_acting_user(request.user_id, session_user_id)
    practice = await PracticeSessionManager(db).submit(
        practice_id,
        acting_user_id,
        answers=request.answers,
        time_spent=request.time_spent,
        completed=request.completion_flag,
        time_completed=request.time_completed
    )
    return {
        "message": "Practice updated successfully",
        "practice": practice
    }
