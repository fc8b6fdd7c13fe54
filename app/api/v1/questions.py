# ============================================================================
# Question Endpoints
# ============================================================================
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
from uuid import UUID

from app.core.database import get_db
from app.core.exceptions import EntityNotFound
from app.api.deps import Pagination, get_current_user_id, get_session_user_id, require_acting_user
from app.models.question import CustomQuestion
from app.schemas.question import QuestionCreate, QuestionUpdate, SaveLibraryRequest, VerifyAnswerRequest
from app.services.practice.answer_verifier import AnswerVerifier
from app.services.questions.question_store import QuestionStore

router = APIRouter(prefix="/questions", tags=["questions"])

def _custom_dict(question: CustomQuestion) -> dict:
    return {
        "id": str(question.id),
        "userId": question.user_id,
        "type": question.type,
        "content": question.content,
        "options": question.options or [],
        "answer": question.answer,
        "explanation": question.explanation,
        "subject": question.subject,
        "createdAt": question.created_at.isoformat() if question.created_at else None,
    }

# ============================================================================
# Standard Question Bank
# ============================================================================
@router.get("")
async def list_questions(
    category: Optional[str] = None,
    difficulty: Optional[str] = None,
    type: Optional[str] = None,
    pagination: Pagination = Depends(),
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    """List standard questions without answers or explanations"""
    questions, total = await QuestionStore(db).list_standard(
        category=category,
        difficulty=difficulty,
        question_type=type,
        page=pagination.page,
        limit=pagination.limit
    )
    return {
        "questions": [q.to_dict() for q in questions],
        "pagination": pagination.to_dict(total)
    }

@router.post("", status_code=201)
async def create_question(
    request: QuestionCreate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    """Add a question to the standard bank"""
    question = await QuestionStore(db).create_standard(request.model_dump(mode="json"))
    return {
        "message": "Question created successfully",
        "question": question.to_dict(include_answer=True)
    }

@router.post("/verify")
async def verify_answer(
    request: VerifyAnswerRequest,
    session_user_id: Optional[str] = Depends(get_session_user_id),
    db: AsyncSession = Depends(get_db)
):
    """
    Check one answer.

    Wrong answers are recorded in the caller's mistake ledger; a right answer
    resolves an existing entry. The correct answer is only revealed when the
    submission was wrong, the explanation always.
    """
    user_id = require_acting_user(request.user_id, session_user_id)
    result = await AnswerVerifier(db).verify(request.question_id, request.user_answer, user_id)
    return result.to_dict()

# ============================================================================
# Custom Question Library
# ============================================================================
@router.get("/library")
async def list_library(
    subject: Optional[str] = None,
    type: Optional[str] = None,
    pagination: Pagination = Depends(),
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    """List the caller's own questions and the subjects they are filed under"""
    questions, total, subjects = await QuestionStore(db).list_custom(
        user_id,
        subject=subject,
        question_type=type,
        page=pagination.page,
        limit=pagination.limit
    )
    return {
        "questions": [_custom_dict(q) for q in questions],
        "pagination": pagination.to_dict(total),
        "subjects": subjects
    }

@router.post("/library")
async def save_to_library(
    request: SaveLibraryRequest,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    saved = await QuestionStore(db).save_custom(
        user_id,
        [q.model_dump(mode="json") for q in request.questions],
        course_name=request.course_name
    )
    return {
        "success": True,
        "message": "Questions saved to your library",
        "count": len(saved)
    }

@router.delete("/library")
async def delete_library(
    subject: str = Query(..., min_length=1),
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    """Delete every question of one subject from the caller's library"""
    deleted = await QuestionStore(db).delete_custom_subject(user_id, subject)
    return {
        "success": True,
        "message": f"Deleted library '{subject}' ({deleted} questions)",
        "deletedCount": deleted
    }

@router.delete("/library/{question_id}")
async def delete_library_question(
    question_id: UUID,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    await QuestionStore(db).delete_custom(question_id, user_id)
    return {"message": "Question deleted successfully"}

# ============================================================================
# Single Question
# ============================================================================
@router.get("/{question_id}")
async def get_question(
    question_id: UUID,
    show_answer: bool = Query(False, alias="showAnswer"),
    db: AsyncSession = Depends(get_db)
):
    """Read a standard or custom question in the normalized shape"""
    question = await QuestionStore(db).get(question_id)
    if not question:
        raise EntityNotFound("Question", str(question_id))
    return question.to_dict(include_answer=show_answer)

@router.put("/{question_id}")
async def update_question(
    question_id: UUID,
    request: QuestionUpdate,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    question = await QuestionStore(db).update_standard(
        question_id, request.model_dump(mode="json", exclude_unset=True)
    )
    return {
        "message": "Question updated successfully",
        "question": question.to_dict(include_answer=True)
    }

@router.delete("/{question_id}")
async def delete_question(
    question_id: UUID,
    user_id: str = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db)
):
    await QuestionStore(db).delete_standard(question_id)
    return {"message": "Question deleted successfully"}
