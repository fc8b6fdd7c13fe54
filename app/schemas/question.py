# ============================================================================
# Question Schemas
# ============================================================================
from pydantic import BaseModel, Field
from typing import Optional, List, Any, Union
from uuid import UUID

from app.models.question import QuestionType, Difficulty, CustomQuestionType

class QuestionOption(BaseModel):
    label: str
    text: str

class QuestionCreate(BaseModel):
    title: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    type: QuestionType
    category: str = Field(..., min_length=1)
    subcategory: Optional[str] = None
    difficulty: Difficulty
    options: List[QuestionOption] = []
    answer: Union[List[str], str]
    explanation: str = Field(..., min_length=1)
    tags: List[str] = []

class QuestionUpdate(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    type: Optional[QuestionType] = None
    category: Optional[str] = None
    subcategory: Optional[str] = None
    difficulty: Optional[Difficulty] = None
    options: Optional[List[QuestionOption]] = None
    answer: Optional[Union[List[str], str]] = None
    explanation: Optional[str] = None
    tags: Optional[List[str]] = None

class VerifyAnswerRequest(BaseModel):
    question_id: UUID = Field(..., alias="questionId")
    user_answer: Any = Field(..., alias="userAnswer")
    user_id: Optional[str] = Field(None, alias="userId")

    class Config:
        populate_by_name = True

class CustomQuestionIn(BaseModel):
    type: CustomQuestionType
    content: str = Field(..., min_length=1)
    options: List[str] = []
    answer: str = Field(..., min_length=1)
    explanation: Optional[str] = None
    subject: Optional[str] = None

class SaveLibraryRequest(BaseModel):
    questions: List[CustomQuestionIn] = Field(..., min_length=1)
    course_name: Optional[str] = Field(None, alias="courseName")

    class Config:
        populate_by_name = True
