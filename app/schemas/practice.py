# ============================================================================
# Practice Schemas
# ============================================================================
from pydantic import BaseModel, Field
from typing import Optional, Dict, Any
from datetime import datetime

from app.config import get_settings
from app.models.practice import PracticeType

settings = get_settings()

class StartPracticeRequest(BaseModel):
    type: PracticeType
    category: Optional[str] = None
    count: int = Field(settings.DEFAULT_PRACTICE_SIZE, ge=1, le=settings.MAX_PRACTICE_SIZE)
    user_id: Optional[str] = Field(None, alias="userId")

    class Config:
        populate_by_name = True

class SubmitPracticeRequest(BaseModel):
    """
    Practice submission.

    correctCount and accuracy are accepted for compatibility with older
    clients but ignored; the server recomputes both.
    """
    completed: Optional[bool] = None
    status: Optional[str] = None
    answers: Optional[Dict[str, Any]] = None
    time_spent: Optional[Dict[str, int]] = Field(None, alias="timeSpent")
    correct_count: Optional[int] = Field(None, alias="correctCount")
    accuracy: Optional[float] = None
    time_completed: Optional[datetime] = Field(None, alias="timeCompleted")
    user_id: Optional[str] = Field(None, alias="userId")

    class Config:
        populate_by_name = True

    @property
    def completion_flag(self) -> Optional[bool]:
        if self.completed is not None:
            return self.completed
        if self.status == "completed":
            return True
        return None
