# ============================================================================
# Mistake Ledger Schemas
# ============================================================================
from pydantic import BaseModel, Field
from typing import Optional, List, Any, Dict
from uuid import UUID

from app.models.mistake import MistakeStatus

class BatchStatusUpdateRequest(BaseModel):
    # Pairs are validated one by one by the ledger so a bad pair only fails itself
    updates: List[Dict[str, Any]]

class BulkStatusRequest(BaseModel):
    mistake_ids: List[UUID] = Field(..., alias="mistakeIds")
    status: MistakeStatus

    class Config:
        populate_by_name = True

class BulkDeleteRequest(BaseModel):
    mistake_ids: List[UUID] = Field(..., alias="mistakeIds", min_length=1)

    class Config:
        populate_by_name = True

class MistakeUpdate(BaseModel):
    status: Optional[MistakeStatus] = None
    notes: Optional[str] = None
    category: Optional[str] = None
