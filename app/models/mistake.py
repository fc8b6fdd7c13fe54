# ============================================================================
# Mistake Ledger Model
# ============================================================================
from sqlalchemy import Column, String, Integer, Boolean, DateTime
from sqlalchemy import Text, JSON, Uuid, UniqueConstraint, Index
import uuid
import enum
from app.core.database import Base, utcnow

class MistakeStatus(str, enum.Enum):
    UNRESOLVED = "unresolved"
    REVIEWING = "reviewing"
    RESOLVED = "resolved"

class Mistake(Base):
    __tablename__ = "mistakes"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(String(64), nullable=False)
    # Points into questions or custom_questions depending on is_custom
    question_id = Column(Uuid(as_uuid=True), nullable=False)
    is_custom = Column(Boolean, nullable=False, default=False)

    category = Column(String(100), nullable=False)
    wrong_answer = Column(JSON)
    wrong_count = Column(Integer, nullable=False, default=1)
    last_wrong_date = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    notes = Column(Text)
    status = Column(String(20), nullable=False, default=MistakeStatus.UNRESOLVED.value)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint('user_id', 'question_id', 'is_custom', name='unique_user_question_mistake'),
        Index('ix_mistakes_user_status', 'user_id', 'status'),
    )

    def __repr__(self):
        return f"<Mistake {self.question_id} x{self.wrong_count} ({self.status})>"
