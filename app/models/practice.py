# ============================================================================
# Practice Session Models
# ============================================================================
from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey
from sqlalchemy import Float, JSON, Uuid
from sqlalchemy.orm import relationship
import uuid
import enum
from app.core.database import Base, utcnow

class PracticeType(str, enum.Enum):
    DAILY = "daily"
    CATEGORY = "category"
    REVIEW = "review"
    RANDOM = "random"

class PracticeSession(Base):
    __tablename__ = "practice_sessions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(String(64), nullable=True, index=True)
    title = Column(String(200), nullable=False)
    practice_type = Column(String(20), nullable=False)  # daily, category, review, random
    category = Column(String(100))

    total_questions = Column(Integer, nullable=False, default=0)
    correct_count = Column(Integer, nullable=False, default=0)
    accuracy = Column(Float, nullable=False, default=0.0)

    time_started = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    time_completed = Column(DateTime(timezone=True))
    completed = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    questions = relationship(
        "PracticeQuestion",
        back_populates="session",
        order_by="PracticeQuestion.position",
        cascade="all, delete-orphan",
        lazy="selectin"
    )

    def __repr__(self):
        return f"<PracticeSession {self.id} ({'completed' if self.completed else 'in_progress'})>"

class PracticeQuestion(Base):
    """One question reference inside a practice session"""
    __tablename__ = "practice_questions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    practice_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("practice_sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    position = Column(Integer, nullable=False, default=0)
    question_id = Column(Uuid(as_uuid=True), nullable=False)
    is_custom = Column(Boolean, nullable=False, default=False)

    is_correct = Column(Boolean, nullable=False, default=False)
    user_answer = Column(JSON)
    time_spent = Column(Integer)  # seconds

    session = relationship("PracticeSession", back_populates="questions")

    def __repr__(self):
        return f"<PracticeQuestion {self.question_id} ({'✓' if self.is_correct else '✗'})>"
