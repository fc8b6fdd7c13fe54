# ============================================================================
# Question Bank Models
# ============================================================================
from sqlalchemy import Column, String, DateTime, Text, JSON, Uuid, UniqueConstraint
import uuid
import enum
from app.core.database import Base, utcnow

class QuestionType(str, enum.Enum):
    CHOICE = "choice"        # single choice
    MULTIPLE = "multiple"    # multiple choice, answer is a list of labels
    JUDGE = "judge"          # true / false
    FILL = "fill"            # fill in the blank
    TEXT = "text"            # free text

class Difficulty(str, enum.Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"

class CustomQuestionType(str, enum.Enum):
    MULTIPLE_CHOICE = "multiple_choice"
    FILL_BLANK = "fill_blank"
    SHORT_ANSWER = "short_answer"

class Question(Base):
    """Curated question shared by all users"""
    __tablename__ = "questions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    type = Column(String(20), nullable=False)
    category = Column(String(100), nullable=False, index=True)
    subcategory = Column(String(100))
    difficulty = Column(String(10), nullable=False, default=Difficulty.MEDIUM.value)
    options = Column(JSON, default=list)  # [{"label": "A", "text": "..."}]
    answer = Column(JSON, nullable=False)  # "A" or ["A", "C"]
    explanation = Column(Text, nullable=False, default="")
    tags = Column(JSON, default=list)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<Question {self.id} ({self.type})>"

class CustomQuestion(Base):
    """Question authored by one user for their own library"""
    __tablename__ = "custom_questions"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(String(64), nullable=False, index=True)
    type = Column(String(20), nullable=False)
    content = Column(Text, nullable=False)
    options = Column(JSON, default=list)  # plain option texts
    answer = Column(Text, nullable=False)  # "B", "A,C" or "A|C"
    explanation = Column(Text)
    subject = Column(String(100), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint('user_id', 'content', name='unique_user_question_content'),
    )

    def __repr__(self):
        return f"<CustomQuestion {self.id} ({self.subject})>"
