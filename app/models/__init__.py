from app.models.question import Question, CustomQuestion, QuestionType, CustomQuestionType, Difficulty
from app.models.practice import PracticeSession, PracticeQuestion, PracticeType
from app.models.mistake import Mistake, MistakeStatus

__all__ = [
    "Question", "CustomQuestion", "QuestionType", "CustomQuestionType", "Difficulty",
    "PracticeSession", "PracticeQuestion", "PracticeType",
    "Mistake", "MistakeStatus"
]
