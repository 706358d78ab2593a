from .teacher import Teacher
from .quiz import Quiz, QuizQuestion

__all__ = [
    "Teacher",
    "Quiz", "QuizQuestion",
]
