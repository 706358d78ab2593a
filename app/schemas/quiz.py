"""
Quiz Schemas
============

Pydantic models for quiz-related API requests and responses.

Field names on the wire are camelCase (numQuestions, correctOption, ...);
the Python attributes are snake_case and mapped through aliases.
"""

from enum import Enum
from pydantic import BaseModel, Field
from typing import List, Optional


class Complexity(str, Enum):
    """Difficulty level requested for generated questions."""
    easy = "Easy"
    medium = "Medium"
    hard = "Hard"


class QuizParams(BaseModel):
    """Request model for AI quiz generation."""
    subject: str = Field(..., min_length=1, description="Subject the quiz belongs to")
    topic: str = Field(..., min_length=1, description="Topic within the subject")
    num_questions: int = Field(..., ge=1, le=20, strict=True, alias="numQuestions")
    complexity: Complexity
    time_per_question: int = Field(..., gt=0, strict=True, alias="timePerQuestion", description="Seconds per question")
    title: Optional[str] = None
    description: Optional[str] = None

    class Config:
        populate_by_name = True
        str_strip_whitespace = True


class GeneratedQuestion(BaseModel):
    """A validated multiple choice question produced by the model."""
    text: str
    options: List[str]
    correct_option: int = Field(..., alias="correctOption")

    class Config:
        populate_by_name = True


class QuizSummary(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    room_code: str = Field(..., alias="roomCode")
    questions_count: int = Field(..., alias="questionsCount")

    class Config:
        populate_by_name = True


class GenerateQuizResponse(BaseModel):
    """Response model after a quiz has been generated and saved."""
    success: bool = True
    quiz: QuizSummary
    questions: List[GeneratedQuestion]


class QuizQuestionResponse(BaseModel):
    id: int
    text: str
    options: List[str]
    correct_option: int = Field(..., alias="correctOption")
    order_num: int = Field(..., alias="orderNum")

    class Config:
        populate_by_name = True
        from_attributes = True


class QuizDetailResponse(BaseModel):
    """Quiz preview shown to the owning teacher."""
    id: int
    title: str
    description: Optional[str] = None
    room_code: str = Field(..., alias="roomCode")
    time_per_question: int = Field(..., alias="timePerQuestion")
    quiz_type: str = Field(..., alias="quizType")
    is_active: bool = Field(..., alias="isActive")
    questions: List[QuizQuestionResponse]

    class Config:
        populate_by_name = True
        from_attributes = True
