"""
Quiz Data Models
================

SQLAlchemy ORM models for hosted classroom quizzes.

Models:
- Quiz: A quiz owned by a teacher, joined by students through its room code
- QuizQuestion: Multiple choice question belonging to exactly one quiz

Questions are owned by their quiz and removed with it (CASCADE), and
order_num (1-based) is the authoritative question ordering.
"""

from sqlalchemy import (
    Column, Integer, String, Text, DateTime, Boolean,
    ForeignKey, JSON
)
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
from app.db.database import Base


class Quiz(Base):
    """Quiz hosted under a 6 character room code."""
    __tablename__ = "quizzes"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    time_per_question = Column(Integer, nullable=False)
    room_code = Column(String(6), unique=True, nullable=False, index=True)
    created_by = Column(String, ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False, index=True)
    quiz_type = Column(String, nullable=False, default="classnode")
    is_active = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    creator = relationship("Teacher", back_populates="quizzes")
    questions = relationship("QuizQuestion", back_populates="quiz", cascade="all, delete-orphan", order_by="QuizQuestion.order_num")


class QuizQuestion(Base):
    """Individual question within a quiz."""
    __tablename__ = "quiz_questions"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    quiz_id = Column(Integer, ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False, index=True)
    text = Column(Text, nullable=False)
    options = Column(JSON, nullable=False)
    correct_option = Column(Integer, nullable=False)
    order_num = Column(Integer, nullable=False)

    quiz = relationship("Quiz", back_populates="questions")
