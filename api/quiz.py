"""
Quiz API Routes
================

FastAPI endpoints for AI-generated classroom quizzes:
1. Parse the request body and check parameter ranges
2. Authenticate the caller and require a teacher record
3. Prompt the configured model and validate its questions
4. Save quiz + questions, return the summary with the room code

Endpoints:
- POST /generate-quiz - Generate and save a quiz with AI
- GET /api/quizzes/{quiz_id} - Preview a quiz owned by the caller
"""

import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from app.core.errors import ErrorKind, QuizServiceError
from app.core.security import get_current_teacher
from app.db.database import get_db
from app.models.teacher import Teacher
from app.schemas.quiz import GenerateQuizResponse, QuizDetailResponse
from app.services.identity_provider import IdentityProvider, get_identity_provider
from app.services.llm_client import GenerationClient, get_generation_client
from app.services.quiz_service import QuizGenerationPipeline, get_quiz_for_teacher

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Quiz"])


def get_quiz_pipeline(
    identity_provider: IdentityProvider = Depends(get_identity_provider),
    generation_client: GenerationClient = Depends(get_generation_client),
) -> QuizGenerationPipeline:
    return QuizGenerationPipeline(identity_provider, generation_client)


@router.post("/generate-quiz", response_model=GenerateQuizResponse)
async def generate_quiz_endpoint(
    request: Request,
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db),
    pipeline: QuizGenerationPipeline = Depends(get_quiz_pipeline),
):
    """
    Generate a multiple choice quiz with AI and save it for the calling teacher.

    Body fields: subject, topic, numQuestions (1-20), complexity
    (Easy | Medium | Hard), timePerQuestion (seconds), optional title and
    description.

    Returns:
        {"success": true, "quiz": {...}, "questions": [...]}

    Raises:
        401: Missing, malformed or rejected bearer token
        403: Caller is not a teacher
        500: Invalid input, generation or persistence failure
    """
    body = await request.body()
    payload = None
    if body:
        try:
            payload = json.loads(body)
        except ValueError:
            raise QuizServiceError(ErrorKind.invalid_input, "Invalid input: request body is not valid JSON")

    # identity check, model call and writes all block
    return await run_in_threadpool(pipeline.run, db, authorization, payload)


@router.get("/api/quizzes/{quiz_id}", response_model=QuizDetailResponse)
def get_quiz_endpoint(
    quiz_id: int,
    db: Session = Depends(get_db),
    current_teacher: Teacher = Depends(get_current_teacher)
):
    quiz = get_quiz_for_teacher(db, quiz_id, current_teacher.id)
    if not quiz:
        logger.warning(f"Quiz {quiz_id} not found for teacher {current_teacher.id}")
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Quiz not found"
        )
    return QuizDetailResponse.model_validate(quiz)
