"""
Quiz Service
=====================================
Service layer for AI-generated classroom quizzes.

Pipeline for a single "generate quiz" request, strictly forward:
    Start -> Authenticating -> Authorizing -> Prompting -> Generating
          -> Validating -> Persisting -> Committed | RolledBack

Features:
- Request parameter checks before any network call
- Whole-batch validation of model output (one bad question rejects all)
- Quiz + questions persisted together, quiz deleted again if the
  question batch cannot be saved
- Room code collisions retried with a fresh code

Dependencies:
- IdentityProvider for caller authentication
- GenerationClient for the model call (any vendor adapter)
- SQLAlchemy session for persistence
"""

import enum
import json
import logging
import secrets
import string
from typing import Any, List, Optional

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import ROOM_CODE_MAX_ATTEMPTS, QUIZ_TYPE_TAG
from app.core.errors import ErrorKind, QuizServiceError
from app.core.security import authenticate_caller, authorize_teacher
from app.models.quiz import Quiz, QuizQuestion
from app.schemas.quiz import GeneratedQuestion, GenerateQuizResponse, QuizParams, QuizSummary
from app.services.identity_provider import IdentityProvider
from app.services.llm_client import GenerationClient
from app.services.quiz_prompts import OPTIONS_PER_QUESTION, build_quiz_prompt

logger = logging.getLogger(__name__)

ROOM_CODE_LENGTH = 6
ROOM_CODE_ALPHABET = string.ascii_uppercase + string.digits


class PipelineStage(str, enum.Enum):
    start = "Start"
    authenticating = "Authenticating"
    authorizing = "Authorizing"
    prompting = "Prompting"
    generating = "Generating"
    validating = "Validating"
    persisting = "Persisting"
    committed = "Committed"
    rolled_back = "RolledBack"


# kind reported when something outside the closed error set breaks a stage
UNEXPECTED_FAILURE_KIND = {
    PipelineStage.start: ErrorKind.invalid_input,
    PipelineStage.authenticating: ErrorKind.unauthenticated,
    PipelineStage.authorizing: ErrorKind.forbidden,
    PipelineStage.prompting: ErrorKind.invalid_input,
    PipelineStage.generating: ErrorKind.generation_unavailable,
    PipelineStage.validating: ErrorKind.malformed_generation,
    PipelineStage.persisting: ErrorKind.persistence_failed,
    PipelineStage.committed: ErrorKind.persistence_failed,
    PipelineStage.rolled_back: ErrorKind.persistence_failed,
}


def parse_quiz_params(payload: Any) -> QuizParams:
    """Validate the raw request body into QuizParams (no network involved)."""
    if not isinstance(payload, dict):
        raise QuizServiceError(ErrorKind.invalid_input, "Invalid input: request body must be a JSON object")

    try:
        return QuizParams.model_validate(payload)
    except ValidationError as e:
        problems = []
        for error in e.errors():
            field = ".".join(str(part) for part in error["loc"]) or "body"
            problems.append(f"{field}: {error['msg']}")
        raise QuizServiceError(
            ErrorKind.invalid_input,
            "Invalid input: " + "; ".join(problems),
            fields=[error["loc"] for error in e.errors()],
        )


def _invalid_question(index: int, reason: str) -> QuizServiceError:
    return QuizServiceError(
        ErrorKind.invalid_question_structure,
        f"Invalid question at index {index}: {reason}",
        index=index,
    )


def validate_question_data(question: Any, index: int) -> GeneratedQuestion:
    """Check one generated question; raises InvalidQuestionStructure citing its index."""
    if not isinstance(question, dict):
        raise _invalid_question(index, "expected a JSON object")

    text = question.get("text")
    if not isinstance(text, str) or not text.strip():
        raise _invalid_question(index, "'text' must be a non-empty string")

    options = question.get("options")
    if not isinstance(options, list) or len(options) != OPTIONS_PER_QUESTION:
        raise _invalid_question(index, f"'options' must be a list of exactly {OPTIONS_PER_QUESTION} strings")
    if not all(isinstance(option, str) for option in options):
        raise _invalid_question(index, "every option must be a string")

    correct_option = question.get("correctOption")
    # bool is an int subclass, reject it explicitly
    if isinstance(correct_option, bool) or not isinstance(correct_option, int):
        raise _invalid_question(index, "'correctOption' must be an integer")
    if not 0 <= correct_option < len(options):
        raise _invalid_question(index, f"'correctOption' must be between 0 and {len(options) - 1}")

    return GeneratedQuestion(text=text.strip(), options=options, correct_option=correct_option)


def parse_generated_questions(raw_text: str, expected_count: int) -> List[GeneratedQuestion]:
    """Parse and validate the model's completion as a whole batch."""
    try:
        data = json.loads(raw_text)
    except (json.JSONDecodeError, TypeError):
        logger.error(f"Model output is not valid JSON: {str(raw_text)[:200]}")
        raise QuizServiceError(ErrorKind.malformed_generation, "Malformed generation: AI returned invalid JSON")

    if not isinstance(data, list):
        raise QuizServiceError(
            ErrorKind.malformed_generation,
            "Malformed generation: AI response is not a JSON array of questions",
        )

    if not data:
        raise QuizServiceError(
            ErrorKind.invalid_question_structure,
            "AI did not generate any questions",
            expected=expected_count,
            received=0,
        )

    questions = [validate_question_data(question, index) for index, question in enumerate(data)]

    if len(questions) != expected_count:
        raise QuizServiceError(
            ErrorKind.invalid_question_structure,
            f"AI generated {len(questions)} questions, expected {expected_count}",
            expected=expected_count,
            received=len(questions),
        )

    return questions


def generate_room_code() -> str:
    return "".join(secrets.choice(ROOM_CODE_ALPHABET) for _ in range(ROOM_CODE_LENGTH))


def _room_code_taken(db: Session, room_code: str) -> bool:
    try:
        return db.query(Quiz.id).filter(Quiz.room_code == room_code).first() is not None
    except SQLAlchemyError as e:
        logger.error(f"Room code lookup failed: {type(e).__name__}")
        db.rollback()
        return False


def _insert_quiz(db: Session, teacher_id: str, params: QuizParams) -> int:
    title = params.title or f"AI Generated: {params.subject} - {params.topic}"
    description = params.description or f"AI-generated quiz on {params.topic} ({params.complexity.value} level)"

    for attempt in range(1, ROOM_CODE_MAX_ATTEMPTS + 1):
        room_code = generate_room_code()
        quiz = Quiz(
            title=title,
            description=description,
            time_per_question=params.time_per_question,
            room_code=room_code,
            created_by=teacher_id,
            quiz_type=QUIZ_TYPE_TAG,
            is_active=False,
        )
        db.add(quiz)
        try:
            db.flush()
            quiz_id = quiz.id
            db.commit()
        except IntegrityError:
            db.rollback()
            if not _room_code_taken(db, room_code):
                logger.error(f"Quiz insert rejected for teacher {teacher_id}")
                raise QuizServiceError(ErrorKind.persistence_failed, "Failed to create quiz")
            logger.warning(f"Room code collision on attempt {attempt}/{ROOM_CODE_MAX_ATTEMPTS}, retrying")
            continue
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Quiz creation error: {type(e).__name__}")
            raise QuizServiceError(ErrorKind.persistence_failed, "Failed to create quiz")

        return quiz_id

    raise QuizServiceError(
        ErrorKind.persistence_failed,
        "Failed to create quiz: could not allocate a unique room code",
        attempts=ROOM_CODE_MAX_ATTEMPTS,
    )


def _delete_quiz(db: Session, quiz_id: int) -> bool:
    try:
        db.query(QuizQuestion).filter(QuizQuestion.quiz_id == quiz_id).delete(synchronize_session=False)
        db.query(Quiz).filter(Quiz.id == quiz_id).delete(synchronize_session=False)
        db.commit()
        return True
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Compensating delete of quiz {quiz_id} failed: {type(e).__name__}")
        return False


def persist_quiz(db: Session, teacher_id: str, params: QuizParams, questions: List[GeneratedQuestion]) -> Quiz:
    """Create the quiz row, then its questions; remove the quiz if the questions fail."""
    quiz_id = _insert_quiz(db, teacher_id, params)
    logger.info(f"Quiz created: {quiz_id}")

    rows = [
        QuizQuestion(
            quiz_id=quiz_id,
            text=question.text,
            options=list(question.options),
            correct_option=question.correct_option,
            order_num=position,
        )
        for position, question in enumerate(questions, start=1)
    ]

    try:
        db.add_all(rows)
        db.commit()
        quiz = db.get(Quiz, quiz_id)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Questions insert error for quiz {quiz_id}: {type(e).__name__}")
        removed = _delete_quiz(db, quiz_id)
        logger.info(f"Stage {PipelineStage.rolled_back.value}: quiz {quiz_id} removed={removed}")
        raise QuizServiceError(
            ErrorKind.persistence_failed,
            "Failed to save questions",
            quiz_id=quiz_id,
            rolled_back=removed,
        )

    return quiz


class QuizGenerationPipeline:
    """Runs one "generate quiz" request end to end.

    The identity provider and generation client are passed in, so the same
    pipeline serves every model vendor and tests can supply fakes.
    """

    def __init__(self, identity_provider: IdentityProvider, generation_client: GenerationClient):
        self.identity_provider = identity_provider
        self.generation_client = generation_client
        self.stage = PipelineStage.start

    def _enter(self, stage: PipelineStage) -> None:
        self.stage = stage
        logger.info(f"Stage {stage.value}")

    def run(self, db: Session, authorization: Optional[str], payload: Any) -> GenerateQuizResponse:
        self._enter(PipelineStage.start)
        try:
            return self._run(db, authorization, payload)
        except QuizServiceError:
            raise
        except Exception as e:
            kind = UNEXPECTED_FAILURE_KIND[self.stage]
            logger.exception(f"Unexpected {type(e).__name__} during stage {self.stage.value}")
            raise QuizServiceError(kind, "Internal server error", stage=self.stage.value) from e

    def _run(self, db: Session, authorization: Optional[str], payload: Any) -> GenerateQuizResponse:
        params = parse_quiz_params(payload)

        self._enter(PipelineStage.authenticating)
        principal = authenticate_caller(authorization, self.identity_provider)

        self._enter(PipelineStage.authorizing)
        teacher = authorize_teacher(db, principal)

        self._enter(PipelineStage.prompting)
        prompt = build_quiz_prompt(params)

        self._enter(PipelineStage.generating)
        raw_text = self.generation_client.complete(prompt)

        self._enter(PipelineStage.validating)
        questions = parse_generated_questions(raw_text, params.num_questions)

        self._enter(PipelineStage.persisting)
        quiz = persist_quiz(db, teacher.id, params, questions)

        self._enter(PipelineStage.committed)
        logger.info(f"Quiz {quiz.id} fully created with {len(questions)} questions for teacher {teacher.id}")

        return GenerateQuizResponse(
            success=True,
            quiz=QuizSummary(
                id=quiz.id,
                title=quiz.title,
                description=quiz.description,
                room_code=quiz.room_code,
                questions_count=len(questions),
            ),
            questions=questions,
        )


def get_quiz_for_teacher(db: Session, quiz_id: int, teacher_id: str) -> Optional[Quiz]:
    return db.query(Quiz).filter(Quiz.id == quiz_id, Quiz.created_by == teacher_id).first()
