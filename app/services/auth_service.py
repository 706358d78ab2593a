# ------------------------------------------
# Teacher account service functions
# - register_teacher()     : Creates a teacher with a hashed password
# - authenticate_teacher() : Verifies credentials and returns an access token
# - get_active_room_code() : Room code of the teacher's active quiz, if any
# Only used with the built-in JWT identity provider
# ------------------------------------------

import uuid
from typing import Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from datetime import timedelta
from app.models.teacher import Teacher
from app.models.quiz import Quiz
from app.core.security import get_password_hash, verify_password, create_access_token
from app.core.config import ACCESS_TOKEN_EXPIRE_MINUTES

class AccountError(Exception):
    pass

def register_teacher(db: Session, name: str, email: str, password: str) -> Teacher:
    existing_teacher = db.query(Teacher).filter(Teacher.email == email).first()
    if existing_teacher:
        raise AccountError("Email already registered")

    teacher = Teacher(id=str(uuid.uuid4()), name=name, email=email, password_hash=get_password_hash(password))
    db.add(teacher)
    try:
        db.commit()
    except IntegrityError:
        # concurrent signup won the unique email constraint
        db.rollback()
        raise AccountError("Email already registered")
    db.refresh(teacher)
    return teacher

def authenticate_teacher(db: Session, email: str, password: str):
    teacher = db.query(Teacher).filter(Teacher.email == email).first()
    if not teacher or not teacher.password_hash or not verify_password(password, teacher.password_hash):
        return None

    access_token = create_access_token(
        data={"sub": teacher.id, "email": teacher.email},
        expires_delta=timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )

    return {
        "access_token": access_token,
        "token_type": "bearer",
        "expires_in": ACCESS_TOKEN_EXPIRE_MINUTES * 60
    }

def get_active_room_code(db: Session, teacher_id: str) -> Optional[str]:
    quiz = db.query(Quiz).filter(
        Quiz.created_by == teacher_id,
        Quiz.is_active == True
    ).order_by(Quiz.created_at.desc()).first()
    return quiz.room_code if quiz else None
