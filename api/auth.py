# ------------------------------------------
# Teacher account API routes (FastAPI)
# - /auth/signup : Registers a new teacher
# - /auth/login  : Authenticates a teacher and returns a JWT access token
# - /auth/me     : Current teacher profile and active quiz room code
# Uses dependency-injected DB session via get_db()
# ------------------------------------------

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from app.schemas.teacher import TeacherSignup, TeacherLogin, LoginResponse, SignupResponse, TeacherProfile
from app.services.auth_service import AccountError, register_teacher, authenticate_teacher, get_active_room_code
from app.core.security import get_current_teacher
from app.db.database import get_db
from app.models.teacher import Teacher

router = APIRouter(prefix="/auth", tags=["Auth"])

@router.post("/signup", response_model=SignupResponse)
def signup(teacher: TeacherSignup, db: Session = Depends(get_db)):
    try:
        created = register_teacher(db, teacher.name, teacher.email, teacher.password)
    except AccountError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return {"message": "Teacher registered successfully", "teacher_id": created.id}

@router.post("/login", response_model=LoginResponse)
def login(teacher: TeacherLogin, db: Session = Depends(get_db)):
    tokens = authenticate_teacher(db, teacher.email, teacher.password)
    if not tokens:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Wrong credentials, please try again",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return tokens

@router.get("/me", response_model=TeacherProfile)
def me(
    db: Session = Depends(get_db),
    current_teacher: Teacher = Depends(get_current_teacher)
):
    return TeacherProfile(
        id=current_teacher.id,
        name=current_teacher.name,
        email=current_teacher.email,
        room_code=get_active_room_code(db, current_teacher.id),
    )
