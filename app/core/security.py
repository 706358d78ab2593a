from passlib.context import CryptContext
from jose import jwt
from datetime import datetime, timedelta, timezone
from typing import Optional
from fastapi import Depends, Header
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from app.core.config import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES
from app.core.errors import ErrorKind, QuizServiceError
from app.db.database import get_db
from app.models.teacher import Teacher
from app.services.identity_provider import IdentityProvider, Principal, get_identity_provider
import logging

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

def get_password_hash(password: str):
    return pwd_context.hash(password)

def verify_password(plain_password: str, hashed_password: str):
    return pwd_context.verify(plain_password, hashed_password)

def create_access_token(data: dict, expires_delta: timedelta | None = None):
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)

def extract_bearer_token(authorization: Optional[str]) -> str:
    if not authorization:
        raise QuizServiceError(ErrorKind.unauthenticated, "No authorization header")

    scheme, _, token = authorization.strip().partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token or " " in token:
        raise QuizServiceError(ErrorKind.unauthenticated, "Malformed authorization header")
    return token

def authenticate_caller(authorization: Optional[str], identity_provider: IdentityProvider) -> Principal:
    token = extract_bearer_token(authorization)
    principal = identity_provider.verify(token)
    logger.info(f"Authenticated principal {principal.id} via {identity_provider.name}")
    return principal

def authorize_teacher(db: Session, principal: Principal) -> Teacher:
    # lookup errors are treated as "not a teacher"
    try:
        teacher = db.query(Teacher).filter(Teacher.id == principal.id).first()
    except SQLAlchemyError as e:
        logger.error(f"Teacher lookup failed for {principal.id}: {type(e).__name__}")
        db.rollback()
        teacher = None

    if teacher is None:
        logger.warning(f"Principal {principal.id} is not a registered teacher")
        raise QuizServiceError(ErrorKind.forbidden, "Access denied: Teachers only")
    return teacher

def get_current_teacher(
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db),
    identity_provider: IdentityProvider = Depends(get_identity_provider),
) -> Teacher:
    principal = authenticate_caller(authorization, identity_provider)
    return authorize_teacher(db, principal)
