# ------------------------------------------
# SQLAlchemy Teacher model definition
# A principal is a teacher iff a row keyed by its identifier exists here
# - id matches the identity provider's user identifier
# - password_hash is only set for accounts created through /auth/signup
# ------------------------------------------

from sqlalchemy import Column, String, TIMESTAMP
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
from app.db.database import Base

class Teacher(Base):
    __tablename__ = "teachers"

    id = Column(String, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, nullable=False)
    password_hash = Column(String, nullable=True)
    created_at = Column(TIMESTAMP, default=lambda: datetime.now(timezone.utc))

    quizzes = relationship("Quiz", back_populates="creator", cascade="all, delete-orphan")
