# ------------------------------------------
# Persistence wiring
# - build_engine() : engine for a URL; SQLite gets thread sharing,
#                    server databases get connection health checks
# - SessionLocal   : session factory used per request
# - get_db()       : FastAPI dependency, rolls back a failed request
# ------------------------------------------

import logging
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import sessionmaker, declarative_base
from app.core.config import DATABASE_URL, DB_ECHO

logger = logging.getLogger(__name__)


def build_engine(url: str, echo: bool = False) -> Engine:
    if make_url(url).get_backend_name() == "sqlite":
        # requests run their blocking work in a threadpool
        return create_engine(url, echo=echo, connect_args={"check_same_thread": False})
    return create_engine(url, echo=echo, pool_pre_ping=True)


engine = build_engine(DATABASE_URL, echo=DB_ECHO)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    except Exception:
        logger.debug("Rolling back session of failed request")
        db.rollback()
        raise
    finally:
        db.close()
