# app/db/session.py
from typing import Any, Dict

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from app.core.config import settings


def make_engine(db_uri: str, **overrides: Any) -> Engine:
    kwargs: Dict[str, Any] = {"future": True, "echo": settings.DB_ECHO}
    if db_uri.startswith("sqlite"):
        # sessions may be used from the threadpool FastAPI runs sync routes on
        kwargs["connect_args"] = {"check_same_thread": False}
    else:
        kwargs.update(
            pool_pre_ping=True,
            pool_recycle=280,
            pool_size=10,
            max_overflow=20,
        )
    kwargs.update(overrides)
    return create_engine(db_uri, **kwargs)


def make_sessionmaker(eng: Engine) -> sessionmaker:
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=eng,
        future=True,
    )


engine: Engine = make_engine(settings.DATABASE_URL)

SessionLocal = make_sessionmaker(engine)
