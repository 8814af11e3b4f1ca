from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from finhub.config import DATABASE_URL, SERVICE_ROLE_KEY


def build_engine(url: str = DATABASE_URL, service_role_key: str | None = SERVICE_ROLE_KEY) -> Engine:
    """Create the engine, using the service-role key as password when the URL has none."""
    db_url = make_url(url)
    if service_role_key and db_url.password is None and not db_url.drivername.startswith("sqlite"):
        db_url = db_url.set(password=service_role_key)

    kwargs: dict = {"future": True, "echo": False}
    if db_url.drivername.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if db_url.database in (None, "", ":memory:"):
            # Share the single in-memory database across threads.
            kwargs["poolclass"] = StaticPool
    return create_engine(db_url, **kwargs)


engine = build_engine()
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

Base = declarative_base()


@contextmanager
def get_session() -> Iterator[Session]:
    """Yield a SQLAlchemy session for use in request handlers or scripts."""
    session: Session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
