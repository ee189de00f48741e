import contextlib
from typing import Any, Callable, Iterator, TypeVar

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from config import settings

T = TypeVar("T")


class Base(DeclarativeBase):
    pass


def build_engine(url: str) -> Engine:
    if not url.startswith("sqlite"):
        return create_engine(url, pool_pre_ping=True)
    options: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
    if url in ("sqlite://", "sqlite:///:memory:") or "mode=memory" in url:
        options["poolclass"] = StaticPool
    return create_engine(url, **options)


def build_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, expire_on_commit=False)


engine = build_engine(settings.database_url)
SessionLocal = build_session_factory(engine)


def init_db(bind: Engine | None = None) -> None:
    import models  # noqa: F401  registers the mapped tables

    Base.metadata.create_all(bind=bind or engine)


@contextlib.contextmanager
def session_scope() -> Iterator[Session]:
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@contextlib.contextmanager
def transaction(session: Session) -> Iterator[Session]:
    """Commit on success, roll back explicitly on any error and re-raise.

    Joins the transaction the session already autobegan (for example by the
    reads of a validation step) instead of nesting a new one.
    """
    tx = session.get_transaction() or session.begin()
    try:
        yield session
        tx.commit()
    except BaseException:
        session.rollback()
        raise


def run_in_session(fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    with session_scope() as session:
        return fn(session, *args, **kwargs)
