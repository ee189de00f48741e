from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from models import User


def _active():
    return select(User).where(User.is_deleted.is_(False))


def create(session: Session, user: User) -> User:
    session.add(user)
    session.flush()
    return user


def update(session: Session, user: User) -> User:
    session.add(user)
    session.flush()
    return user


def find_by_id(session: Session, user_id: int) -> Optional[User]:
    return session.scalars(_active().where(User.id == user_id)).first()


def find_by_line_id(session: Session, line_id: str) -> Optional[User]:
    return session.scalars(_active().where(User.line_id == line_id)).first()


def find_by_display_name(session: Session, display_name: str) -> Optional[User]:
    stmt = _active().where(User.display_name == display_name).order_by(User.id)
    return session.scalars(stmt).first()


def find_all(session: Session) -> List[User]:
    return list(session.scalars(_active().order_by(User.id)))
