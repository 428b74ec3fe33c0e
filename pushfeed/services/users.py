"""Yet another users services"""

from __future__ import annotations

from sqlalchemy import func
from sqlalchemy.orm import Session

from pushfeed.errors import UserNotExist
from pushfeed.models import User


def get_user_by_id(session: Session, user_id: int) -> User:
    u = session.get(User, user_id)
    if not u:
        raise UserNotExist(user_id=user_id)
    return u


def get_user_by_name(session: Session, name: str) -> User:
    """Look a user up by name, case-insensitively."""
    if not name:
        raise UserNotExist(name=name)
    u = session.query(User).filter_by(lower_name=name.lower()).first()
    if not u:
        raise UserNotExist(name=name)
    return u


def get_user_by_email(session: Session, email: str) -> User:
    if not email:
        raise UserNotExist(email=email)
    u = (
        session.query(User)
        .filter(func.lower(User.email) == email.strip().lower())
        .filter(User.is_organization.is_(False))
        .first()
    )
    if not u:
        raise UserNotExist(email=email)
    return u
