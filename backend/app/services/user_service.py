"""Helpers for working with users."""
from __future__ import annotations

from typing import Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.db.models.user import User


def get_or_create_user(db: Session, user_id: UUID, *, timezone: Optional[str] = None) -> User:
    """Fetch an existing user or create a new row safely.

    ``timezone`` is only applied when the row is created; callers change an
    existing user's zone through the preferences route.
    """
    user = db.get(User, user_id)
    if user:
        return user

    user = User(id=user_id, timezone=timezone)
    db.add(user)
    try:
        db.flush()
        return user
    except IntegrityError:
        db.rollback()
        existing = db.get(User, user_id)
        if existing:
            return existing
        raise
