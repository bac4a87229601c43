"""Lazy user rows; authentication lives outside this service."""
from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.db.models.user import User

logger = logging.getLogger(__name__)


def get_or_create_user(db: Session, user_id: UUID) -> User:
    """Return the owner row for ``user_id``, inserting it on first use."""
    user = db.get(User, user_id)
    if user is not None:
        return user

    db.add(User(id=user_id))
    try:
        db.flush()
    except IntegrityError:
        # Another request inserted the same id between the read and the flush.
        db.rollback()
        user = db.get(User, user_id)
        if user is None:
            raise
        return user

    logger.info("Created user %s on first dream", user_id)
    return db.get(User, user_id)
