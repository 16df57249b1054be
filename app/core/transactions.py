from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.extensions import db

logger = logging.getLogger(__name__)


@contextmanager
def transaction() -> Iterator[Session]:
    """Unit of work over the request-scoped session.

    Commits when the block finishes, rolls back and re-raises otherwise.
    """
    session = db.session
    try:
        yield session
        session.commit()
    except Exception:
        rollback()
        raise


def rollback() -> None:
    # Never mask the error that triggered the rollback.
    try:
        db.session.rollback()
    except SQLAlchemyError:
        logger.exception("Falha ao executar ROLLBACK")
