from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from equipment_rental.services.errors import ConcurrencyConflictError


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """Commit everything done inside the block, or roll all of it back.

    A stale row version detected while flushing surfaces as
    ConcurrencyConflictError so callers can answer 409.
    """
    try:
        yield db
        db.commit()
    except StaleDataError as exc:
        db.rollback()
        raise ConcurrencyConflictError() from exc
    except Exception:
        db.rollback()
        raise
