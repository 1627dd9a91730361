from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import PersistenceFailure


@contextmanager
def row_savepoint(db: Session) -> Iterator[None]:
    """Run one row write inside a SAVEPOINT; a failure undoes only that row."""
    try:
        with db.begin_nested():
            yield
            db.flush()
    except SQLAlchemyError as exc:
        raise PersistenceFailure(str(exc)) from exc
