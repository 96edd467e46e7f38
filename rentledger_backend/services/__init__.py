"""Tenancy and rent-ledger operations.

Routes and CLI commands call into these modules; they own transactions and
raise the exceptions from :mod:`rentledger_backend.errors`.
"""
import logging
import threading
from contextlib import contextmanager

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from rentledger_backend.errors import ConflictError, PersistenceError
from rentledger_backend.extensions import db

log = logging.getLogger(__name__)

_unit_locks = {}
_unit_locks_guard = threading.Lock()


def unit_lock(unit_id):
    """Process-local lock serializing occupancy changes on one unit."""
    with _unit_locks_guard:
        lock = _unit_locks.get(unit_id)
        if lock is None:
            lock = _unit_locks[unit_id] = threading.Lock()
        return lock


@contextmanager
def atomic(conflict_message="record conflicts with an existing one"):
    """Commit the session on success, roll back and translate database errors otherwise."""
    try:
        yield db.session
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        raise ConflictError(conflict_message) from e
    except SQLAlchemyError as e:
        db.session.rollback()
        log.exception("Transaction aborted")
        raise PersistenceError("database operation failed") from e
    except Exception:
        db.session.rollback()
        raise
