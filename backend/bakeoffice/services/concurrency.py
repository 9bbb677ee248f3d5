# Overview: Service-layer operations for concurrency; transaction boundaries, row locks and retry.

from __future__ import annotations

import time

from flask import current_app, has_app_context
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import DomainError, PersistenceError
from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def lock_for_share(query):
    """Shared row lock (FOR SHARE): many holders, blocks FOR UPDATE."""
    return query.with_for_update(read=True)


def _default_attempts() -> int:
    if has_app_context():
        return int(current_app.config.get("DB_RETRY_ATTEMPTS", 3))
    return 3


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float = 0.1):
    """
    Execute one unit of work as a single transaction.

    - OperationalError (deadlocks, lock timeouts) and StaleDataError
      (optimistic version_id conflicts) are retried with exponential backoff.
    - DomainError is business failure: rolled back and re-raised untouched.
    - Any other SQLAlchemyError is rolled back and surfaced as PersistenceError.

    The session is rolled back on every failure path, so no partial state
    from a failed attempt is ever visible or committed later.
    """
    if attempts is None:
        attempts = _default_attempts()

    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                current_app.logger.error("Concurrent update failed after %d attempts: %s", attempts, exc)
                raise PersistenceError("Concurrent update conflict") from exc
            time.sleep(backoff_base * (2 ** attempt))
        except DomainError:
            db.session.rollback()
            raise
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.exception("Database error; transaction rolled back")
            raise PersistenceError("Failed to save changes") from exc
        except Exception:
            db.session.rollback()
            raise
    if last_exc:
        raise PersistenceError("Concurrent update conflict") from last_exc
