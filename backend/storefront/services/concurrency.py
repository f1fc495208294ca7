# Overview: Row locking and optimistic-lock retry for multi-row writes.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking to an order or customer query.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; the version_id column on
    Order/Customer still turns a lost update into StaleDataError.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Run a unit of work that ends in a commit, retrying on lock conflicts.

    Only OperationalError and StaleDataError are retried; everything else
    (including payment gateway errors) propagates on the first failure.
    """
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError):
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            current_app.logger.warning(
                "Concurrent update conflict, retrying (attempt %d of %d)", attempt + 2, attempts
            )
            time.sleep(backoff_base * (2 ** attempt))
