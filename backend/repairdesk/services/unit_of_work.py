"""Transactional boundary for multi-row mutations.

Every service entry point wraps its writes in ``atomic()``: the session is
committed once when the block exits cleanly and rolled back on any exception,
which is then re-raised unchanged. Nothing is retried.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager

from repairdesk import get_db

logger = logging.getLogger(__name__)


@contextmanager
def atomic(session=None):
    session = session or get_db()
    try:
        yield session
        session.commit()
    except Exception:
        logger.debug('rolling back unit of work', exc_info=True)
        session.rollback()
        raise
