"""Clover sync audit log.

Every entry goes to the ``clover_sync`` logger. Entries are persisted to the
``clover_sync_log`` table only for errors, or for every level in debug mode.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from clover_sync.db.session import SessionLocal
from clover_sync.models.clover import CloverSyncLog

logger = logging.getLogger("clover_sync")

LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class AuditLog:
    """Write-mostly log of sync activity."""

    def __init__(self, db: Optional[Session] = None, debug_enabled: bool = False):
        self.db = db
        self.debug_enabled = debug_enabled

    def should_record(self, level: str) -> bool:
        return level == "error" or self.debug_enabled

    def log(self, message: str, level: str = "info", order_id: Optional[str] = None) -> None:
        """Record an entry.

        Args:
            message: Human-readable message
            level: One of debug, info, warning, error
            order_id: WooCommerce order the entry relates to, if any
        """
        level = level.lower()
        if level not in LEVELS:
            raise ValueError(f"Unknown log level: {level}")
        logger.log(LEVELS[level], message)
        if not self.should_record(level):
            return

        own_session = self.db is None
        db = SessionLocal() if own_session else self.db
        # Request sessions are closed without a commit
        try:
            db.add(CloverSyncLog(level=level, message=message, order_id=order_id))
            db.commit()
        except Exception:
            logger.exception("Failed to write Clover sync log entry")
            db.rollback()
        finally:
            if own_session:
                db.close()

    def debug(self, message: str, order_id: Optional[str] = None) -> None:
        self.log(message, "debug", order_id)

    def info(self, message: str, order_id: Optional[str] = None) -> None:
        self.log(message, "info", order_id)

    def error(self, message: str, order_id: Optional[str] = None) -> None:
        self.log(message, "error", order_id)


def recent_entries(db: Session, limit: int = 50) -> List[CloverSyncLog]:
    """Most recent log entries, newest first."""
    return (
        db.query(CloverSyncLog)
        .order_by(CloverSyncLog.created_at.desc(), CloverSyncLog.id.desc())
        .limit(limit)
        .all()
    )


def clear_entries(db: Session) -> bool:
    """Delete all log entries. Returns False when there was nothing to delete."""
    deleted = db.query(CloverSyncLog).delete(synchronize_session=False)
    db.commit()
    return deleted > 0


def purge_entries_older_than(db: Session, days: int) -> int:
    """Delete entries older than ``days``. Returns the number removed."""
    cutoff = datetime.now(timezone.utc) - timedelta(days=days)
    deleted = (
        db.query(CloverSyncLog)
        .filter(CloverSyncLog.created_at < cutoff)
        .delete(synchronize_session=False)
    )
    db.commit()
    return deleted
