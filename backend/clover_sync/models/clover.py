"""
Clover Sync Models
Order annotations, order notes, stored OAuth credentials and the sync log.
"""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String, Text, UniqueConstraint

from clover_sync.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrderAnnotation(Base):
    """Key/value metadata written back onto a WooCommerce order."""
    __tablename__ = "order_annotations"
    __table_args__ = (
        UniqueConstraint("order_id", "key", name="uq_order_annotation_key"),
    )

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(String(64), nullable=False, index=True)
    key = Column(String(100), nullable=False)
    value = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class OrderNote(Base):
    """Human-readable note recording a sync outcome for an order."""
    __tablename__ = "order_notes"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(String(64), nullable=False, index=True)
    note = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, index=True)


class CloverCredential(Base):
    """OAuth credentials acquired through the Clover authorize flow.

    Single row; replaces the plugin-wide options array.
    """
    __tablename__ = "clover_credentials"

    id = Column(Integer, primary_key=True, index=True)
    access_token = Column(Text, nullable=False)
    merchant_id = Column(String(64), nullable=False)
    acquired_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class CloverSyncLog(Base):
    """Audit log entry."""
    __tablename__ = "clover_sync_log"

    id = Column(Integer, primary_key=True, index=True)
    level = Column(String(16), nullable=False, index=True)
    message = Column(Text, nullable=False)
    order_id = Column(String(64), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, index=True)
