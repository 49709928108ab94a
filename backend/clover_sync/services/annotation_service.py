"""Order annotations and notes written back after a sync."""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from clover_sync.models.clover import OrderAnnotation, OrderNote


class AnnotationSink(ABC):
    """Where sync outcomes are recorded against the source order."""

    @abstractmethod
    def record_annotation(self, order_id: str, key: str, value: str) -> None:
        """Set a metadata field on the order."""

    @abstractmethod
    def add_note(self, order_id: str, text: str) -> None:
        """Append a human-readable note to the order."""

    @abstractmethod
    def get_annotation(self, order_id: str, key: str) -> Optional[str]:
        """Read a metadata field back, or None when unset."""


class DatabaseAnnotationSink(AnnotationSink):
    """Stores annotations and notes in the local database."""

    def __init__(self, db: Session):
        self.db = db

    def record_annotation(self, order_id: str, key: str, value: str) -> None:
        existing = (
            self.db.query(OrderAnnotation)
            .filter(OrderAnnotation.order_id == order_id, OrderAnnotation.key == key)
            .first()
        )
        if existing:
            existing.value = value
            existing.updated_at = datetime.now(timezone.utc)
        else:
            self.db.add(OrderAnnotation(order_id=order_id, key=key, value=value))
        self.db.commit()

    def add_note(self, order_id: str, text: str) -> None:
        self.db.add(OrderNote(order_id=order_id, note=text))
        self.db.commit()

    def get_annotation(self, order_id: str, key: str) -> Optional[str]:
        row = (
            self.db.query(OrderAnnotation)
            .filter(OrderAnnotation.order_id == order_id, OrderAnnotation.key == key)
            .first()
        )
        return row.value if row else None

    def get_annotations(self, order_id: str) -> Dict[str, str]:
        rows = self.db.query(OrderAnnotation).filter(OrderAnnotation.order_id == order_id).all()
        return {row.key: row.value for row in rows}

    def get_notes(self, order_id: str) -> List[OrderNote]:
        return (
            self.db.query(OrderNote)
            .filter(OrderNote.order_id == order_id)
            .order_by(OrderNote.created_at.asc(), OrderNote.id.asc())
            .all()
        )
