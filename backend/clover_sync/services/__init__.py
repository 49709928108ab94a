# Services module

from clover_sync.services.order_translator import translate, to_minor_units
from clover_sync.services.order_sync_service import (
    SyncConfig,
    SyncSuccess,
    SyncFailure,
    sync_order,
    sync_order_once,
)

__all__ = [
    "translate",
    "to_minor_units",
    "SyncConfig",
    "SyncSuccess",
    "SyncFailure",
    "sync_order",
    "sync_order_once",
]
