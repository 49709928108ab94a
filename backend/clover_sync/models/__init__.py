from clover_sync.models.clover import (
    CloverCredential,
    CloverSyncLog,
    OrderAnnotation,
    OrderNote,
)

__all__ = [
    "CloverCredential",
    "CloverSyncLog",
    "OrderAnnotation",
    "OrderNote",
]
