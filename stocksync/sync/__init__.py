"""
Inventory Sync Module
"""
from .batch_writer import BatchWriter, MAX_BATCH_OPERATIONS
from .job import InventorySyncJob, SyncResult, SyncStatus, create_sync_job
from .sync_log import SyncLogEntry, append_sync_log, get_watermark, set_watermark

__all__ = [
    "BatchWriter",
    "MAX_BATCH_OPERATIONS",
    "InventorySyncJob",
    "SyncResult",
    "SyncStatus",
    "create_sync_job",
    "SyncLogEntry",
    "append_sync_log",
    "get_watermark",
    "set_watermark",
]
