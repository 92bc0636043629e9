"""
Sync Job Exceptions

Fatal conditions of an inventory sync run. Route handlers catch `SyncError`
at the boundary and answer with a generic 500 payload.
"""


class SyncError(Exception):
    """Base class for fatal sync run failures"""


class TransferError(SyncError):
    """Connection, authentication, timeout or missing file on the FTP source"""


class CSVParseError(SyncError):
    """The feed could not be read at all"""


class EmptyDatasetError(SyncError):
    """The feed parsed to zero rows"""

    def __init__(self, message: str = "CSV data is empty. No data to sync."):
        super().__init__(message)


class BatchCommitError(SyncError):
    """A write batch failed to commit; earlier batches stay applied"""

    def __init__(self, message: str, batch_number: int, committed_batches: int):
        super().__init__(message)
        self.batch_number = batch_number
        self.committed_batches = committed_batches
