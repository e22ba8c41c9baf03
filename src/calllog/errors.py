"""Exceptions raised by the record store and caught by the sync pipeline."""


class CallLogError(RuntimeError):
    """Base class for call-log pipeline errors."""


class DuplicateLogError(CallLogError):
    """Raised when a log row with the same log_hash already exists."""

    def __init__(self, log_hash: str):
        super().__init__(f"Log with hash {log_hash} already exists")
        self.log_hash = log_hash
