from typing import Any, Optional


class BookmarkError(Exception):
    """Base class for bookmark errors"""


class MalformedRecordError(BookmarkError):
    """A serialized bookmark or group record is structurally invalid"""

    def __init__(self, message: str, record: Any = None):
        super().__init__(message)
        self.record = record


class ExternalOperationFailed(BookmarkError):
    """An editor or storage operation failed"""

    def __init__(self, operation: str, target: Optional[str] = None, cause: Optional[BaseException] = None):
        message = f"{operation} failed"
        if target:
            message += f" for {target}"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)
        self.operation = operation
        self.target = target
        self.cause = cause
