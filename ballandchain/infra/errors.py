"""
Storage error taxonomy.

Every failure is reported with the operation, the path involved and the
chained underlying cause, so the message can be shown to a human verbatim.
Nothing is retried: errors propagate to the caller.
"""

from pathlib import Path
from typing import Optional, Union


class StorageError(Exception):
    """Base class for all storage failures"""

    def __init__(self, message: str, operation: Optional[str] = None,
                 path: Optional[Union[str, Path]] = None):
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.path = Path(path) if path is not None else None

    def __str__(self) -> str:
        text = self.message
        if self.operation:
            text = f"{self.operation}: {text}"
        if self.path is not None:
            text = f"{text} ({self.path})"
        if self.__cause__ is not None:
            text = f"{text}: {self.__cause__}"
        return text


class NotFoundError(StorageError):
    """A customer, task, entry or day bucket is absent where it was required"""


class MalformedError(StorageError):
    """Unparseable identity, broken record or unresolved reference"""


class IOFailureError(StorageError):
    """Directory or file creation, read or write failed"""
