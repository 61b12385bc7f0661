"""Infrastructure layer - File storage and reference resolution"""

from .errors import StorageError, NotFoundError, MalformedError, IOFailureError
from .registry import ReferenceRegistry
from .repository import CustomerRepository, TaskRepository, EntryRepository

__all__ = [
    "StorageError", "NotFoundError", "MalformedError", "IOFailureError",
    "ReferenceRegistry", "CustomerRepository", "TaskRepository", "EntryRepository",
]
