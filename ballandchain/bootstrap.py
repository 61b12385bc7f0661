"""
Process wiring: settings -> logging -> registry -> repositories.

Nothing here is global. open_storage() returns a Storage bundle that callers
pass around explicitly, so tests can open as many roots as they like.
"""

import logging
from pathlib import Path
from typing import Optional, Union

from ballandchain.infra.config import Settings, get_settings
from ballandchain.infra.registry import ReferenceRegistry
from ballandchain.infra.repository import CustomerRepository, EntryRepository, TaskRepository

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: Union[str, int] = "INFO") -> None:
    """Send ballandchain logs to stderr at the given level"""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("ballandchain").setLevel(level)


class Storage:
    """
    Everything needed to work on one root: the registry and the repositories
    sharing it.
    """

    def __init__(self, root: Path):
        self.root = Path(root)
        self.registry = ReferenceRegistry.build(self.root)
        self.customers = CustomerRepository(self.root)
        self.tasks = TaskRepository(self.root, self.registry)
        self.entries = EntryRepository(self.root, self.registry, task_repo=self.tasks)

    def refresh(self) -> None:
        """Rebuild the registry after customers or tasks changed on disk"""
        self.registry.rebuild()


def open_storage(settings: Optional[Settings] = None, root: Optional[Path] = None) -> Storage:
    """
    Open the storage root.

    Args:
        settings: Settings to use, the global ones by default
        root: Explicit root, overriding the settings
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)
    root = Path(root) if root is not None else settings.get_root()
    logger.info(f"Opening storage at {root}")
    return Storage(root)
