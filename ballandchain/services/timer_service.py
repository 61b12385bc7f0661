"""
Timer Service - Core time tracking logic.

Keeps track of the one entry being worked on and drives its lifecycle:
created open when a task starts, closed (and split per day if needed) when it
stops. Knows nothing about the front-end.
"""

import datetime
import logging
from typing import List, Optional
from uuid import UUID

from ballandchain.bootstrap import Storage
from ballandchain.domain.models import Customer, Task, TimeEntry
from ballandchain.infra.errors import NotFoundError
from ballandchain.utils import format_duration, utc_now

logger = logging.getLogger(__name__)


class TimerService:
    """
    The time tracking engine. Manages state but knows nothing about the UI.
    """

    def __init__(self, storage: Storage):
        self.storage = storage
        self.current_entry: Optional[TimeEntry] = None

    @property
    def active_task(self) -> Optional[Task]:
        return self.current_entry.task if self.current_entry else None

    def start_task(self, task: Task, now: Optional[datetime.datetime] = None,
                   comment: str = "") -> TimeEntry:
        """
        Start tracking time for a task.

        The entry currently tracked, if any, is stopped first.
        """
        now = utc_now(now)
        if self.current_entry:
            self.stop_task(now)

        entry = self.storage.entries.create(task, now, comment=comment)
        self.storage.entries.save(entry)
        self.current_entry = entry
        logger.info(f"Started entry {entry.id} on task {task.name!r}")
        return entry

    def start_task_by_id(self, customer_id: UUID, task_id: UUID,
                         now: Optional[datetime.datetime] = None, comment: str = "") -> TimeEntry:
        """Start tracking a task looked up in the registry"""
        task = self.storage.registry.task(customer_id, task_id)
        return self.start_task(task, now, comment=comment)

    def stop_task(self, now: Optional[datetime.datetime] = None) -> Optional[TimeEntry]:
        """
        Stop tracking the current entry.

        Returns:
            The finished entry, or None when nothing was tracked
        """
        if not self.current_entry:
            return None

        entry = self.current_entry
        fragments: List[TimeEntry] = self.storage.entries.finish(entry, now)
        if fragments:
            logger.info(f"Entry {entry.id} spanned {len(fragments) + 1} days")
        logger.info(f"Stopped entry {entry.id} after {format_duration(entry.duration_seconds())}")
        self.current_entry = None
        return entry

    def resume(self, customer: Customer, now: Optional[datetime.datetime] = None) -> Optional[TimeEntry]:
        """
        Pick up today's entry of a customer if it is still open.

        The latest entry of the day may already be finished; only an open one
        becomes the current entry.
        """
        try:
            entry = self.storage.entries.load_current_entry(customer, now)
        except NotFoundError:
            logger.debug(f"Nothing to resume for customer {customer.id}")
            return None
        if not entry.is_open:
            return None
        self.current_entry = entry
        logger.info(f"Resumed entry {entry.id} on task {entry.task.name!r}")
        return entry

    def status(self, now: Optional[datetime.datetime] = None) -> str:
        """Human readable state, e.g. 'Code review: 01:02:03'"""
        if not self.current_entry:
            return "Idle"
        seconds = self.current_entry.duration_seconds(now)
        return f"{self.current_entry.task.name}: {format_duration(seconds)}"

    def is_tracking(self) -> bool:
        """Check if currently tracking time"""
        return self.current_entry is not None
