"""
Domain Models using Pydantic for validation.

Architecture Decision: Why Pydantic?
Pydantic provides runtime data validation, ensuring data integrity when loading
records back from the JSON files on disk. These are the in-memory shapes: they
hold live references (Entry -> Task -> Customer). The on-disk shapes with
identity-only foreign keys live in the infra layer (see ballandchain.infra.records).
"""

from datetime import datetime
from typing import Optional, List
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator, model_validator

from ballandchain.utils import to_utc, utc_now


class Customer(BaseModel):
    """
    Someone time is billed to.

    Owns a folder named by its id; immutable once saved except via full re-save.
    """

    id: UUID = Field(default_factory=uuid4)
    name: str


class Task(BaseModel):
    """
    A (potentially) recurring task for a customer.

    Examples: "Code review", "Sprint planning"
    """

    id: UUID = Field(default_factory=uuid4)
    customer: Customer
    external_id: str = ""  # think jira PRJ-#### or similar
    name: str


class CustomerTasks(BaseModel):
    """
    The task list of one customer, persisted as a single record.

    This is the unit of update: there is no per-task file.
    """

    customer: Customer
    tasks: List[Task] = Field(default_factory=list)

    def get(self, task_id: UUID) -> Optional[Task]:
        """Get a task of this list by id"""
        return next((t for t in self.tasks if t.id == task_id), None)


class TimeEntry(BaseModel):
    """
    Represents a unit of work on a task.

    An entry is created open (no end_ts) when work starts, and is closed
    exactly once by EntryRepository.finish. All instants are kept in UTC.
    """

    id: UUID = Field(default_factory=uuid4)
    task: Task
    comment: str = ""
    start_ts: datetime
    end_ts: Optional[datetime] = None

    @field_validator("start_ts", "end_ts")
    @classmethod
    def _normalize_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return to_utc(value) if value is not None else None

    @model_validator(mode="after")
    def _check_range(self) -> "TimeEntry":
        if self.end_ts is not None and self.end_ts < self.start_ts:
            raise ValueError(f"entry {self.id} ends ({self.end_ts}) before it starts ({self.start_ts})")
        return self

    @property
    def is_open(self) -> bool:
        """True while work on this entry is still in progress"""
        return self.end_ts is None

    def duration_seconds(self, now: Optional[datetime] = None) -> int:
        """Elapsed seconds, counting open entries up to now"""
        end = self.end_ts
        if end is None:
            end = utc_now(now)
        return max(0, int((end - self.start_ts).total_seconds()))
