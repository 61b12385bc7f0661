"""
Wire records: the on-disk shapes of tasks and entries.

Architecture Decision: Why separate wire records?
In memory an entry points at its task, which points at its customer. Writing
that graph as-is would copy customer data into every file. On disk the
relations are collapsed to identities instead:

- a task stores its customer as a bare id,
- an entry stores its task as "<customerId>/<taskId>".

to_wire() collapses a domain model, record.from_wire(registry) resolves the
identities back into live objects. An unresolved identity is an error, never a
default.
"""

from datetime import datetime
from typing import Optional, Tuple, TYPE_CHECKING
from uuid import UUID

from pydantic import BaseModel, ValidationError

from ballandchain.domain.models import Customer, Task, TimeEntry
from ballandchain.infra.errors import MalformedError, NotFoundError

if TYPE_CHECKING:
    from ballandchain.infra.registry import ReferenceRegistry

TASK_REF_SEPARATOR = "/"


class TaskRecord(BaseModel):
    """One element of a customer's tasks.json"""

    id: UUID
    customer: UUID
    external_id: str = ""
    name: str

    @classmethod
    def to_wire(cls, task: Task) -> "TaskRecord":
        if task.customer is None:
            raise MalformedError(f"task {task.id} has no customer", operation="encode task")
        return cls(id=task.id, customer=task.customer.id, external_id=task.external_id, name=task.name)

    def from_wire(self, registry: Optional["ReferenceRegistry"] = None,
                  owner: Optional[Customer] = None) -> Task:
        """
        Resolve the customer id into a live Task.

        Args:
            registry: Registry used to look the customer up
            owner: The customer whose task list is being decoded, accepted
                   without a registry lookup
        """
        if self.customer.int == 0:
            raise MalformedError(f"task {self.id} has an invalid customer id", operation="decode task")
        if owner is not None and owner.id == self.customer:
            customer = owner
        elif registry is not None:
            try:
                customer = registry.customer(self.customer)
            except NotFoundError as e:
                raise MalformedError(
                    f"customer {self.customer} of task {self.id} does not exist",
                    operation="decode task",
                ) from e
        else:
            raise MalformedError(
                f"customer {self.customer} of task {self.id} cannot be resolved",
                operation="decode task",
            )
        return Task(id=self.id, customer=customer, external_id=self.external_id, name=self.name)


def format_task_ref(task: Task) -> str:
    """Compound "<customerId>/<taskId>" reference of a task"""
    if task is None:
        raise MalformedError("entry has no task", operation="encode entry")
    if task.customer is None:
        raise MalformedError(f"task {task.id} has no customer", operation="encode entry")
    return f"{task.customer.id}{TASK_REF_SEPARATOR}{task.id}"


def parse_task_ref(ref: str) -> Tuple[UUID, UUID]:
    """Split a compound task reference into (customer id, task id)"""
    customer_part, _, task_part = ref.rpartition(TASK_REF_SEPARATOR)
    try:
        task_id = UUID(task_part)
    except ValueError as e:
        raise MalformedError(f"could not parse task id of {ref!r}", operation="decode entry") from e
    try:
        customer_id = UUID(customer_part)
    except ValueError as e:
        raise MalformedError(f"could not parse customer id of {ref!r}", operation="decode entry") from e
    return customer_id, task_id


class EntryRecord(BaseModel):
    """One <entryId>.json file inside a day bucket"""

    id: UUID
    task: str
    comment: str = ""
    start_ts: datetime
    end_ts: Optional[datetime] = None

    @classmethod
    def to_wire(cls, entry: TimeEntry) -> "EntryRecord":
        return cls(
            id=entry.id,
            task=format_task_ref(entry.task),
            comment=entry.comment,
            start_ts=entry.start_ts,
            end_ts=entry.end_ts,
        )

    def from_wire(self, registry: "ReferenceRegistry") -> TimeEntry:
        customer_id, task_id = parse_task_ref(self.task)
        try:
            task = registry.task(customer_id, task_id)
        except NotFoundError as e:
            raise MalformedError(f"task reference {self.task!r} does not resolve", operation="decode entry") from e
        try:
            return TimeEntry(
                id=self.id,
                task=task,
                comment=self.comment,
                start_ts=self.start_ts,
                end_ts=self.end_ts,
            )
        except ValidationError as e:
            raise MalformedError(f"entry {self.id} is invalid", operation="decode entry") from e

    def to_json(self) -> str:
        # end_ts is left out while the entry is open
        return self.model_dump_json(indent=2, exclude_none=True)
