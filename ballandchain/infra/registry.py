"""
Reference Registry - resolves stored identities back into live records.

Entry files only reference their task as "<customerId>/<taskId>", so decoding
an entry needs every customer and task loaded beforehand. The registry is an
explicit object bound to one root: several independent roots can be open in
the same process (e.g. one per test).

It is read-only once built. Any change to customers or tasks on disk needs a
rebuild().
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional
from uuid import UUID

from ballandchain.domain.models import Customer, Task
from ballandchain.infra.errors import MalformedError, NotFoundError
from ballandchain.infra.repository import CustomerRepository, TaskRepository

logger = logging.getLogger(__name__)


class ReferenceRegistry:
    """
    In-memory index of one root:
    customer id -> Customer, (customer id, task id) -> Task.
    """

    def __init__(self, root: Path):
        self.root = Path(root)
        self._customers: Dict[UUID, Customer] = {}
        self._tasks: Dict[UUID, Dict[UUID, Task]] = {}

    @classmethod
    def build(cls, root: Path) -> "ReferenceRegistry":
        """
        Load every customer and every customer's task list under root.

        Fails on the first load, decode or resolution error; a half-built
        registry is never returned.
        """
        registry = cls(root)
        customer_repo = CustomerRepository(registry.root)
        task_repo = TaskRepository(registry.root, registry)

        customers = customer_repo.load_all()
        # Every customer must be known before any task list is decoded:
        # a task may be billed to a customer other than the list's owner
        for customer in customers:
            registry._customers[customer.id] = customer
            registry._tasks[customer.id] = {}

        for customer in customers:
            for task in task_repo.load(customer).tasks:
                # Indexed under the customer the task is billed to
                tasks = registry._tasks[task.customer.id]
                if task.id in tasks:
                    raise MalformedError(
                        f"task {task.id} appears twice for customer {task.customer.id}",
                        operation="build registry",
                    )
                tasks[task.id] = task

        task_count = sum(len(t) for t in registry._tasks.values())
        logger.info(f"Registry for {registry.root}: {len(registry._customers)} customers, {task_count} tasks")
        return registry

    def rebuild(self) -> None:
        """Reload everything from disk. On failure the current index is kept"""
        fresh = self.build(self.root)
        self._customers = fresh._customers
        self._tasks = fresh._tasks

    def customer(self, customer_id: UUID) -> Customer:
        """Get a customer by id"""
        try:
            return self._customers[customer_id]
        except KeyError:
            raise NotFoundError(f"customer {customer_id} is not registered", operation="resolve customer") from None

    def task(self, customer_id: UUID, task_id: UUID) -> Task:
        """Get a task by its (customer id, task id) pair"""
        customer_tasks = self._tasks.get(customer_id)
        if customer_tasks is None:
            raise NotFoundError(f"customer {customer_id} is not registered", operation="resolve task")
        try:
            return customer_tasks[task_id]
        except KeyError:
            raise NotFoundError(
                f"task {task_id} is not registered for customer {customer_id}", operation="resolve task"
            ) from None

    def customers(self) -> List[Customer]:
        """All customers, sorted by name"""
        return sorted(self._customers.values(), key=lambda c: (c.name.lower(), str(c.id)))

    def tasks(self, customer_id: UUID) -> List[Task]:
        """Tasks of a customer, in the order of its task list"""
        if customer_id not in self._tasks:
            raise NotFoundError(f"customer {customer_id} is not registered", operation="list tasks")
        return list(self._tasks[customer_id].values())

    def find_tasks(self, query: str, customer_id: Optional[UUID] = None) -> List[Task]:
        """
        Case-insensitive search over task names and external ids.

        Args:
            query: Substring to look for
            customer_id: Restrict the search to one customer

        Returns:
            Matching tasks sorted by name
        """
        q = query.lower()
        if customer_id is not None:
            candidates = self.tasks(customer_id)
        else:
            candidates = [t for tasks in self._tasks.values() for t in tasks.values()]
        matches = [t for t in candidates if q in t.name.lower() or q in t.external_id.lower()]
        return sorted(matches, key=lambda t: (t.name.lower(), str(t.id)))

    def __contains__(self, customer_id: object) -> bool:
        return customer_id in self._customers

    def __len__(self) -> int:
        return len(self._customers)
