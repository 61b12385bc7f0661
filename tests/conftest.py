"""
Pytest configuration and fixtures.
"""

import datetime
import sys
from pathlib import Path
from uuid import UUID

import pytest

# Add project root
sys.path.insert(0, str(Path(__file__).parent.parent))

from ballandchain.bootstrap import Storage
from ballandchain.domain.models import Customer, CustomerTasks, Task
from ballandchain.infra.repository import CustomerRepository, TaskRepository

CUSTOMER_ID = UUID("123e4567-e89b-12d3-a456-426614174000")
OTHER_CUSTOMER_ID = UUID("123e4567-e89b-12d3-a456-426614174001")
DEV_TASK_ID = UUID("9b2f6a3e-6d4c-4b7a-8f0e-2a1c3d4e5f60")
MEETING_TASK_ID = UUID("9b2f6a3e-6d4c-4b7a-8f0e-2a1c3d4e5f61")

UTC = datetime.timezone.utc


def utc(*args) -> datetime.datetime:
    """Shorthand for an aware UTC datetime"""
    return datetime.datetime(*args, tzinfo=UTC)


@pytest.fixture
def root(tmp_path: Path) -> Path:
    """An empty storage root"""
    return tmp_path / "ballandchain"


@pytest.fixture
def customer(root: Path) -> Customer:
    """A saved customer without tasks"""
    customer = Customer(id=CUSTOMER_ID, name="Test Customer")
    CustomerRepository(root).save(customer)
    return customer


@pytest.fixture
def customer_tasks(root: Path, customer: Customer) -> CustomerTasks:
    """The customer with two saved tasks"""
    customer_tasks = CustomerTasks(
        customer=customer,
        tasks=[
            Task(id=DEV_TASK_ID, customer=customer, external_id="PRJ-1", name="Development"),
            Task(id=MEETING_TASK_ID, customer=customer, name="Meetings"),
        ],
    )
    TaskRepository(root).save(customer_tasks)
    return customer_tasks


@pytest.fixture
def storage(root: Path, customer_tasks: CustomerTasks) -> Storage:
    """Storage opened on the populated root"""
    return Storage(root)


@pytest.fixture
def dev_task(storage: Storage) -> Task:
    return storage.registry.task(CUSTOMER_ID, DEV_TASK_ID)


@pytest.fixture
def meeting_task(storage: Storage) -> Task:
    return storage.registry.task(CUSTOMER_ID, MEETING_TASK_ID)
