"""
Repository Pattern Implementation over a tree of JSON files.

Architecture Decision: Why Repository Pattern?
Separates data access logic from business logic. The services only ever talk
to these classes, so the on-disk layout (see ballandchain.infra.paths) can
change without touching them. Every repository is bound to one root directory.

All calls are blocking and nothing is locked: callers must serialize access to
a given root themselves.
"""

import datetime
import json
import logging
from pathlib import Path
from typing import List, Optional, TYPE_CHECKING
from uuid import UUID

from pydantic import ValidationError

from ballandchain.domain.models import Customer, CustomerTasks, Task, TimeEntry
from ballandchain.infra import paths
from ballandchain.infra.errors import IOFailureError, MalformedError, NotFoundError
from ballandchain.infra.records import EntryRecord, TaskRecord
from ballandchain.utils import day_end, day_start, utc_now

if TYPE_CHECKING:
    from ballandchain.infra.registry import ReferenceRegistry

logger = logging.getLogger(__name__)


def _ensure_dir(path: Path, operation: str) -> Path:
    """mkdir -p, never fails because the directory already exists"""
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise IOFailureError("could not create directory", operation=operation, path=path) from e
    return path


def _write_text(path: Path, content: str, operation: str) -> None:
    try:
        with open(path, 'w', encoding='utf-8') as f:
            f.write(content)
    except OSError as e:
        raise IOFailureError("could not write file", operation=operation, path=path) from e


def _read_text(path: Path, operation: str) -> str:
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return f.read()
    except FileNotFoundError as e:
        raise NotFoundError("file does not exist", operation=operation, path=path) from e
    except OSError as e:
        raise IOFailureError("could not read file", operation=operation, path=path) from e


def _list_dir(path: Path, operation: str) -> List[Path]:
    """Children of a directory, sorted by name"""
    try:
        return sorted(path.iterdir(), key=lambda p: p.name)
    except FileNotFoundError as e:
        raise NotFoundError("directory does not exist", operation=operation, path=path) from e
    except OSError as e:
        raise IOFailureError("could not read directory", operation=operation, path=path) from e


class CustomerRepository:
    """
    Handles Customer persistence: root/customers/<id>/metadata.json
    """

    def __init__(self, root: Path):
        self.root = Path(root)

    @staticmethod
    def create(name: str) -> Customer:
        """Create a customer with a fresh id. Nothing is written until save()"""
        return Customer(name=name)

    def save_path(self, customer: Customer) -> Path:
        return paths.customer_path(self.root, customer.id)

    def ensure_folder(self, customer: Customer) -> Path:
        """Create the customer folder if it does not exist and return it"""
        return _ensure_dir(self.save_path(customer), operation=f"ensure folder of customer {customer.id}")

    def save(self, customer: Customer) -> None:
        """Write the customer metadata, overwriting any previous version"""
        self.ensure_folder(customer)
        metadata_path = paths.customer_metadata_path(self.root, customer.id)
        _write_text(metadata_path, customer.model_dump_json(indent=2) + "\n",
                    operation=f"save customer {customer.id}")
        logger.debug(f"Saved customer {customer.id} to {metadata_path}")

    def load(self, customer_id: UUID) -> Customer:
        """Read a customer from disk"""
        operation = f"load customer {customer_id}"
        customer_path = paths.customer_path(self.root, customer_id)
        if not customer_path.is_dir():
            raise NotFoundError(f"customer {customer_id} does not exist", operation=operation, path=customer_path)

        metadata_path = paths.customer_metadata_path(self.root, customer_id)
        content = _read_text(metadata_path, operation=operation)
        try:
            customer = Customer.model_validate_json(content)
        except ValidationError as e:
            raise MalformedError("could not decode customer metadata", operation=operation, path=metadata_path) from e
        if customer.id != customer_id:
            raise MalformedError(
                f"metadata belongs to customer {customer.id}", operation=operation, path=metadata_path
            )
        return customer

    def load_all(self) -> List[Customer]:
        """
        Load every customer under the root.

        Each child of root/customers must be named by a customer id: a name
        that is not one is an error, it is never skipped.
        """
        customers_root = paths.customers_root(self.root)
        if not customers_root.exists():
            logger.info(f"No customers folder in {self.root}")
            return []

        children = _list_dir(customers_root, operation="load all customers")
        logger.info(f"Found {len(children)} customers in {customers_root}")
        customers = []
        for child in children:
            try:
                customer_id = UUID(child.name)
            except ValueError as e:
                raise MalformedError(
                    f"could not parse customer id {child.name!r}", operation="load all customers", path=child
                ) from e
            customers.append(self.load(customer_id))
        return customers


class TaskRepository:
    """
    Handles task lists: one root/customers/<id>/tasks.json per customer.

    Decoding a task resolves its customer id, either to the customer being
    loaded or through the injected registry.
    """

    def __init__(self, root: Path, registry: Optional["ReferenceRegistry"] = None):
        self.root = Path(root)
        self.registry = registry
        self.customer_repo = CustomerRepository(self.root)

    @staticmethod
    def create(customer: Customer, name: str, external_id: str = "") -> Task:
        """Create a task with a fresh id. Nothing is written until save()"""
        return Task(customer=customer, name=name, external_id=external_id)

    def save(self, customer_tasks: CustomerTasks) -> None:
        """Persist the whole task list of a customer, replacing the previous one"""
        customer = customer_tasks.customer
        operation = f"save tasks of customer {customer.id}"
        self.customer_repo.ensure_folder(customer)
        records = [TaskRecord.to_wire(task).model_dump(mode="json") for task in customer_tasks.tasks]
        tasks_path = paths.customer_tasks_path(self.root, customer.id)
        _write_text(tasks_path, json.dumps(records, indent=2, ensure_ascii=False) + "\n", operation=operation)
        logger.debug(f"Saved {len(records)} tasks to {tasks_path}")

    def load(self, customer: Customer) -> CustomerTasks:
        """Read the tasks of a customer. A missing file means no tasks yet"""
        operation = f"load tasks of customer {customer.id}"
        tasks_path = paths.customer_tasks_path(self.root, customer.id)
        if not tasks_path.exists():
            return CustomerTasks(customer=customer, tasks=[])

        content = _read_text(tasks_path, operation=operation)
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise MalformedError("could not decode tasks file", operation=operation, path=tasks_path) from e
        if not isinstance(data, list):
            raise MalformedError("tasks file is not a list", operation=operation, path=tasks_path)

        tasks = []
        for item in data:
            try:
                record = TaskRecord.model_validate(item)
            except ValidationError as e:
                raise MalformedError("could not decode task", operation=operation, path=tasks_path) from e
            try:
                tasks.append(record.from_wire(self.registry, owner=customer))
            except MalformedError as e:
                e.path = tasks_path
                raise
        return CustomerTasks(customer=customer, tasks=tasks)

    def entries_path(self, task: Task) -> Path:
        """Entries root of the task's customer"""
        if task.customer is None:
            raise MalformedError(f"task {task.id} has no customer", operation="locate task entries")
        return paths.task_entries_path(self.root, task.customer.id)

    def ensure_entries_folder(self, task: Task) -> Path:
        """Create the entries folder if it does not exist and return it"""
        return _ensure_dir(self.entries_path(task), operation=f"ensure entries folder of task {task.id}")


class EntryRepository:
    """
    Handles TimeEntry persistence in day buckets:
    root/tasks/<customerId>/<year>/<month>/<day>/<entryId>.json

    A logical entry spanning several days is stored as one file per day, all
    sharing the entry id (see finish()).
    """

    def __init__(self, root: Path, registry: "ReferenceRegistry",
                 task_repo: Optional[TaskRepository] = None):
        self.root = Path(root)
        self.registry = registry
        self.task_repo = task_repo or TaskRepository(self.root, registry)

    @staticmethod
    def create(task: Task, start: Optional[datetime.datetime] = None, comment: str = "") -> TimeEntry:
        """Create an open entry for the given task"""
        return TimeEntry(task=task, start_ts=utc_now(start), comment=comment)

    def save(self, entry: TimeEntry) -> Path:
        """Write the entry into the day bucket of its start, overwriting"""
        operation = f"save entry {entry.id}"
        record = EntryRecord.to_wire(entry)
        entries_root = self.task_repo.ensure_entries_folder(entry.task)
        start_day = entry.start_ts.date()
        _ensure_dir(paths.day_path(entries_root, start_day), operation=operation)
        entry_path = paths.entry_path(entries_root, start_day, entry.id)
        _write_text(entry_path, record.to_json() + "\n", operation=operation)
        logger.debug(f"Saved entry {entry.id} to {entry_path}")
        return entry_path

    def finish(self, entry: TimeEntry, now: Optional[datetime.datetime] = None) -> List[TimeEntry]:
        """
        Close an entry at `now` and persist it.

        If the entry started on an earlier day, it is split into one fragment
        per calendar day, each saved in its own day bucket:

        1. the start day fragment ends at 23:59:59 UTC and is saved,
        2. every following day up to now's day gets a fragment starting at
           00:00:00 UTC, ending at 23:59:59 UTC or at `now` on the last day,
        3. the original entry then ends at `now` and is saved again, so the
           start day file finally holds `now` as its end.

        Returns:
            The fragments written after the start day, in day order
        """
        now = utc_now(now)
        if now < entry.start_ts:
            raise MalformedError(f"cannot finish at {now}, before the start {entry.start_ts}",
                                 operation=f"finish entry {entry.id}")
        start_day = entry.start_ts.date()
        fragments: List[TimeEntry] = []

        if start_day != now.date():
            entry.end_ts = day_end(start_day)
            self.save(entry)

            # whole calendar days from the start day to now's day
            span = (now.date() - start_day).days
            logger.info(f"Splitting entry {entry.id} over {span + 1} days")
            for i in range(1, span + 1):
                day = start_day + datetime.timedelta(days=i)
                fragment = TimeEntry(
                    id=entry.id,
                    task=entry.task,
                    comment=entry.comment,
                    start_ts=day_start(day),
                    end_ts=now if i == span else day_end(day),
                )
                self.save(fragment)
                fragments.append(fragment)

        entry.end_ts = now
        self.save(entry)
        return fragments

    def entries_path(self, customer: Customer) -> Path:
        return paths.task_entries_path(self.root, customer.id)

    def decode(self, content: str, source: Optional[Path] = None) -> TimeEntry:
        """Decode one entry file, resolving its task through the registry"""
        try:
            record = EntryRecord.model_validate_json(content)
        except ValidationError as e:
            raise MalformedError("could not decode entry file", operation="decode entry", path=source) from e
        try:
            return record.from_wire(self.registry)
        except MalformedError as e:
            e.path = source
            raise

    def load(self, customer: Customer, day: datetime.date, entry_id: UUID) -> TimeEntry:
        """Load the fragment of one entry stored for the given day"""
        entry_path = paths.entry_path(self.entries_path(customer), day, entry_id)
        return self.decode(_read_text(entry_path, operation=f"load entry {entry_id}"), source=entry_path)

    def load_path_entries(self, entries_path: Path) -> List[TimeEntry]:
        """
        Load every entry file of a directory, sorted by start.

        Subdirectories are skipped. One file failing to decode fails the load.
        """
        entries = []
        for child in _list_dir(Path(entries_path), operation="load day entries"):
            if child.is_dir():
                continue
            content = _read_text(child, operation="load day entries")
            entries.append(self.decode(content, source=child))
        entries.sort(key=lambda e: e.start_ts)
        return entries

    def load_day_entries(self, customer: Customer, day: datetime.date) -> List[TimeEntry]:
        """Load all entries of a customer on the given date"""
        if isinstance(day, datetime.datetime):
            day = utc_now(day).date()
        return self.load_path_entries(paths.day_path(self.entries_path(customer), day))

    def load_latest_day_entries(self, customer: Customer) -> List[TimeEntry]:
        """Load all entries of a customer on the latest date available"""
        return self.load_path_entries(self.latest_day_path(customer))

    def latest_day_path(self, customer: Customer) -> Path:
        """Greatest year, then greatest month in it, then greatest day in that"""
        year_path = _latest_numeric_child(self.entries_path(customer), "year")
        month_path = _latest_numeric_child(year_path, "month")
        return _latest_numeric_child(month_path, "day")

    def load_current_entry(self, customer: Customer, now: Optional[datetime.datetime] = None) -> TimeEntry:
        """
        Load the most recently started entry of today.

        This does not check whether that entry is still open: use
        TimeEntry.is_open on the result.
        """
        today = utc_now(now).date()
        try:
            day_entries = self.load_day_entries(customer, today)
        except NotFoundError as e:
            raise NotFoundError(f"no entries today for customer {customer.id}",
                                operation="load current entry") from e
        if not day_entries:
            raise NotFoundError(f"no entries today for customer {customer.id}", operation="load current entry")
        return day_entries[-1]

    def load_range_entries(self, customer: Customer, start_day: datetime.date, end_day: datetime.date,
                           task: Optional[Task] = None) -> List[TimeEntry]:
        """
        Load the entries of a customer between two dates, both included.

        Days without a bucket are skipped. Optionally only the entries of one task.
        """
        entries_root = self.entries_path(customer)
        entries: List[TimeEntry] = []
        day = start_day
        while day <= end_day:
            day_dir = paths.day_path(entries_root, day)
            if day_dir.is_dir():
                entries.extend(self.load_path_entries(day_dir))
            day += datetime.timedelta(days=1)
        if task is not None:
            entries = [e for e in entries if e.task.id == task.id and e.task.customer.id == task.customer.id]
        entries.sort(key=lambda e: e.start_ts)
        return entries


def _latest_numeric_child(directory: Path, level: str) -> Path:
    """
    Subdirectory with the greatest numeric name.

    Plain files are ignored; a subdirectory with a non-numeric name is an error.
    """
    operation = f"find latest {level}"
    numbered = []
    for child in _list_dir(directory, operation=operation):
        if not child.is_dir():
            continue
        try:
            numbered.append((int(child.name), child))
        except ValueError as e:
            raise MalformedError(f"{level} folder {child.name!r} is not a number",
                                 operation=operation, path=child) from e
    if not numbered:
        raise NotFoundError(f"no valid {level} directories found", operation=operation, path=directory)
    return max(numbered, key=lambda item: item[0])[1]
