"""
Tests for time entry persistence and loading.
"""

import datetime
import json
from pathlib import Path
from uuid import UUID

import pytest

from ballandchain.bootstrap import Storage
from ballandchain.domain.models import Customer, Task, TimeEntry
from ballandchain.infra.errors import MalformedError, NotFoundError
from ballandchain.infra.repository import EntryRepository

from conftest import CUSTOMER_ID, DEV_TASK_ID, utc


def _entries_root(root: Path) -> Path:
    return root / "tasks" / str(CUSTOMER_ID)


class TestCreate:
    def test_open_entry(self, dev_task: Task):
        entry = EntryRepository.create(dev_task, utc(2024, 5, 2, 9))
        assert entry.is_open
        assert entry.end_ts is None
        assert entry.task == dev_task
        assert entry.start_ts == utc(2024, 5, 2, 9)

    def test_fresh_identity(self, dev_task: Task):
        assert EntryRepository.create(dev_task).id != EntryRepository.create(dev_task).id

    def test_naive_start_is_utc(self, dev_task: Task):
        entry = EntryRepository.create(dev_task, datetime.datetime(2024, 5, 2, 9))
        assert entry.start_ts == utc(2024, 5, 2, 9)
        assert entry.start_ts.tzinfo is not None

    def test_end_before_start_rejected(self, dev_task: Task):
        with pytest.raises(ValueError):
            TimeEntry(task=dev_task, start_ts=utc(2024, 5, 2, 9), end_ts=utc(2024, 5, 2, 8))


class TestSave:
    def test_day_bucket_layout(self, root: Path, storage: Storage, dev_task: Task):
        entry = storage.entries.create(dev_task, utc(2024, 3, 5, 9, 15), comment="standup")
        path = storage.entries.save(entry)
        assert path == _entries_root(root) / "2024" / "3" / "5" / f"{entry.id}.json"

        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["id"] == str(entry.id)
        assert data["task"] == f"{CUSTOMER_ID}/{DEV_TASK_ID}"
        assert data["comment"] == "standup"
        assert "end_ts" not in data

    def test_overwrites(self, storage: Storage, dev_task: Task, customer: Customer):
        entry = storage.entries.create(dev_task, utc(2024, 3, 5, 9))
        storage.entries.save(entry)
        entry.comment = "changed"
        storage.entries.save(entry)

        entries = storage.entries.load_day_entries(customer, datetime.date(2024, 3, 5))
        assert len(entries) == 1
        assert entries[0].comment == "changed"

    def test_round_trip(self, storage: Storage, dev_task: Task, customer: Customer):
        entry = TimeEntry(task=dev_task, comment="review", start_ts=utc(2024, 3, 5, 9), end_ts=utc(2024, 3, 5, 10, 30))
        storage.entries.save(entry)
        assert storage.entries.load(customer, datetime.date(2024, 3, 5), entry.id) == entry

    def test_requires_task_customer(self, storage: Storage, dev_task: Task):
        orphan = Task.model_construct(id=dev_task.id, customer=None, external_id="", name="Orphan")
        entry = TimeEntry.model_construct(id=UUID(int=3), task=orphan, comment="", start_ts=utc(2024, 1, 1), end_ts=None)
        with pytest.raises(MalformedError):
            storage.entries.save(entry)


class TestLoadPathEntries:
    def test_sorted_by_start(self, storage: Storage, dev_task: Task, meeting_task: Task, customer: Customer):
        starts = [utc(2024, 3, 5, 15), utc(2024, 3, 5, 8), utc(2024, 3, 5, 12), utc(2024, 3, 5, 9, 30)]
        for i, start in enumerate(starts):
            task = dev_task if i % 2 else meeting_task
            storage.entries.save(storage.entries.create(task, start))

        entries = storage.entries.load_day_entries(customer, datetime.date(2024, 3, 5))
        assert [e.start_ts for e in entries] == sorted(starts)

    def test_skips_subdirectories(self, root: Path, storage: Storage, dev_task: Task, customer: Customer):
        storage.entries.save(storage.entries.create(dev_task, utc(2024, 3, 5, 9)))
        (_entries_root(root) / "2024" / "3" / "5" / "attachments").mkdir()
        assert len(storage.entries.load_day_entries(customer, datetime.date(2024, 3, 5))) == 1

    def test_one_broken_file_fails_all(self, root: Path, storage: Storage, dev_task: Task, customer: Customer):
        storage.entries.save(storage.entries.create(dev_task, utc(2024, 3, 5, 9)))
        day_dir = _entries_root(root) / "2024" / "3" / "5"
        (day_dir / "broken.json").write_text("{", encoding="utf-8")
        with pytest.raises(MalformedError):
            storage.entries.load_path_entries(day_dir)

    def test_unresolved_task_fails(self, root: Path, storage: Storage, dev_task: Task, customer: Customer):
        path = storage.entries.save(storage.entries.create(dev_task, utc(2024, 3, 5, 9)))
        data = json.loads(path.read_text(encoding="utf-8"))
        data["task"] = f"{CUSTOMER_ID}/{UUID(int=99)}"
        path.write_text(json.dumps(data), encoding="utf-8")
        with pytest.raises(MalformedError) as exc_info:
            storage.entries.load_day_entries(customer, datetime.date(2024, 3, 5))
        assert exc_info.value.path == path

    def test_missing_day(self, storage: Storage, customer: Customer):
        with pytest.raises(NotFoundError):
            storage.entries.load_day_entries(customer, datetime.date(2024, 3, 5))


class TestLoadLatestDayEntries:
    def _save_on(self, storage: Storage, task: Task, *days: datetime.date):
        for day in days:
            start = datetime.datetime.combine(day, datetime.time(10, 0), tzinfo=datetime.timezone.utc)
            storage.entries.save(storage.entries.create(task, start))

    def test_picks_greatest_year_month_day(self, storage: Storage, dev_task: Task, customer: Customer):
        self._save_on(
            storage, dev_task,
            datetime.date(2023, 12, 31),
            datetime.date(2024, 3, 15),
            datetime.date(2024, 11, 1),
            datetime.date(2024, 11, 30),
            datetime.date(2024, 11, 9),
        )
        entries = storage.entries.load_latest_day_entries(customer)
        assert [e.start_ts.date() for e in entries] == [datetime.date(2024, 11, 30)]
        assert storage.entries.latest_day_path(customer).parts[-3:] == ("2024", "11", "30")

    def test_no_entries_at_all(self, storage: Storage, customer: Customer):
        with pytest.raises(NotFoundError):
            storage.entries.load_latest_day_entries(customer)

    def test_empty_level(self, root: Path, storage: Storage, dev_task: Task, customer: Customer):
        self._save_on(storage, dev_task, datetime.date(2024, 11, 30))
        (_entries_root(root) / "2025").mkdir()
        with pytest.raises(NotFoundError):
            storage.entries.load_latest_day_entries(customer)

    def test_non_numeric_folder(self, root: Path, storage: Storage, dev_task: Task, customer: Customer):
        self._save_on(storage, dev_task, datetime.date(2024, 11, 30))
        (_entries_root(root) / "2024" / "archive").mkdir()
        with pytest.raises(MalformedError):
            storage.entries.load_latest_day_entries(customer)

    def test_plain_files_ignored(self, root: Path, storage: Storage, dev_task: Task, customer: Customer):
        self._save_on(storage, dev_task, datetime.date(2024, 11, 30))
        (_entries_root(root) / "notes.txt").write_text("x", encoding="utf-8")
        assert len(storage.entries.load_latest_day_entries(customer)) == 1


class TestLoadCurrentEntry:
    def test_latest_started_today(self, storage: Storage, dev_task: Task, meeting_task: Task, customer: Customer):
        first = storage.entries.create(dev_task, utc(2024, 3, 5, 8))
        storage.entries.save(first)
        second = storage.entries.create(meeting_task, utc(2024, 3, 5, 11))
        storage.entries.save(second)

        current = storage.entries.load_current_entry(customer, now=utc(2024, 3, 5, 12))
        assert current.id == second.id
        assert current.is_open

    def test_returns_finished_entry_too(self, storage: Storage, dev_task: Task, customer: Customer):
        entry = storage.entries.create(dev_task, utc(2024, 3, 5, 8))
        storage.entries.finish(entry, utc(2024, 3, 5, 9))

        current = storage.entries.load_current_entry(customer, now=utc(2024, 3, 5, 12))
        assert current.id == entry.id
        assert not current.is_open

    def test_nothing_today(self, storage: Storage, dev_task: Task, customer: Customer):
        storage.entries.save(storage.entries.create(dev_task, utc(2024, 3, 4, 8)))
        with pytest.raises(NotFoundError):
            storage.entries.load_current_entry(customer, now=utc(2024, 3, 5, 12))

    def test_empty_day_folder(self, root: Path, storage: Storage, customer: Customer):
        (_entries_root(root) / "2024" / "3" / "5").mkdir(parents=True)
        with pytest.raises(NotFoundError):
            storage.entries.load_current_entry(customer, now=utc(2024, 3, 5, 12))


class TestLoadRangeEntries:
    def test_range_and_task_filter(self, storage: Storage, dev_task: Task, meeting_task: Task, customer: Customer):
        storage.entries.save(storage.entries.create(dev_task, utc(2024, 3, 4, 9)))
        storage.entries.save(storage.entries.create(meeting_task, utc(2024, 3, 5, 9)))
        storage.entries.save(storage.entries.create(dev_task, utc(2024, 3, 6, 9)))
        storage.entries.save(storage.entries.create(dev_task, utc(2024, 3, 8, 9)))

        entries = storage.entries.load_range_entries(customer, datetime.date(2024, 3, 5), datetime.date(2024, 3, 8))
        assert [e.start_ts.day for e in entries] == [5, 6, 8]

        dev_only = storage.entries.load_range_entries(
            customer, datetime.date(2024, 3, 1), datetime.date(2024, 3, 31), task=dev_task
        )
        assert [e.start_ts.day for e in dev_only] == [4, 6, 8]

    def test_empty_range(self, storage: Storage, customer: Customer):
        assert storage.entries.load_range_entries(customer, datetime.date(2024, 3, 1), datetime.date(2024, 3, 2)) == []
