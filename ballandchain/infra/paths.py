"""
Path scheme for the on-disk layout.

    root/
      customers/<customerId>/metadata.json
      customers/<customerId>/tasks.json
      tasks/<customerId>/<year>/<month>/<day>/<entryId>.json

Pure functions: no I/O, no failure. Creating directories is up to the stores.
"""

import datetime
from pathlib import Path
from typing import Union
from uuid import UUID

CUSTOMERS_DIR = "customers"
TASKS_DIR = "tasks"
METADATA_FILE = "metadata.json"
TASKS_FILE = "tasks.json"
ENTRY_SUFFIX = ".json"

PathLike = Union[str, Path]


def customers_root(root: PathLike) -> Path:
    return Path(root) / CUSTOMERS_DIR


def customer_path(root: PathLike, customer_id: UUID) -> Path:
    """root/customers/<customerId>"""
    return customers_root(root) / str(customer_id)


def customer_metadata_path(root: PathLike, customer_id: UUID) -> Path:
    return customer_path(root, customer_id) / METADATA_FILE


def customer_tasks_path(root: PathLike, customer_id: UUID) -> Path:
    return customer_path(root, customer_id) / TASKS_FILE


def task_entries_path(root: PathLike, customer_id: UUID) -> Path:
    """root/tasks/<customerId>, the entries root of every task of a customer"""
    return Path(root) / TASKS_DIR / str(customer_id)


def day_path(entries_root: PathLike, day: datetime.date) -> Path:
    """<entriesRoot>/<year>/<month>/<day>, without zero padding"""
    return Path(entries_root) / str(day.year) / str(day.month) / str(day.day)


def entry_path(entries_root: PathLike, day: datetime.date, entry_id: UUID) -> Path:
    return day_path(entries_root, day) / f"{entry_id}{ENTRY_SUFFIX}"
