"""
Report Generation Service using Jinja2 templates.

Architecture Decision: Template Pattern
Allows users to customize reports without changing code.
"""

import datetime
from pathlib import Path
from typing import Dict, List, Optional
from uuid import UUID

from jinja2 import Environment, FileSystemLoader

from ballandchain.bootstrap import Storage
from ballandchain.domain.models import Customer, TimeEntry
from ballandchain.utils import format_duration, get_resource_path, utc_now

DEFAULT_TEMPLATE = "summary_report.txt"


class ReportService:
    """
    Generates per-task time summaries of a customer from its entries.
    """

    def __init__(self, storage: Storage, template_dir: Optional[Path] = None):
        """
        Initialize the report service.

        Args:
            storage: Opened storage root
            template_dir: Directory containing Jinja2 templates
        """
        if template_dir is None:
            template_dir = get_resource_path("resources/templates")

        self.storage = storage
        self.template_dir = Path(template_dir)

        # Setup Jinja2 environment
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            trim_blocks=True,
            lstrip_blocks=True
        )

        # Add custom filters
        self.env.filters['format_duration'] = format_duration
        self.env.filters['format_date'] = self._format_date

    @staticmethod
    def _format_date(value: datetime.date, fmt: str = "%Y-%m-%d") -> str:
        """Format date object"""
        return value.strftime(fmt)

    @staticmethod
    def day_seconds(entry: TimeEntry, now: Optional[datetime.datetime] = None) -> int:
        """
        Seconds of an entry inside the day bucket it is stored in.

        The start day file of a split entry ends at the finish instant, while
        the following days have their own fragments, so each file only counts
        up to the end of its own day.
        """
        end = entry.end_ts if entry.end_ts is not None else utc_now(now)
        next_midnight = datetime.datetime.combine(
            entry.start_ts.date() + datetime.timedelta(days=1), datetime.time(0, 0), tzinfo=datetime.timezone.utc
        )
        end = min(end, next_midnight)
        return max(0, int((end - entry.start_ts).total_seconds()))

    def summarize(self, customer: Customer, start_date: datetime.date, end_date: datetime.date,
                  now: Optional[datetime.datetime] = None) -> List[Dict]:
        """
        Aggregate tracked time per task.

        Returns:
            One row per task with entries in range: task, entries, seconds
        """
        entries = self.storage.entries.load_range_entries(customer, start_date, end_date)
        rows: Dict[UUID, Dict] = {}
        for entry in entries:
            row = rows.setdefault(entry.task.id, {"task": entry.task, "entries": 0, "seconds": 0})
            row["entries"] += 1
            row["seconds"] += self.day_seconds(entry, now)
        return sorted(rows.values(), key=lambda r: r["task"].name.lower())

    def generate_report(self, customer: Customer, start_date: datetime.date, end_date: datetime.date,
                        template_name: str = DEFAULT_TEMPLATE, output_file: Optional[Path] = None,
                        now: Optional[datetime.datetime] = None) -> str:
        """
        Generate a report for a date range.

        Args:
            customer: Customer to report on
            start_date: First day of the period
            end_date: Last day of the period, included
            template_name: Name of the template file
            output_file: Optional file path to save the report
            now: Instant open entries are counted up to

        Returns:
            The generated report as a string
        """
        rows = self.summarize(customer, start_date, end_date, now)
        template = self.env.get_template(template_name)
        content = template.render(
            customer=customer,
            start_date=start_date,
            end_date=end_date,
            rows=rows,
            total_seconds=sum(r["seconds"] for r in rows),
        )

        if output_file:
            output_file = Path(output_file)
            output_file.parent.mkdir(parents=True, exist_ok=True)
            output_file.write_text(content, encoding='utf-8')

        return content
