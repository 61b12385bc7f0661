"""Services layer - Business logic"""

from .timer_service import TimerService
from .report_service import ReportService

__all__ = ["TimerService", "ReportService"]
