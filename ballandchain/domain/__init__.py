"""Domain layer - Pure business entities and logic"""

from .models import Customer, CustomerTasks, Task, TimeEntry

__all__ = ["Customer", "CustomerTasks", "Task", "TimeEntry"]
