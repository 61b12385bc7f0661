"""Ball and Chain - file-backed time tracking for customers and tasks"""

__version__ = "0.1.0"
