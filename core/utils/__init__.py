"""
Utility modules for core functionality.

Modules:
- decorators: Utility decorators and context managers (timer)
- formatting: Human readable sizes and file names
"""

from .decorators import timer
from .formatting import derived_file_name, format_file_size, name_from_url

__all__ = ["timer", "format_file_size", "derived_file_name", "name_from_url"]
