"""
System API models.
"""

from typing import Any, Dict

from pydantic import BaseModel


class SystemStatus(BaseModel):
    """System status information"""

    status: str
    uptime: float
    memory_usage: Dict[str, float]
    library_items: int
    storage_usage: Dict[str, Any]
