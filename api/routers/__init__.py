"""
API Routers for the Media Pipeline service
"""

from . import library, preview, system

__all__ = ["library", "preview", "system"]
