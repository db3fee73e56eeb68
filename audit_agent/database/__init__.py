"""
Local persistence for preferences and run history.
"""

from .store import Database, get_database

__all__ = ["Database", "get_database"]
