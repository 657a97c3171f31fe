"""
Backing document database.
"""

from .connection import MongoConnection

__all__ = ["MongoConnection"]
