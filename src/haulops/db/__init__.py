"""Database layer for the HaulOps back office."""

from .repository import Base, Repository, apply_updates, date_range_start, get_repository

__all__ = [
    "Base",
    "Repository",
    "apply_updates",
    "date_range_start",
    "get_repository",
]
