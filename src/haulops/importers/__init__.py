"""Data importers."""

from .tickets import ColumnMapping, ImportResult, TicketImporter

__all__ = ["ColumnMapping", "ImportResult", "TicketImporter"]
