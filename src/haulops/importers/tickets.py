"""
Ticket Importer - Load haul tickets from spreadsheet exports.

Scale-house and dispatch exports use whatever headers the vendor picked,
so columns are matched fuzzily. Rows without a date or quantity are
skipped and counted.
"""

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Optional, Union

import pandas as pd

from ..db import Repository
from ..log import get_logger
from ..models.ticket import Ticket

logger = get_logger(__name__)


@dataclass
class ColumnMapping:
    """Mapping of CSV columns to Ticket fields."""

    ticket_number: Optional[str] = None
    ticket_date: Optional[str] = None

    # Rates and amounts
    pay_rate: Optional[str] = None
    bill_rate: Optional[str] = None
    quantity: Optional[str] = None
    unit_type: Optional[str] = None

    # Who hauled it
    partner_id: Optional[str] = None
    partner_name: Optional[str] = None
    driver_name: Optional[str] = None
    truck_number: Optional[str] = None

    material: Optional[str] = None
    project_id: Optional[str] = None
    customer_id: Optional[str] = None
    voided: Optional[str] = None


# Column name patterns for fuzzy matching
# Order matters: a column is claimed by the first field that matches it.
COLUMN_PATTERNS = {
    "ticket_number": [r"ticket[\s_-]?(number|no|num|#)", r"^ticket$", r"^ticket[\s_-]?id$"],
    "ticket_date": [r"ticket[\s_-]?date", r"^date$", r"haul[\s_-]?date", r"delivery[\s_-]?date", r"load[\s_-]?date"],

    # Rates before names so "hauler rate" is not taken as the partner
    "pay_rate": [r"pay[\s_-]?rate", r"^pay$", r"hauler[\s_-]?rate", r"driver[\s_-]?rate"],
    "bill_rate": [r"bill[\s_-]?rate", r"^bill$", r"customer[\s_-]?rate", r"^rate$"],
    "quantity": [r"^qty$", r"quantity", r"^loads$", r"^tons$", r"^units$"],
    "unit_type": [r"unit[\s_-]?type", r"^unit$", r"^uom$", r"billing[\s_-]?type"],

    "partner_id": [r"partner[\s_-]?id", r"hauler[\s_-]?id"],
    "partner_name": [r"partner[\s_-]?name", r"^partner$", r"hauler", r"sub[\s_-]?contractor", r"^carrier$"],
    "driver_name": [r"driver[\s_-]?name", r"^driver$"],
    "truck_number": [r"truck[\s_-]?(number|#|no)?", r"unit[\s_-]?(number|#|no)"],

    "material": [r"material", r"product", r"commodity"],
    "project_id": [r"project[\s_-]?id", r"^project$", r"job[\s_-]?(id|number)?"],
    "customer_id": [r"customer[\s_-]?id", r"^customer$"],
    "voided": [r"void"],
}

_TRUE_VALUES = {"true", "yes", "y", "1", "x", "void", "voided"}


@dataclass
class ImportResult:
    """Result of a ticket import."""

    tickets: list[Ticket] = field(default_factory=list)
    total_rows: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)
    started_at: datetime = field(default_factory=datetime.utcnow)
    completed_at: Optional[datetime] = None

    @property
    def imported(self) -> int:
        return len(self.tickets)

    def complete(self) -> "ImportResult":
        self.completed_at = datetime.utcnow()
        return self

    def to_dict(self) -> dict:
        return {
            "imported": self.imported,
            "total_rows": self.total_rows,
            "skipped": self.skipped,
            "errors": self.errors,
        }


class TicketImporter:
    """Imports haul tickets from CSV files."""

    def __init__(self, repository: Optional[Repository] = None):
        self.repository = repository

    def detect_columns(self, df: pd.DataFrame) -> ColumnMapping:
        """
        Auto-detect column mappings using fuzzy matching.

        Args:
            df: DataFrame with columns to analyze

        Returns:
            ColumnMapping with detected column names
        """
        mapping = ColumnMapping()
        columns_lower = {str(col).lower().strip(): col for col in df.columns}
        claimed: set[str] = set()

        for field_name, patterns in COLUMN_PATTERNS.items():
            for col_lower, col_original in columns_lower.items():
                if col_original in claimed:
                    continue
                if any(re.search(p, col_lower, re.IGNORECASE) for p in patterns):
                    setattr(mapping, field_name, col_original)
                    claimed.add(col_original)
                    break

        return mapping

    def _get_value(self, row: pd.Series, col_name: Optional[str]) -> str:
        """Safely get a value from a row."""
        if col_name is None or col_name not in row.index:
            return ""
        val = row[col_name]
        if pd.isna(val):
            return ""
        return str(val).strip()

    def _get_number(self, row: pd.Series, col_name: Optional[str]) -> Optional[float]:
        """Numbers like "$1,250.00" or "12"."""
        val = re.sub(r"[$,\s]", "", self._get_value(row, col_name))
        if not val:
            return None
        try:
            return float(val)
        except ValueError:
            return None

    def _parse_date(self, date_str: str) -> Optional[date]:
        """Parse the date formats seen in ticket exports."""
        if not date_str:
            return None

        formats = [
            "%Y-%m-%d",
            "%m/%d/%Y",
            "%m/%d/%y",
            "%Y-%m-%d %H:%M:%S",
            "%d-%b-%Y",
            "%Y%m%d",
        ]

        for fmt in formats:
            try:
                return datetime.strptime(date_str.strip(), fmt).date()
            except ValueError:
                continue
        return None

    def row_to_ticket(self, row: pd.Series, mapping: ColumnMapping) -> Optional[Ticket]:
        """
        Convert a CSV row to a Ticket.

        Returns:
            Ticket, or None when the row has no usable date or quantity
        """
        ticket_date = self._parse_date(self._get_value(row, mapping.ticket_date))
        quantity = self._get_number(row, mapping.quantity)
        if ticket_date is None or quantity is None:
            return None

        partner_name = self._get_value(row, mapping.partner_name) or None
        partner_id = self._get_value(row, mapping.partner_id) or None

        return Ticket(
            ticket_number=self._get_value(row, mapping.ticket_number) or None,
            ticket_date=ticket_date,
            partner_id=partner_id or partner_name,
            partner_name=partner_name,
            driver_name=self._get_value(row, mapping.driver_name) or None,
            truck_number=self._get_value(row, mapping.truck_number) or None,
            material=self._get_value(row, mapping.material) or None,
            unit_type=self._get_value(row, mapping.unit_type) or None,
            quantity=quantity,
            pay_rate=self._get_number(row, mapping.pay_rate) or 0.0,
            bill_rate=self._get_number(row, mapping.bill_rate) or 0.0,
            project_id=self._get_value(row, mapping.project_id) or None,
            customer_id=self._get_value(row, mapping.customer_id) or None,
            voided=self._get_value(row, mapping.voided).lower() in _TRUE_VALUES,
        )

    def import_csv(
        self,
        filepath: Union[str, Path],
        chunk_size: int = 1000,
        save_to_db: bool = True,
    ) -> ImportResult:
        """
        Import tickets from a CSV file.

        Args:
            filepath: Path to CSV file
            chunk_size: Rows to read at a time
            save_to_db: Save tickets through the repository

        Returns:
            ImportResult with imported tickets and skip/error counts
        """
        filepath = Path(filepath)
        if not filepath.exists():
            raise FileNotFoundError(f"CSV file not found: {filepath}")

        result = ImportResult()

        first_chunk = pd.read_csv(filepath, nrows=100, dtype=str)
        mapping = self.detect_columns(first_chunk)

        detected = {k: v for k, v in mapping.__dict__.items() if v is not None}
        logger.info("ticket_columns_detected", path=str(filepath), mapping=detected)

        if not mapping.ticket_date:
            result.errors.append("Could not detect ticket date column")
        if not mapping.quantity:
            result.errors.append("Could not detect quantity column")
        if result.errors:
            return result.complete()

        for chunk in pd.read_csv(filepath, chunksize=chunk_size, dtype=str):
            batch: list[Ticket] = []
            for _, row in chunk.iterrows():
                result.total_rows += 1
                try:
                    ticket = self.row_to_ticket(row, mapping)
                except ValueError as e:
                    result.errors.append(f"Row {result.total_rows}: {e}")
                    continue
                if ticket is None:
                    result.skipped += 1
                    continue
                batch.append(ticket)

            if save_to_db and self.repository and batch:
                self.repository.save_tickets(batch)
            result.tickets.extend(batch)

        logger.info("tickets_imported", path=str(filepath), **result.to_dict())
        return result.complete()

    def preview_csv(self, filepath: Union[str, Path], rows: int = 5) -> dict:
        """Show detected columns and a few sample rows."""
        df = pd.read_csv(Path(filepath), nrows=rows, dtype=str)
        mapping = self.detect_columns(df)

        return {
            "columns": list(df.columns),
            "mapping": {k: v for k, v in mapping.__dict__.items() if v is not None},
            "unmapped": [k for k, v in mapping.__dict__.items() if v is None],
            "sample_rows": df.head(rows).fillna("").to_dict(orient="records"),
        }
