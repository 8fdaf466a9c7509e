"""
Roster Parser

Parses the uploaded registrant list (CSV) into RosterEntry records.

Column headers vary between event forms, so each logical field is resolved
once per file from an ordered list of header synonyms:
- exact header match (case-insensitive) wins
- otherwise the first header containing a synonym
- otherwise the field is absent for every row

Spreadsheet exports often turn long numeric UTRs into scientific notation
(1.23456789E+14); those references are rebuilt into full digit strings.
"""

import csv
import io
import logging
import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import BinaryIO, Dict, List, Optional, Sequence, Tuple, Union

from reconciliation.errors import InputReadError
from reconciliation.models import RosterEntry

logger = logging.getLogger(__name__)


# ==================== CONSTANTS ====================

# Ordered header synonyms per logical roster field
ROSTER_COLUMNS: Dict[str, Tuple[str, ...]] = {
    "name": ("name", "participant name"),
    "email": ("email", "e-mail"),
    "phone": ("phone", "phone number", "mobile"),
    "reference": ("utr", "utr id", "transaction id", "reference"),
    "amount": ("amount", "payment", "fee"),
}

SCIENTIFIC_PATTERN = re.compile(r"^\+?(\d*)(?:\.(\d*))?E\+(\d+)$", re.IGNORECASE)
NON_AMOUNT_CHARS = re.compile(r"[^0-9.]")


# ==================== COLUMN RESOLUTION ====================

@dataclass(frozen=True)
class ColumnMapping:
    """Header index per logical field; None when the roster lacks the field."""
    name: Optional[int] = None
    email: Optional[int] = None
    phone: Optional[int] = None
    reference: Optional[int] = None
    amount: Optional[int] = None


def find_column(headers: Sequence[str], synonyms: Sequence[str]) -> Optional[int]:
    """Index of the header matching any synonym, exact matches first."""
    normalized = [h.strip().lower() for h in headers]
    wanted = [s.lower() for s in synonyms]

    for index, header in enumerate(normalized):
        if header and header in wanted:
            return index

    for index, header in enumerate(normalized):
        if header and any(s in header for s in wanted):
            return index

    return None


def resolve_columns(
    headers: Sequence[str],
    columns: Optional[Dict[str, Tuple[str, ...]]] = None
) -> ColumnMapping:
    """Resolve the header row into a fixed field-to-column mapping."""
    columns = columns or ROSTER_COLUMNS
    return ColumnMapping(**{
        field: find_column(headers, synonyms)
        for field, synonyms in columns.items()
    })


# ==================== CELL NORMALISATION ====================

def repair_scientific_reference(value: str) -> str:
    """
    Rebuild a reference mangled into scientific notation by a spreadsheet.

    The mantissa's significant digits are padded with zeros to the length
    implied by the exponent: "1.23456789E+14" -> "123456789000000".
    If that is not possible the value is rounded to an integer string, and
    if it is not numeric at all it is returned unchanged.
    """
    match = SCIENTIFIC_PATTERN.match(value)
    if match:
        integer_part, fraction, exponent = match.group(1), match.group(2) or "", int(match.group(3))
        digits = integer_part + fraction.rstrip("0")
        length = len(integer_part) + exponent

        stripped = digits.lstrip("0")
        length -= len(digits) - len(stripped)
        if stripped and len(stripped) <= length:
            repaired = stripped.ljust(length, "0")
            logger.info(f"Converted UTR from {value} to {repaired} (scientific notation)")
            return repaired

    try:
        repaired = format(Decimal(value).to_integral_value(rounding=ROUND_HALF_UP), "f")
    except InvalidOperation:
        logger.warning(f"Failed to convert UTR from scientific notation: {value}")
        return value

    logger.info(f"Fallback conversion of UTR from {value} to {repaired}")
    return repaired


def parse_roster_amount(value: Optional[str]) -> Decimal:
    """Parse an amount cell, ignoring currency symbols; 0 when unparseable."""
    cleaned = NON_AMOUNT_CHARS.sub("", value or "")
    if not cleaned:
        return Decimal("0")
    try:
        return Decimal(cleaned)
    except InvalidOperation:
        return Decimal("0")


# ==================== PARSER ====================

class RosterParser:
    """
    Parses roster CSV bytes into roster entries.
    """

    def __init__(self, columns: Optional[Dict[str, Tuple[str, ...]]] = None):
        self.columns = columns or ROSTER_COLUMNS

    def _read_text(self, data: Union[bytes, BinaryIO]) -> str:
        if hasattr(data, "read"):
            try:
                data = data.read()
            except OSError as e:
                raise InputReadError("roster", str(e)) from e

        if not isinstance(data, (bytes, bytearray)):
            raise InputReadError("roster", f"expected bytes, got {type(data).__name__}")

        try:
            return bytes(data).decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise InputReadError("roster", f"file is not valid UTF-8 text ({e})") from e

    def parse(self, data: Union[bytes, BinaryIO]) -> List[RosterEntry]:
        """
        Parse a roster file.

        Args:
            data: Raw CSV bytes (or a binary stream); first row is the header

        Returns:
            Entries in file order, numbered from 1

        Raises:
            InputReadError: If the file cannot be read or is not valid CSV
        """
        text = self._read_text(data)

        try:
            rows = list(csv.reader(io.StringIO(text)))
        except csv.Error as e:
            raise InputReadError("roster", f"malformed CSV ({e})") from e

        if not rows:
            logger.info("Roster file is empty")
            return []

        headers = [h.strip() for h in rows[0]]
        mapping = resolve_columns(headers, self.columns)
        logger.info(f"Roster headers: {headers}")
        logger.debug(f"Roster column mapping: {mapping}")

        entries: List[RosterEntry] = []
        for row in rows[1:]:
            entry = self._parse_row(row, mapping, len(entries) + 1)
            if entry is not None:
                entries.append(entry)

        logger.info(f"Parsed {len(entries)} participants from roster")
        return entries

    def _parse_row(
        self,
        row: Sequence[str],
        mapping: ColumnMapping,
        sequence_id: int
    ) -> Optional[RosterEntry]:
        def cell(index: Optional[int]) -> str:
            if index is None or index >= len(row):
                return ""
            return (row[index] or "").strip()

        name = cell(mapping.name)
        email = cell(mapping.email)
        phone = cell(mapping.phone)

        reference_id = cell(mapping.reference)
        if reference_id and "E+" in reference_id.upper():
            reference_id = repair_scientific_reference(reference_id)

        if not (name or email or phone or reference_id):
            return None

        return RosterEntry(
            sequence_id=sequence_id,
            name=name or None,
            email=email or None,
            phone=phone or None,
            reference_id=reference_id or None,
            amount=parse_roster_amount(cell(mapping.amount)),
        )


roster_parser = RosterParser()
