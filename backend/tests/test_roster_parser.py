"""
Unit Tests for the Roster Parser

Tests column synonym resolution, UTR repair from scientific notation,
blank-row handling and read failures.

Run with: pytest tests/test_roster_parser.py -v
"""

import io
from decimal import Decimal

import pytest

from reconciliation.errors import InputReadError
from reconciliation.models import NO_EMAIL, NO_NAME, NO_REFERENCE
from reconciliation.roster_parser import (
    RosterParser,
    find_column,
    parse_roster_amount,
    repair_scientific_reference,
    resolve_columns,
)


@pytest.fixture
def parser():
    return RosterParser()


class TestColumnResolution:

    def test_exact_match_beats_substring(self):
        headers = ["Payment UTR Screenshot", "UTR"]

        assert find_column(headers, ("utr", "reference")) == 1

    def test_substring_match(self):
        assert find_column(["Full Name", "Email Address"], ("email",)) == 1

    def test_missing_column(self):
        assert find_column(["Name"], ("phone", "mobile")) is None

    def test_resolve_form_headers(self):
        mapping = resolve_columns([
            "Participant Name", "E-mail Address", "Mobile Number", "Transaction ID", "Fee Paid"
        ])

        assert mapping.name == 0
        assert mapping.email == 1
        assert mapping.phone == 2
        assert mapping.reference == 3
        assert mapping.amount == 4


class TestScientificRepair:

    def test_rebuilds_digits(self):
        assert repair_scientific_reference("1.23456789E+14") == "123456789000000"

    def test_lowercase_exponent(self):
        assert repair_scientific_reference("4.12e+11") == "412000000000"

    def test_integer_mantissa(self):
        assert repair_scientific_reference("7E+3") == "7000"

    def test_non_numeric_is_unchanged(self):
        assert repair_scientific_reference("UTRE+12X") == "UTRE+12X"


class TestParseRosterAmount:

    def test_currency_symbol_ignored(self):
        assert parse_roster_amount("₹1,500.00") == Decimal("1500.00")

    def test_blank_is_zero(self):
        assert parse_roster_amount("") == Decimal("0")
        assert parse_roster_amount(None) == Decimal("0")

    def test_unparseable_is_zero(self):
        assert parse_roster_amount("1.2.3") == Decimal("0")


class TestRosterParser:

    def test_parses_rows_in_order(self, parser):
        data = (
            "Name,Email,Phone,UTR,Amount\n"
            "Asha Rao,asha@example.com,9876543210,412345678901,500\n"
            "Vikram Shah,vikram@example.com,9123456780,412345678903,500\n"
        ).encode("utf-8")

        entries = parser.parse(data)

        assert [e.sequence_id for e in entries] == [1, 2]
        assert entries[0].name == "Asha Rao"
        assert entries[0].email == "asha@example.com"
        assert entries[0].phone == "9876543210"
        assert entries[0].reference_id == "412345678901"
        assert entries[0].amount == Decimal("500")
        assert entries[0].verified is False

    def test_repairs_scientific_utr(self, parser):
        data = b"Name,Email,UTR ID\nAsha,asha@example.com,1.23456789E+14\n"

        entries = parser.parse(data)

        assert entries[0].reference_id == "123456789000000"

    def test_blank_rows_skipped_and_ids_contiguous(self, parser):
        data = (
            "Name,Email,Phone,UTR\n"
            "Asha,asha@example.com,111,UTR1\n"
            " , , , \n"
            "\n"
            "Vikram,vikram@example.com,222,UTR2\n"
        ).encode("utf-8")

        entries = parser.parse(data)

        assert [(e.sequence_id, e.name) for e in entries] == [(1, "Asha"), (2, "Vikram")]

    def test_missing_cells_use_placeholders(self, parser):
        data = b"Name,Email,UTR\n,,\n,bob@example.com\n"

        entries = parser.parse(data)

        assert len(entries) == 1
        entry = entries[0]
        assert entry.name is None
        assert entry.reference_id is None
        rendered = entry.to_dict()
        assert rendered["name"] == NO_NAME
        assert rendered["reference_id"] == NO_REFERENCE

    def test_roster_without_email_column(self, parser):
        entries = parser.parse(b"Name,UTR\nAsha,UTR1\n")

        assert entries[0].email is None
        assert entries[0].display_email == NO_EMAIL

    def test_cells_are_trimmed(self, parser):
        entries = parser.parse(b"Name,Email,UTR\n  Asha  , asha@example.com ,  UTR1 \n")

        assert entries[0].name == "Asha"
        assert entries[0].email == "asha@example.com"
        assert entries[0].reference_id == "UTR1"

    def test_utf8_bom_header(self, parser):
        data = b"\xef\xbb\xbfName,Email\nAsha,asha@example.com\n"

        entries = parser.parse(data)

        assert entries[0].name == "Asha"

    def test_accepts_binary_stream(self, parser):
        entries = parser.parse(io.BytesIO(b"Name,Email\nAsha,asha@example.com\n"))

        assert entries[0].email == "asha@example.com"

    def test_empty_file(self, parser):
        assert parser.parse(b"") == []

    def test_header_only(self, parser):
        assert parser.parse(b"Name,Email,UTR\n") == []

    def test_invalid_utf8_raises_read_error(self, parser):
        with pytest.raises(InputReadError) as exc_info:
            parser.parse(b"Name\n\xff\xfe\xfa\n")

        assert exc_info.value.source == "roster"

    def test_non_bytes_raises_read_error(self, parser):
        with pytest.raises(InputReadError):
            parser.parse("Name,Email\n")
