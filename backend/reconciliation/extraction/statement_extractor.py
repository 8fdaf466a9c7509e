"""
Statement Transaction Extractor

Turns the text of a UPI payment-app statement into discrete transactions.

Statement text dumped from a PDF is inconsistent, so extraction runs an
ordered list of strategies and keeps the output of the first one that finds
anything:

1. UtrPatternStrategy - date ... UTR No. <ref> ... CREDIT/DEBIT ... ₹<amount>
2. UtrProximityStrategy - every "UTR No." marker, paired with the nearest
   line carrying a direction keyword and an amount

Reference IDs are unique within one extraction: the first occurrence wins and
later repeats of the same reference are dropped.
"""

import logging
import re
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Sequence, Set, Tuple, Union

from reconciliation.errors import InputReadError
from reconciliation.models import Transaction, TransactionDirection

logger = logging.getLogger(__name__)


# ==================== PATTERNS ====================

AMOUNT_TOKEN = r"(?:₹|Rs\.?)\s*(\d[\d,]*(?:\.\d+)?)"

TRANSACTION_PATTERN = re.compile(
    r"(\d{1,2}[-/]\d{1,2}[-/]\d{2,4})"
    r"[\s\S]{0,150}?UTR No\.\s+([A-Za-z0-9]+)"
    r"[\s\S]{0,100}?(CREDIT|DEBIT)"
    r"[\s\S]{0,100}?" + AMOUNT_TOKEN,
    re.IGNORECASE,
)

REFERENCE_PATTERN = re.compile(r"UTR No\.\s+([A-Za-z0-9]+)", re.IGNORECASE)
CREDIT_PATTERN = re.compile(r"CREDIT", re.IGNORECASE)
DIRECTION_PATTERN = re.compile(r"CREDIT|DEBIT", re.IGNORECASE)
AMOUNT_PATTERN = re.compile(AMOUNT_TOKEN, re.IGNORECASE)


def parse_amount(token: str) -> Optional[Decimal]:
    """Parse a statement amount token, dropping thousands separators."""
    try:
        amount = Decimal(token.replace(",", ""))
    except InvalidOperation:
        return None
    if not amount.is_finite() or amount < 0:
        return None
    return amount


# ==================== STRATEGIES ====================

class ExtractionStrategy:
    """
    Base class for statement extraction strategies.

    Subclasses return transactions in statement order with references
    already de-duplicated.
    """
    name = "base"

    def extract(self, text: str) -> List[Transaction]:
        raise NotImplementedError


class UtrPatternStrategy(ExtractionStrategy):
    """
    Primary strategy: one regex spanning date, UTR, direction and amount.
    """
    name = "primary"

    def extract(self, text: str) -> List[Transaction]:
        seen: Set[str] = set()
        transactions = []

        for match in TRANSACTION_PATTERN.finditer(text):
            date_str, reference_id, direction, amount_token = match.groups()
            reference_id = reference_id.strip()

            amount = parse_amount(amount_token)
            if amount is None:
                logger.debug(f"Skipping UTR {reference_id}: unparseable amount {amount_token!r}")
                continue

            if reference_id in seen:
                logger.debug(f"Skipping duplicate UTR {reference_id}")
                continue
            seen.add(reference_id)

            transactions.append(Transaction(
                date=date_str.strip(),
                reference_id=reference_id,
                amount=amount,
                direction=TransactionDirection(direction.upper()),
                strategy=self.name,
            ))

        return transactions


class UtrProximityStrategy(ExtractionStrategy):
    """
    Fallback strategy for statements the primary pattern cannot span.

    Each "UTR No." marker is paired with the nearest line (fewer than
    LINE_WINDOW lines away) holding both a direction keyword and an amount.
    Markers with no such line are skipped. The statement date is not
    recoverable here, so the run date is used instead.
    """
    name = "fallback"
    LINE_WINDOW = 5

    def __init__(self, run_date: Optional[date] = None):
        self.run_date = run_date

    def _transaction_lines(self, lines: Sequence[str]) -> List[Tuple[int, TransactionDirection, Decimal]]:
        candidates = []
        for index, line in enumerate(lines):
            if not DIRECTION_PATTERN.search(line):
                continue
            amount_match = AMOUNT_PATTERN.search(line)
            if not amount_match:
                continue
            amount = parse_amount(amount_match.group(1))
            if amount is None:
                continue
            direction = (
                TransactionDirection.CREDIT if CREDIT_PATTERN.search(line)
                else TransactionDirection.DEBIT
            )
            candidates.append((index, direction, amount))
        return candidates

    def extract(self, text: str) -> List[Transaction]:
        lines = text.split("\n")
        candidates = self._transaction_lines(lines)
        run_date = (self.run_date or date.today()).isoformat()

        logger.info(
            f"Fallback extraction: {len(REFERENCE_PATTERN.findall(text))} UTR markers, "
            f"{len(candidates)} transaction lines"
        )

        seen: Set[str] = set()
        transactions = []

        for match in REFERENCE_PATTERN.finditer(text):
            reference_id = match.group(1).strip()
            if reference_id in seen:
                continue
            seen.add(reference_id)

            marker_line = text.count("\n", 0, match.start())
            nearby = [
                c for c in candidates
                if abs(c[0] - marker_line) < self.LINE_WINDOW
            ]
            if not nearby:
                logger.debug(f"No transaction line near UTR {reference_id}")
                continue

            _, direction, amount = min(nearby, key=lambda c: (abs(c[0] - marker_line), c[0]))
            transactions.append(Transaction(
                date=run_date,
                reference_id=reference_id,
                amount=amount,
                direction=direction,
                strategy=self.name,
            ))

        return transactions


# ==================== EXTRACTOR ====================

class StatementExtractor:
    """
    Runs extraction strategies in order until one yields transactions.
    """

    def __init__(self, strategies: Optional[List[ExtractionStrategy]] = None):
        self.strategies = strategies or [UtrPatternStrategy(), UtrProximityStrategy()]

    def extract(self, text: Union[str, bytes]) -> List[Transaction]:
        """
        Extract transactions from statement text.

        Args:
            text: Full statement text (bytes are decoded as UTF-8)

        Returns:
            Transactions in statement order; empty if nothing was found

        Raises:
            InputReadError: If the text cannot be decoded
        """
        transactions, _ = self.extract_with_strategy(text)
        return transactions

    def extract_with_strategy(self, text: Union[str, bytes]) -> Tuple[List[Transaction], Optional[str]]:
        """Extract transactions and report which strategy produced them."""
        if isinstance(text, bytes):
            try:
                text = text.decode("utf-8")
            except UnicodeDecodeError as e:
                raise InputReadError("statement", str(e)) from e
        if not isinstance(text, str):
            raise InputReadError("statement", f"expected text, got {type(text).__name__}")

        logger.info(f"Statement text length: {len(text)}")

        for strategy in self.strategies:
            transactions = strategy.extract(text)
            if transactions:
                logger.info(f"Extracted {len(transactions)} unique transactions ({strategy.name})")
                return transactions, strategy.name
            logger.info(f"No transactions found with {strategy.name} strategy")

        return [], None


statement_extractor = StatementExtractor()
