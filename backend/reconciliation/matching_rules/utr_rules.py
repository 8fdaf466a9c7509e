"""
UTR Matching Rules

Matches roster entries to statement transactions.

Match Key:
- reference_id (UTR), case-insensitive exact comparison; no fuzzy matching

Eligibility:
- CREDIT transactions only; refunds and outgoing transfers never verify

Amount Check:
- verified only when |transaction amount - expected amount| < 0.01
"""

import logging
from decimal import Decimal
from typing import Iterable, List, Optional

from reconciliation.models import (
    MatchResult,
    MatchStatus,
    RosterEntry,
    Transaction,
)

logger = logging.getLogger(__name__)


class UTRMatchingRules:
    """
    Matching rules for UPI statement reconciliation.

    If duplicate references slip past extraction, the first matching
    credit in statement order wins.
    """

    AMOUNT_TOLERANCE = Decimal("0.01")

    def credit_transactions(self, transactions: Iterable[Transaction]) -> List[Transaction]:
        """Keep only incoming-funds transactions."""
        return [t for t in transactions if t.is_credit]

    def find_match(
        self,
        entry: RosterEntry,
        credits: Iterable[Transaction]
    ) -> Optional[Transaction]:
        """First credit whose reference equals the entry's, ignoring case."""
        if not entry.reference_id:
            return None

        wanted = entry.reference_id.casefold()
        for transaction in credits:
            if transaction.reference_id.casefold() == wanted:
                return transaction
        return None

    def amount_matches(self, amount: Decimal, expected_amount: Decimal) -> bool:
        return abs(amount - expected_amount) < self.AMOUNT_TOLERANCE

    def evaluate(
        self,
        entry: RosterEntry,
        credits: List[Transaction],
        expected_amount: Decimal
    ) -> MatchResult:
        """
        Decide the verification outcome for one roster entry.

        Args:
            entry: Parsed roster entry
            credits: CREDIT transactions from the statement
            expected_amount: Event fee every registrant should have paid

        Returns:
            MatchResult with the matched transaction, if any
        """
        transaction = self.find_match(entry, credits)

        if transaction is None:
            logger.debug(f"No matching transaction found for UTR: {entry.reference_id}")
            return MatchResult(entry=entry, status=MatchStatus.NO_MATCH)

        if not self.amount_matches(transaction.amount, expected_amount):
            logger.info(
                f"Amount mismatch for UTR {transaction.reference_id}: "
                f"expected {expected_amount}, got {transaction.amount}"
            )
            return MatchResult(entry=entry, status=MatchStatus.AMOUNT_MISMATCH, transaction=transaction)

        return MatchResult(entry=entry, status=MatchStatus.VERIFIED, transaction=transaction)

    def reconcile(
        self,
        transactions: List[Transaction],
        roster: List[RosterEntry],
        expected_amount: Decimal
    ) -> List[MatchResult]:
        """
        Match every roster entry and set its verified flag.

        Returns:
            One MatchResult per roster entry, in roster order
        """
        credits = self.credit_transactions(transactions)
        logger.info(f"Matching {len(roster)} participants against {len(credits)} credit transactions")

        results = []
        for entry in roster:
            result = self.evaluate(entry, credits, expected_amount)
            entry.verified = result.verified
            results.append(result)

        return results


# Instantiate rules engine
utr_rules = UTRMatchingRules()
