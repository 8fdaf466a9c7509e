"""
Reconciliation Engine Module

Provides event payment verification:
- Transaction extraction from payment-app statements (primary + fallback strategies)
- Roster parsing with column synonyms and UTR repair
- UTR + amount matching against CREDIT transactions
- Idempotent upsert of outcomes into the participant registry
- Audit trail for all operations
"""

from reconciliation.models import (
    Transaction,
    TransactionDirection,
    RosterEntry,
    MatchStatus,
    MatchResult,
)
from reconciliation.errors import ReconciliationError, InputReadError, ValidationError
from reconciliation.extraction import StatementExtractor, read_statement_text
from reconciliation.roster_parser import RosterParser, roster_parser
from reconciliation.matching_rules.utr_rules import UTRMatchingRules, utr_rules
from reconciliation.services.reconciliation_service import ReconciliationService
from reconciliation.endpoints.reconciliation_api import router as reconciliation_router

__all__ = [
    # Models
    'Transaction',
    'TransactionDirection',
    'RosterEntry',
    'MatchStatus',
    'MatchResult',
    # Errors
    'ReconciliationError',
    'InputReadError',
    'ValidationError',
    # Extraction and parsing
    'StatementExtractor',
    'read_statement_text',
    'RosterParser',
    'roster_parser',
    # Matching Rules
    'UTRMatchingRules',
    'utr_rules',
    # Service
    'ReconciliationService',
    # Router
    'reconciliation_router'
]
