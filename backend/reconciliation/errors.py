"""
Reconciliation Errors

Exceptions raised by the payment reconciliation pipeline.

- InputReadError: statement or roster stream could not be read/decoded
- ValidationError: request inputs rejected before any extraction starts

A roster entry that matches no credit transaction is not an error; it is
simply left unverified.
"""

from typing import Optional


class ReconciliationError(Exception):
    """Base class for reconciliation pipeline failures."""


class InputReadError(ReconciliationError):
    """Raised when an uploaded statement or roster cannot be read."""

    def __init__(self, source: str, message: str):
        self.source = source
        super().__init__(f"Could not read {source}: {message}")


class ValidationError(ReconciliationError):
    """Raised when reconciliation inputs are missing or invalid."""

    def __init__(self, message: str, parameter: Optional[str] = None):
        self.parameter = parameter
        super().__init__(message)
