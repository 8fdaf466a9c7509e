"""
Utils Package

Provides utility modules for:
- validation_errors: Structured HTTP error bodies for bad input and unreadable uploads
"""

from .validation_errors import (
    ValidationErrorResponse,
    raise_missing_parameter,
    raise_invalid_parameter,
    raise_read_error,
    raise_not_found,
)

__all__ = [
    'ValidationErrorResponse',
    'raise_missing_parameter',
    'raise_invalid_parameter',
    'raise_read_error',
    'raise_not_found',
]
