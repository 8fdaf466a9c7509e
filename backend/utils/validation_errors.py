"""
Structured Validation Error Utilities

Provides standardized error responses for validation failures.
Helps UI distinguish between bad input, unreadable uploads and connectivity issues.

Error Response Format:
{
    "error": "missing_parameter" | "invalid_parameter" | "read_error" | "not_found",
    "parameter": "expected_amount",
    "message": "expected_amount is required"
}
"""

from fastapi import HTTPException, status
from typing import Optional, Any


class ValidationErrorResponse:
    """Structured validation error response builder."""

    @staticmethod
    def missing_parameter(parameter: str, message: Optional[str] = None) -> dict:
        """
        Create a missing parameter error response.

        Args:
            parameter: Name of the missing parameter
            message: Optional custom message

        Returns:
            Structured error dict
        """
        return {
            "error": "missing_parameter",
            "parameter": parameter,
            "message": message or f"{parameter} is required"
        }

    @staticmethod
    def invalid_parameter(parameter: str, message: str, value: Optional[Any] = None) -> dict:
        """
        Create an invalid parameter error response.

        Args:
            parameter: Name of the invalid parameter
            message: Description of the validation error
            value: The invalid value (optional, for debugging)

        Returns:
            Structured error dict
        """
        response = {
            "error": "invalid_parameter",
            "parameter": parameter,
            "message": message
        }
        if value is not None:
            response["received_value"] = str(value)[:100]  # Truncate for safety
        return response

    @staticmethod
    def read_error(parameter: Optional[str], message: str) -> dict:
        """
        Create an unreadable-upload error response.

        Args:
            parameter: Upload field that could not be read
            message: Description of the read failure
        """
        return {
            "error": "read_error",
            "parameter": parameter,
            "message": message
        }

    @staticmethod
    def not_found(resource: str, resource_id: str) -> dict:
        return {
            "error": "not_found",
            "parameter": f"{resource}_id",
            "message": f"{resource.capitalize()} not found: {resource_id}"
        }


def raise_missing_parameter(
    parameter: str,
    message: Optional[str] = None,
    status_code: int = status.HTTP_400_BAD_REQUEST
):
    """
    Raise HTTPException with structured missing parameter error.

    Raises:
        HTTPException with 400 status and structured error body
    """
    raise HTTPException(
        status_code=status_code,
        detail=ValidationErrorResponse.missing_parameter(parameter, message)
    )


def raise_invalid_parameter(
    parameter: str,
    message: str,
    value: Optional[Any] = None,
    status_code: int = status.HTTP_400_BAD_REQUEST
):
    """
    Raise HTTPException with structured invalid parameter error.

    Raises:
        HTTPException with 400 status and structured error body
    """
    raise HTTPException(
        status_code=status_code,
        detail=ValidationErrorResponse.invalid_parameter(parameter, message, value)
    )


def raise_read_error(parameter: Optional[str], message: str):
    """
    Raise HTTPException for an upload that could not be read.

    Raises:
        HTTPException with 400 status and structured error body
    """
    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=ValidationErrorResponse.read_error(parameter, message)
    )


def raise_not_found(resource: str, resource_id: str):
    """Raise HTTPException with a structured 404 body."""
    raise HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=ValidationErrorResponse.not_found(resource, resource_id)
    )
