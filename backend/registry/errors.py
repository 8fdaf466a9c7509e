"""
Registry Errors
"""


class RegistryError(Exception):
    """Base class for participant registry failures."""


class NotFoundError(RegistryError):
    """Raised when a participant id does not resolve to a record."""

    def __init__(self, participant_id: str):
        self.participant_id = participant_id
        super().__init__(f"Participant {participant_id} not found")


class DuplicateParticipantError(RegistryError):
    """Raised when registering an email that already exists."""

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"Participant with email {email} already exists")


class InvalidQueryError(RegistryError):
    """Raised for unsupported list/sort parameters."""

    def __init__(self, parameter: str, message: str):
        self.parameter = parameter
        super().__init__(message)
