"""
Domain errors raised by the signup, withdrawal and slot administration services.

Routes translate these into HTTP responses; store adapters never raise them
directly (see ``core.interfaces.entity_store`` for the storage-level errors).
"""


class SignupServiceError(Exception):
    """Base exception for slot and volunteer operations."""

    message = "Slot operation failed."

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class ValidationError(SignupServiceError):
    """Raised when required fields are missing or invalid (no store access happened)."""

    message = "Invalid request."


class NotFoundError(SignupServiceError):
    """Raised when a slot or volunteer record does not exist."""

    message = "Not found."


class SlotNotFoundError(NotFoundError):
    """Raised when the slot does not exist."""

    message = "Slot not found."


class VolunteerNotFoundError(NotFoundError):
    """Raised when the volunteer signup record does not exist."""

    message = "Volunteer signup not found."


class SlotFullError(SignupServiceError):
    """Raised when a slot has no remaining capacity or is held."""

    message = "This slot is already full."


class SlotConflictError(SignupServiceError):
    """Raised when a version-token conditioned write keeps losing to concurrent writers."""

    message = "Sorry, that slot was just taken. Please choose another."


class StorageUnavailableError(SignupServiceError):
    """Raised when the entity store failed transiently. Safe for the client to retry."""

    message = "Storage is temporarily unavailable. Please try again."
