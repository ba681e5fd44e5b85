"""Shared exceptions module."""

from typing import Any, Optional

from pydantic import ValidationError


class ContentScopeException(Exception):
    """Base exception for the content access layer."""

    pass


class PermissionException(ContentScopeException):
    """Raised when the caller's grants do not allow an action."""

    def __init__(
        self,
        message: Optional[str] = "User does not have the right to perform this action",
    ):
        """Create a new PermissionException instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        self.message = message
        super().__init__(self.message)


class NotFoundException(ContentScopeException):
    """Raised when a record is not found."""

    def __init__(self, message: Optional[str] = "Object not found"):
        """Create a new NotFoundException instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        self.message = message
        super().__init__(self.message)


class ValidationException(ContentScopeException):
    """Raised when caller input is malformed."""

    def __init__(self, details: Any, message: Optional[str] = "Invalid input"):
        """Create a new ValidationException instance.

        Args:
        ----
            details (Any): Structured description of what is wrong.
            message (str, optional): The error message. Has default message.

        """
        self.details = details
        self.message = message
        super().__init__(self.message)


class StorageError(ContentScopeException):
    """Raised by entity manager implementations when the storage layer fails.

    Never handled by the orchestrator; it reaches the caller as a server error.
    """

    def __init__(self, message: Optional[str] = "Storage operation failed"):
        """Create a new StorageError instance.

        Args:
        ----
            message (str, optional): The error message. Has default message.

        """
        self.message = message
        super().__init__(self.message)


def unpack_validation_error(exc: ValidationError) -> dict:
    """Unpack a Pydantic validation error into a dictionary.

    Args:
    ----
        exc (ValidationError): The Pydantic validation error.

    Returns:
    -------
        dict: The dictionary representation of the validation error.

    """
    error_messages = []
    for error in exc.errors():
        field = ".".join(str(loc) for loc in error["loc"])
        message = error["msg"]
        error_messages.append({field: message})

    return {"errors": error_messages}
