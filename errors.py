"""Domain exceptions shared by the stores, the workflow and the routes.

Route handlers catch ``ValidationError`` (and its subclasses) and flash the
message back to the user. ``AuthorizationError``, ``NotFound`` and
``StorageError`` are left to the application error handlers registered in
``app.create_app``.
"""

from typing import Optional


class RecipeAppError(Exception):
    """Base class for all application errors.

    Attributes:
        message: human-readable message, safe to show to the end user
        http_status: suggested HTTP status code for handlers
    """

    http_status = 500
    default_message = "Something went wrong"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


class ValidationError(RecipeAppError):
    """Invalid input or a violated precondition the user can fix."""

    http_status = 400
    default_message = "Invalid input"


class DuplicateSubmission(ValidationError):
    default_message = "Recipe is already submitted for review"


class MissingReason(ValidationError):
    default_message = "Please provide a reason for rejection"


class EditForbidden(ValidationError):
    default_message = "Featured recipes and recipes under review cannot be edited"


class AuthorizationError(RecipeAppError):
    """Role or ownership mismatch."""

    http_status = 403
    default_message = "Access denied"


class NotFound(RecipeAppError):
    http_status = 404
    default_message = "Not found"


class StorageError(RecipeAppError):
    """A write failed at the database level; the transaction was rolled back."""

    http_status = 500
    default_message = "The operation could not be completed. Please try again."
