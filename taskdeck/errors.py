"""Exception hierarchy for taskdeck."""

from typing import Optional


class AppError(Exception):
    """Base exception for app-specific failures."""


class ValidationError(ValueError, AppError):
    """A required field is empty or a value is out of its domain."""


class NotFoundError(LookupError, AppError):
    """The operation targets a task or category that no longer exists."""


class RangeError(IndexError, AppError):
    """Reorder indices are outside the current view or identical."""


class CategoryError(AppError):
    """Base for category deletion refusals."""

    def __init__(self, message: str, category_id: str):
        super().__init__(message)
        self.category_id = category_id


class ProtectedCategoryError(CategoryError):
    """Attempt to delete the default category."""


class CategoryInUseError(CategoryError):
    """Delete requested without reassignment while tasks still reference the category."""

    def __init__(self, message: str, category_id: str, task_count: int):
        super().__init__(message, category_id)
        self.task_count = task_count


class RemoteFailure(AppError):
    """A call to the remote store failed or timed out."""

    def __init__(self, message: str, operation: str = "", status_code: Optional[int] = None):
        super().__init__(message)
        self.operation = operation
        self.status_code = status_code


class AuthError(AppError):
    """Sign-in/sign-up failures and missing or invalid sessions."""


class ConfigError(ValueError, AppError):
    """Environment configuration errors."""
