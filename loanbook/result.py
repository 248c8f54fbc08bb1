"""Result pattern for consistent return types in LoanBook.

The boundary facade returns a Result from operations the UI needs to
branch on (destructive deletes waiting for confirmation, missing records)
instead of mixing False, None and exceptions.
"""
from dataclasses import dataclass
from typing import Optional, TypeVar, Generic

T = TypeVar('T')


@dataclass
class Result(Generic[T]):
    """Represents the outcome of an operation.

    Attributes:
        success: Whether the operation succeeded.
        value: The return value on success, None on failure.
        error: Error message on failure, None on success.
        error_type: Type/category of error (see ErrorType).

    Usage:
        result = book.delete_transaction(tx_id)
        if not result and result.error_type == ErrorType.CONFIRMATION_REQUIRED:
            ask_user(result.error)
    """
    success: bool
    value: Optional[T] = None
    error: Optional[str] = None
    error_type: Optional[str] = None

    @classmethod
    def ok(cls, value: T = None) -> 'Result[T]':
        """Create a successful result."""
        return cls(success=True, value=value)

    @classmethod
    def fail(cls, error: str, error_type: str = None) -> 'Result[T]':
        """Create a failure result."""
        return cls(success=False, error=error, error_type=error_type)

    def __bool__(self) -> bool:
        return self.success

    def unwrap(self) -> T:
        """Get the value, raising an exception if the operation failed.

        Raises:
            ValueError: If the operation failed.
        """
        if not self.success:
            raise ValueError(f"Result unwrap failed: {self.error}")
        return self.value

    def unwrap_or(self, default: T) -> T:
        """Get the value or a default if the operation failed."""
        return self.value if self.success else default


class ErrorType:
    """Standard error type constants."""
    NOT_FOUND = "NOT_FOUND"
    CONFIRMATION_REQUIRED = "CONFIRMATION_REQUIRED"
    EXPORT_FAILED = "EXPORT_FAILED"
