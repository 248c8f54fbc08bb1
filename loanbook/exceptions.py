"""Custom exceptions for LoanBook."""


class LoanBookError(Exception):
    """Base exception for all LoanBook errors."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


class StorageError(LoanBookError):
    """Raised when the key-value store cannot read or write a value."""
    pass


class StoreTransactionError(StorageError):
    """Raised when an atomic multi-key write fails and is rolled back."""
    pass


class ContractNotFoundError(LoanBookError):
    """Raised when a contract cannot be found."""

    def __init__(self, contract_id: str = None):
        details = {}
        message = "Contract not found"
        if contract_id:
            details['contract_id'] = contract_id
            message = f"Contract '{contract_id}' not found"
        super().__init__(message, details)


class TransactionNotFoundError(LoanBookError):
    """Raised when a transaction cannot be found."""

    def __init__(self, transaction_id: str = None):
        details = {}
        message = "Transaction not found"
        if transaction_id:
            details['transaction_id'] = transaction_id
            message = f"Transaction '{transaction_id}' not found"
        super().__init__(message, details)
