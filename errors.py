class LedgerError(Exception):
    """Base class for ledger rule violations."""

    status_code: int = 400
    error_code: str = "LEDGER_ERROR"

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class InvalidAmountError(LedgerError):
    """Raised when a transfer amount is not strictly positive."""

    status_code = 400
    error_code = "INVALID_AMOUNT"

    def __init__(self, amount: float):
        super().__init__("amount must be positive")
        self.amount = amount


class InsufficientFundsError(LedgerError):
    """Raised when the source account cannot cover the transfer."""

    status_code = 422
    error_code = "INSUFFICIENT_FUNDS"

    def __init__(self, account: str, available: float, requested: float):
        super().__init__("insufficient funds")
        self.account = account
        self.available = available
        self.requested = requested


class AccountNotFoundError(LedgerError):
    """Raised on the read path when an account is absent from the ledger."""

    status_code = 404
    error_code = "ACCOUNT_NOT_FOUND"

    def __init__(self, account: str):
        super().__init__("account not found")
        self.account = account
