import structlog

from errors import AccountNotFoundError, LedgerError
from ledger import Ledger
from models import BalanceResponse, TransferRequest, TransferResponse

logger = structlog.get_logger()


class LedgerService:
    def __init__(self, ledger: Ledger):
        self.ledger = ledger

    async def get_balance(self, account: str) -> BalanceResponse:
        """Read a balance, raising AccountNotFoundError for unknown accounts."""
        balance, found = self.ledger.get_balance(account)
        if not found:
            logger.warning("Account not found", account=account)
            raise AccountNotFoundError(account)

        logger.debug("Balance read", account=account, balance=balance)
        return BalanceResponse(account=account, balance=balance)

    async def transfer(self, request: TransferRequest) -> TransferResponse:
        """Move funds between two accounts.

        Ledger errors are logged and re-raised for the HTTP layer to map.
        """
        logger.info(
            "Processing transfer",
            from_account=request.from_account,
            to_account=request.to_account,
            amount=request.amount
        )

        try:
            self.ledger.transfer(request.from_account, request.to_account, request.amount)
        except LedgerError as e:
            logger.warning(
                "Transfer rejected",
                from_account=request.from_account,
                to_account=request.to_account,
                amount=request.amount,
                error_code=e.error_code,
                detail=e.detail
            )
            raise

        logger.info(
            "Transfer completed",
            from_account=request.from_account,
            to_account=request.to_account,
            amount=request.amount
        )

        return TransferResponse(
            from_account=request.from_account,
            to_account=request.to_account,
            amount=request.amount
        )


# Factory function for dependency injection
def get_ledger_service(ledger: Ledger) -> LedgerService:
    return LedgerService(ledger)
