"""
Balance-table transfer gateway.

Keeps account balances in the ledger database, so a transfer and the records
it pays for share one transaction and roll back together.
"""

import structlog
from sqlalchemy import select
from sqlalchemy.orm import Session

from planledger.billing.exceptions import InsufficientBalanceError, InvalidConfigurationError
from planledger.billing.models import MAX_INTEGER, LedgerBalanceTable

logger = structlog.get_logger(__name__)


class BalanceTransferGateway:
    """Transfer gateway backed by the ``ledger_balances`` table."""

    def __init__(self, db_session: Session) -> None:
        self.db = db_session

    def _get_or_create(self, account_id: str) -> LedgerBalanceTable:
        row = self.db.get(LedgerBalanceTable, account_id)
        if row is None:
            row = LedgerBalanceTable(account_id=account_id, balance=0)
            self.db.add(row)
        return row

    def _check_amount(self, amount: int, kind: str) -> None:
        if amount < 0 or amount > MAX_INTEGER:
            raise InvalidConfigurationError(
                f"{kind} amount must be between 0 and {MAX_INTEGER}, got {amount}",
                config_key="amount",
            )

    def _check_credit(self, row: LedgerBalanceTable, amount: int) -> None:
        if row.balance > MAX_INTEGER - amount:
            raise InvalidConfigurationError(
                f"Crediting {amount} would overflow the balance of {row.account_id!r}",
                config_key="balance",
            )

    def balance_of(self, account_id: str) -> int:
        row = self.db.get(LedgerBalanceTable, account_id)
        return row.balance if row is not None else 0

    def balances(self) -> dict[str, int]:
        rows = self.db.execute(select(LedgerBalanceTable)).scalars().all()
        return {row.account_id: row.balance for row in rows}

    def deposit(self, account_id: str, amount: int) -> int:
        """Credit ``amount`` to ``account_id`` from outside the ledger."""
        self._check_amount(amount, "Deposit")
        row = self._get_or_create(account_id)
        self._check_credit(row, amount)
        row.balance += amount
        self.db.flush()
        logger.debug("Funds deposited", account_id=account_id, amount=amount, balance=row.balance)
        return row.balance

    def transfer(self, amount: int, source: str, destination: str) -> None:
        """Move ``amount`` from ``source`` to ``destination``.

        Raises:
            InsufficientBalanceError: source balance is below ``amount``
            InvalidConfigurationError: amount out of range, or the destination
                balance would overflow
        """
        self._check_amount(amount, "Transfer")
        if amount == 0 or source == destination:
            return

        source_row = self._get_or_create(source)
        if source_row.balance < amount:
            raise InsufficientBalanceError(source, required=amount, available=source_row.balance)

        destination_row = self._get_or_create(destination)
        self._check_credit(destination_row, amount)
        source_row.balance -= amount
        destination_row.balance += amount
        self.db.flush()

        logger.debug(
            "Funds transferred",
            source=source,
            destination=destination,
            amount=amount,
        )
