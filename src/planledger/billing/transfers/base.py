"""Value transfer primitive contract."""

from collections.abc import Callable
from typing import Protocol, runtime_checkable

from sqlalchemy.orm import Session


@runtime_checkable
class TransferGateway(Protocol):
    """Moves a non-negative amount between two accounts.

    Implementations raise ``InsufficientBalanceError`` when ``source`` cannot
    cover ``amount`` and must leave balances untouched in that case. The
    ledger calls ``transfer`` inside the operation's transaction, before the
    records it pays for are committed.
    """

    def transfer(self, amount: int, source: str, destination: str) -> None: ...


# Builds a gateway bound to the session of the current unit of work
TransferGatewayFactory = Callable[[Session], TransferGateway]
