"""Value transfer primitive and its bundled balance-table implementation."""

from planledger.billing.transfers.balances import BalanceTransferGateway
from planledger.billing.transfers.base import TransferGateway, TransferGatewayFactory

__all__ = ["BalanceTransferGateway", "TransferGateway", "TransferGatewayFactory"]
