"""
Ledger access: stake transfer submission and finality polling
"""

from .confirmation_waiter import ConfirmationOutcome, ConfirmationWaiter
from .rpc import LedgerQuery, LedgerRpcClient, TransactionStatus
from .transfer_client import LedgerTransferClient
from .wallet import TOKEN_2022_PROGRAM_ID, TOKEN_PROGRAM_ID, TransferInstruction, WalletSigner

__all__ = [
    "ConfirmationOutcome",
    "ConfirmationWaiter",
    "LedgerQuery",
    "LedgerRpcClient",
    "LedgerTransferClient",
    "TOKEN_2022_PROGRAM_ID",
    "TOKEN_PROGRAM_ID",
    "TransactionStatus",
    "TransferInstruction",
    "WalletSigner",
]
