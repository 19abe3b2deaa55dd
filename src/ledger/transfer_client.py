"""
LedgerTransferClient - builds and submits the stake transfer.

Exactly one instruction is handed to the wallet per call. The call returns
as soon as the ledger accepts the transaction, not when it is final; use
ConfirmationWaiter for finality. Nothing here retries: a failed transfer
surfaces to the caller, and a resubmission produces a new reference.
"""

import logging
from decimal import Decimal

from errors import (
    LedgerRpcError,
    NotConnected,
    SubmissionFailed,
    TransferRejected,
    ValidationError,
)
from utils.decimal_utils import is_valid_amount, to_base_units, to_decimal

from .rpc import LedgerRpcClient
from .wallet import TOKEN_2022_PROGRAM_ID, TransferInstruction, WalletSigner

logger = logging.getLogger(__name__)


class LedgerTransferClient:
    """Token transfers for a single mint."""

    def __init__(
        self,
        ledger: LedgerRpcClient,
        mint: str,
        token_program: str = TOKEN_2022_PROGRAM_ID,
    ):
        self.ledger = ledger
        self.mint = mint
        self.token_program = token_program

    async def submit_transfer(
        self,
        wallet: WalletSigner,
        recipient_address: str,
        amount: Decimal,
        token_decimals: int,
    ) -> str:
        """
        Transfer `amount` tokens from the wallet to the recipient.

        The recipient's token account is created in the same submission
        when it does not exist yet.

        Returns:
            Transaction reference accepted by the ledger

        Raises:
            ValidationError: Non-positive amount or missing recipient
            NotConnected: Wallet has no signing capability
            TransferRejected: Sender lacks a funded source account
            SubmissionFailed: Network or signing failure
        """
        if not is_valid_amount(amount):
            raise ValidationError(f"Transfer amount must be positive, got {amount}")
        amount = to_decimal(amount)
        amount_base_units = to_base_units(amount, token_decimals)
        if amount_base_units <= 0:
            raise ValidationError(
                f"Transfer amount {amount} is below the token's smallest unit"
            )
        if not recipient_address:
            raise ValidationError("Recipient address is required")

        sender = getattr(wallet, "public_address", None)
        if not sender:
            raise NotConnected()

        try:
            source_account = await self.ledger.find_token_account(sender, self.mint)
            destination_account = await self.ledger.find_token_account(
                recipient_address, self.mint
            )
        except LedgerRpcError as e:
            raise SubmissionFailed(f"Token account lookup failed: {e}") from e

        if source_account is None:
            raise TransferRejected(
                f"Sender {sender} has no funded token account for mint {self.mint}"
            )

        instruction = TransferInstruction(
            mint=self.mint,
            source_owner=sender,
            source_account=source_account,
            recipient_owner=recipient_address,
            destination_account=destination_account,
            create_destination=destination_account is None,
            amount_base_units=amount_base_units,
            decimals=token_decimals,
            token_program=self.token_program,
        )
        if instruction.create_destination:
            logger.info(f"Recipient {recipient_address} has no token account, creating it")

        try:
            transaction_ref = await wallet.sign_and_submit(instruction)
        except (NotConnected, TransferRejected, SubmissionFailed):
            raise
        except Exception as e:
            raise SubmissionFailed(f"Transfer submission failed: {e}") from e

        if not transaction_ref:
            raise SubmissionFailed("Ledger accepted the transfer but returned no reference")

        logger.info(
            f"Transfer submitted: {amount} ({amount_base_units} base units) "
            f"{sender} -> {recipient_address}, ref={transaction_ref}"
        )
        return transaction_ref
