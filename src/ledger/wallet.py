"""
Wallet collaborator contract.

The wallet owns key material and signing. The transfer client only builds a
TransferInstruction and hands it over; it never inspects keys.
"""

from dataclasses import asdict, dataclass
from typing import Any, Protocol, runtime_checkable

TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
TOKEN_2022_PROGRAM_ID = "TokenzQdBNbLqP5VEhdkAS6EPFLC1PHnBqCXEpPxuEb"


@dataclass(frozen=True)
class TransferInstruction:
    """
    One checked token transfer, optionally preceded by creating the
    recipient's token account in the same atomic submission.

    Fields:
        mint: Token mint address
        source_owner: Sender wallet address (signer and fee payer)
        source_account: Sender's token account for the mint
        recipient_owner: Recipient wallet address
        destination_account: Recipient's token account, None when it must be created
        create_destination: Whether the submission creates the destination account
        amount_base_units: Amount in integer base units
        decimals: Token decimal places (checked by the ledger)
        token_program: Token program that owns the mint
    """

    mint: str
    source_owner: str
    source_account: str
    recipient_owner: str
    destination_account: str | None
    create_destination: bool
    amount_base_units: int
    decimals: int
    token_program: str = TOKEN_2022_PROGRAM_ID

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        return asdict(self)


@runtime_checkable
class WalletSigner(Protocol):
    """Signing capability supplied by the hosting environment."""

    @property
    def public_address(self) -> str | None: ...

    async def sign_and_submit(self, instruction: TransferInstruction) -> str:
        """
        Sign the instruction and broadcast it.

        Returns:
            Transaction reference once the ledger accepts it for processing

        Raises:
            NotConnected: If no signing capability is present
            TransferRejected: If the ledger refuses the transaction
        """
        ...
