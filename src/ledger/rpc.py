"""
LedgerRpcClient - JSON-RPC queries against the ledger node.

Stateless per call, so one instance can be shared by any number of
orchestrators. Only the reads the deposit pipeline needs are exposed:
transaction status and token-account lookup.
"""

import itertools
import logging
from dataclasses import dataclass
from typing import Any, Protocol

import aiohttp

from errors import LedgerRpcError

logger = logging.getLogger(__name__)

# Ordered weakest to strongest
COMMITMENT_LEVELS = ("processed", "confirmed", "finalized")


@dataclass(frozen=True)
class TransactionStatus:
    """
    Finality status of a transaction reference.

    included is true once the transaction reached the configured
    commitment. execution_error carries the ledger's error value, if any.
    """

    included: bool
    execution_error: Any = None
    confirmation_status: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.included and self.execution_error is None


class LedgerQuery(Protocol):
    """Read side of the ledger consumed by ConfirmationWaiter."""

    async def get_transaction_status(self, transaction_ref: str) -> TransactionStatus: ...


class LedgerRpcClient:
    """
    Minimal async JSON-RPC client.

    Transport failures and JSON-RPC error objects both surface as
    LedgerRpcError; callers decide whether to swallow or escalate.
    """

    def __init__(
        self,
        rpc_url: str,
        commitment: str = "confirmed",
        timeout_seconds: float = 10.0,
        session: aiohttp.ClientSession | None = None,
    ):
        if commitment not in COMMITMENT_LEVELS:
            raise ValueError(f"Unknown commitment level: {commitment}")
        self.rpc_url = rpc_url
        self.commitment = commitment
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._session = session
        self._ids = itertools.count(1)

    @classmethod
    def from_config(cls, ledger_config: dict, session: aiohttp.ClientSession | None = None):
        """Build from the LEDGER config section."""
        return cls(
            rpc_url=ledger_config["rpc_url"],
            commitment=ledger_config.get("commitment", "confirmed"),
            timeout_seconds=ledger_config.get("rpc_timeout_seconds", 10),
            session=session,
        )

    async def _call(self, method: str, params: list) -> Any:
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}

        try:
            if self._session is not None:
                body = await self._post(self._session, payload)
            else:
                async with aiohttp.ClientSession() as session:
                    body = await self._post(session, payload)
        except (aiohttp.ClientError, TimeoutError) as e:
            raise LedgerRpcError(f"{method} transport error: {e}") from e
        except ValueError as e:
            raise LedgerRpcError(f"{method} returned a non-JSON body: {e}") from e

        if not isinstance(body, dict):
            raise LedgerRpcError(f"{method} returned a malformed response")

        error = body.get("error")
        if error:
            if isinstance(error, dict):
                raise LedgerRpcError(
                    f"{method} failed: {error.get('message', error)}", code=error.get("code")
                )
            raise LedgerRpcError(f"{method} failed: {error}")

        return body.get("result")

    async def _post(self, session: aiohttp.ClientSession, payload: dict) -> Any:
        async with session.post(self.rpc_url, json=payload, timeout=self.timeout) as resp:
            return await resp.json(content_type=None)

    def _reached_commitment(self, confirmation_status: str | None) -> bool:
        if confirmation_status not in COMMITMENT_LEVELS:
            return False
        return COMMITMENT_LEVELS.index(confirmation_status) >= COMMITMENT_LEVELS.index(
            self.commitment
        )

    async def get_transaction_status(self, transaction_ref: str) -> TransactionStatus:
        """
        Look up a transaction's finality.

        Returns:
            TransactionStatus(included=False) while the ledger does not know
            the transaction or it is below the configured commitment
        """
        result = await self._call(
            "getSignatureStatuses",
            [[transaction_ref], {"searchTransactionHistory": True}],
        )
        values = (result or {}).get("value") or []
        entry = values[0] if values else None
        if not entry:
            return TransactionStatus(included=False)

        confirmation_status = entry.get("confirmationStatus")
        return TransactionStatus(
            included=self._reached_commitment(confirmation_status),
            execution_error=entry.get("err"),
            confirmation_status=confirmation_status,
        )

    async def find_token_account(self, owner: str, mint: str) -> str | None:
        """Return the owner's token account address for the mint, or None."""
        result = await self._call(
            "getTokenAccountsByOwner",
            [owner, {"mint": mint}, {"encoding": "jsonParsed", "commitment": self.commitment}],
        )
        accounts = (result or {}).get("value") or []
        if not accounts:
            return None
        return accounts[0].get("pubkey")
