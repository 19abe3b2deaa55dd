"""
ConfirmationWaiter - polls the ledger until a transfer is final or the
deadline passes.

Poll failures never end the wait; only the deadline does. A poll still in
flight when the deadline arrives is cancelled rather than awaited.
"""

import asyncio
import logging
from enum import Enum

from .rpc import LedgerQuery

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_MS = 1000


class ConfirmationOutcome(str, Enum):
    """Result of waiting for finality"""

    CONFIRMED = "Confirmed"
    TIMED_OUT = "TimedOut"


class ConfirmationWaiter:
    """
    Fixed-interval finality poller.

    Uses the event loop's monotonic clock, so wall-clock jumps do not
    stretch or shorten the wait.
    """

    def __init__(self, ledger: LedgerQuery, poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS):
        if poll_interval_ms <= 0:
            raise ValueError(f"poll_interval_ms must be positive, got {poll_interval_ms}")
        self.ledger = ledger
        self.poll_interval_ms = poll_interval_ms

    async def await_finality(self, transaction_ref: str, timeout_ms: int) -> ConfirmationOutcome:
        """
        Wait until the ledger reports the transaction included without an
        execution error.

        Args:
            transaction_ref: Reference returned by the transfer
            timeout_ms: Time allowed, measured from this call

        Returns:
            CONFIRMED on first successful inclusion, TIMED_OUT otherwise
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + max(0, timeout_ms) / 1000
        interval = self.poll_interval_ms / 1000
        polls = 0
        failed_on_chain = False

        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                break

            polls += 1
            try:
                status = await asyncio.wait_for(
                    self.ledger.get_transaction_status(transaction_ref), timeout=remaining
                )
            except TimeoutError:
                if loop.time() >= deadline:
                    logger.debug(f"Poll #{polls} for {transaction_ref} abandoned at deadline")
                    break
                logger.warning(f"Poll #{polls} for {transaction_ref} timed out, retrying")
                status = None
            except Exception as e:
                logger.warning(f"Poll #{polls} for {transaction_ref} failed: {e}")
                status = None

            if status is not None:
                logger.debug(
                    f"Poll #{polls} for {transaction_ref}: included={status.included} "
                    f"error={status.execution_error}"
                )
                if status.included and status.execution_error is None:
                    logger.info(f"Transaction {transaction_ref} confirmed after {polls} poll(s)")
                    return ConfirmationOutcome.CONFIRMED
                if status.included and not failed_on_chain:
                    failed_on_chain = True
                    logger.warning(
                        f"Transaction {transaction_ref} included with error: "
                        f"{status.execution_error}"
                    )

            remaining = deadline - loop.time()
            if remaining <= 0:
                break
            await asyncio.sleep(min(interval, remaining))

        logger.warning(
            f"Transaction {transaction_ref} not confirmed within {timeout_ms}ms ({polls} poll(s))"
        )
        return ConfirmationOutcome.TIMED_OUT
