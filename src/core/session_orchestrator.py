"""
SessionOrchestrator - drives one staked game from deposit to result.

Flow:
    start_game(bet)
      → LedgerTransferClient.submit_transfer     (DepositPending)
      → ConfirmationWaiter.await_finality        (DepositConfirming)
      → GameSessionProtocol.create_session       (SessionCreating)
      → submit_move / auto_play until terminal   (Playing → Completed)

The orchestrator owns a single SessionView. Every public operation returns
a success flag and records failures in view.last_error; nothing raises
across the public boundary. At most one mutating operation runs at a time
(view.is_loading); a second one is rejected as Busy without any network
call. reset() bumps an epoch so results that arrive after it are dropped.
"""

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta, timezone

from config import Config, config
from errors import InvalidSession, NotConnected, StakeError, ValidationError
from gameapi.client import GameApiClient
from gameapi.protocol import GameSessionProtocol
from ledger.confirmation_waiter import ConfirmationOutcome, ConfirmationWaiter
from ledger.rpc import LedgerRpcClient
from ledger.transfer_client import LedgerTransferClient
from ledger.wallet import WalletSigner
from models.api import GameConfig, GameResponse, SessionSnapshot
from models.enums import ErrorKind, GameKind, ServerStatus, SessionPhase
from models.session import DepositRecord, ErrorRecord, Move, SessionView

from .idempotency import IdempotencyKeyGenerator, default_device_fingerprint
from .transitions import FAILURE_KIND_BY_PHASE, check_transition

logger = logging.getLogger(__name__)

SessionListener = Callable[[SessionView], None]

DEFAULT_CONFIRMATION_TIMEOUT_MS = 30000
DEFAULT_RECOVERY_TIMEOUT_MS = 10000


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionOrchestrator:
    """
    State machine for a single game kind.

    Usage:
        orchestrator = SessionOrchestrator.from_config("dice", wallet, api_client)
        unsubscribe = orchestrator.subscribe(lambda view: print(view.phase))

        if await orchestrator.start_game(Decimal("5")):
            await orchestrator.submit_move("hit")
        ...
        await orchestrator.reset()
    """

    def __init__(
        self,
        game_kind: GameKind | str,
        wallet: WalletSigner,
        transfer_client: LedgerTransferClient,
        confirmation_waiter: ConfirmationWaiter,
        protocol: GameSessionProtocol,
        recipient_address: str,
        game_config: GameConfig | None = None,
        token_kind: str | None = None,
        token_decimals: int | None = None,
        confirmation_timeout_ms: int = DEFAULT_CONFIRMATION_TIMEOUT_MS,
        recovery_timeout_ms: int = DEFAULT_RECOVERY_TIMEOUT_MS,
        client_seed: str | None = None,
        device_fingerprint: str | None = None,
        key_generator: IdempotencyKeyGenerator | None = None,
    ):
        self.game_kind = GameKind.parse(game_kind)
        if self.game_kind == GameKind.UNSET:
            raise ValueError("SessionOrchestrator needs a concrete game kind")

        self.wallet = wallet
        self.transfer_client = transfer_client
        self.confirmation_waiter = confirmation_waiter
        self.protocol = protocol
        self.recipient_address = recipient_address
        self.game_config = game_config or config.get_game_config(self.game_kind.value)
        self.token_kind = token_kind or config.TOKEN["mint"]
        self.token_decimals = (
            token_decimals if token_decimals is not None else config.TOKEN["decimals"]
        )
        self.confirmation_timeout_ms = confirmation_timeout_ms
        self.recovery_timeout_ms = recovery_timeout_ms
        self.device_fingerprint = device_fingerprint or default_device_fingerprint()
        self.keys = key_generator or IdempotencyKeyGenerator()

        self._fixed_client_seed = client_seed
        self._client_seed: str | None = None
        self._view = SessionView()
        self._deposit: DepositRecord | None = None
        self._listeners: list[SessionListener] = []
        self._epoch = 0

    @classmethod
    def from_config(
        cls,
        game_kind: GameKind | str,
        wallet: WalletSigner,
        api_client: GameApiClient,
        ledger: LedgerRpcClient | None = None,
        app_config: Config = config,
        **kwargs,
    ) -> "SessionOrchestrator":
        """Wire collaborators from the LEDGER, TOKEN and GAMES config sections."""
        kind = GameKind.parse(game_kind)
        ledger_config = app_config.LEDGER
        ledger = ledger or LedgerRpcClient.from_config(ledger_config)
        token = app_config.TOKEN

        return cls(
            game_kind=kind,
            wallet=wallet,
            transfer_client=LedgerTransferClient(ledger, token["mint"]),
            confirmation_waiter=ConfirmationWaiter(ledger, ledger_config["poll_interval_ms"]),
            protocol=GameSessionProtocol(api_client),
            recipient_address=app_config.MANAGER_WALLET_ADDRESS,
            game_config=app_config.get_game_config(kind.value),
            token_kind=token["mint"],
            token_decimals=token["decimals"],
            confirmation_timeout_ms=ledger_config["confirmation_timeout_ms"],
            recovery_timeout_ms=ledger_config["recovery_timeout_ms"],
            **kwargs,
        )

    # ========== Read-only surface ==========

    @property
    def view(self) -> SessionView:
        """Deep copy of the current view."""
        return self._view.model_copy(deep=True)

    @property
    def phase(self) -> SessionPhase:
        return self._view.phase

    @property
    def pending_deposit(self) -> DepositRecord | None:
        """Deposit submitted but not yet bound to a session."""
        return self._deposit

    @property
    def is_game_active(self) -> bool:
        return self._view.session_id is not None and self._view.phase == SessionPhase.PLAYING

    @property
    def can_make_move(self) -> bool:
        view = self._view
        if view.is_loading or view.session_id is None:
            return False
        if view.phase == SessionPhase.PLAYING:
            return True
        # A rejected move keeps the session addressable unless the server disowned it
        return (
            view.phase == SessionPhase.FAILED
            and view.last_error is not None
            and view.last_error.kind != ErrorKind.INVALID_SESSION
        )

    def set_api_client(self, api_client: GameApiClient) -> None:
        """Swap the backend client, e.g. after GameApiClient.with_token()."""
        self.protocol = self.protocol.with_client(api_client)

    # ========== Observers ==========

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """
        Register a listener called with a copy of the view on every change.

        Returns:
            Unsubscribe function
        """
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._view.model_copy(deep=True))
            except Exception as e:
                logger.error(f"Error in session listener: {e}", exc_info=True)

    # ========== Internal state helpers ==========

    def _transition_to(self, new_phase: SessionPhase) -> None:
        old_phase = self._view.phase
        check_transition(old_phase, new_phase)
        if old_phase != new_phase:
            self._view.phase = new_phase
            logger.info(
                f"Session phase: {old_phase.value} -> {new_phase.value} "
                f"({self.game_kind.value}, session={self._view.session_id})"
            )
        self._emit()

    def _record_error(self, kind: ErrorKind, message: str) -> None:
        self._view.last_error = ErrorRecord(kind=kind, message=message, phase=self._view.phase)

    def _fail(self, kind: ErrorKind, message: str) -> None:
        """Record the error and move to Failed (Completed keeps its phase)."""
        self._record_error(kind, message)
        logger.warning(f"{self.game_kind.value} {self._view.phase.value} failed: {kind.value}: {message}")
        if self._view.phase == SessionPhase.COMPLETED:
            self._emit()
        else:
            self._transition_to(SessionPhase.FAILED)

    def _fail_with(self, error: StakeError) -> None:
        self._fail(error.kind, str(error))

    def _reject(self, kind: ErrorKind, message: str) -> bool:
        """Record an error without touching the phase."""
        self._record_error(kind, message)
        logger.info(f"{self.game_kind.value} request rejected: {kind.value}: {message}")
        self._emit()
        return False

    def _is_current(self, epoch: int) -> bool:
        return epoch == self._epoch

    async def _guarded(self, operation: str, body: Callable[[int], Awaitable[bool]]) -> bool:
        """Run one mutating operation under the busy gate and the no-throw boundary."""
        if self._view.is_loading:
            return self._reject(
                ErrorKind.BUSY, f"Cannot {operation}: another game action is in progress"
            )

        epoch = self._epoch
        self._view.is_loading = True
        self._emit()
        try:
            return await body(epoch)
        except Exception as e:
            logger.error(f"{operation} failed unexpectedly: {e}", exc_info=True)
            if self._is_current(epoch):
                kind = FAILURE_KIND_BY_PHASE.get(self._view.phase, ErrorKind.VALIDATION)
                self._fail(kind, str(e) or type(e).__name__)
            return False
        finally:
            if self._is_current(epoch):
                self._view.is_loading = False
                self._emit()

    def _apply_response(self, response: GameResponse | SessionSnapshot) -> bool:
        """
        Adopt server state wholesale and derive the phase from its status.

        The transition is checked before the view changes, so a rejected
        snapshot leaves phase, state and result as they were.

        Returns:
            False when the server reports the session as errored
        """
        if ServerStatus.is_error(response.status):
            target = SessionPhase.FAILED
        elif ServerStatus.is_terminal(response.status):
            target = SessionPhase.COMPLETED
        else:
            target = SessionPhase.PLAYING
        check_transition(self._view.phase, target)

        self._view.server_state = response.game_state
        if target == SessionPhase.FAILED:
            self._view.result = None
            self._fail(
                ErrorKind.INVALID_SESSION,
                f"Session {self._view.session_id} ended with a server error",
            )
            return False

        self._view.last_error = None
        if target == SessionPhase.COMPLETED:
            self._view.result = response.game_result()
            self._transition_to(SessionPhase.COMPLETED)
            if self._view.result is not None:
                logger.info(
                    f"Game {self._view.session_id} finished: win={self._view.result.is_win} "
                    f"multiplier={self._view.result.multiplier} payout={self._view.result.payout}"
                )
            else:
                logger.info(f"Game {self._view.session_id} finished with status {response.status}")
        else:
            self._view.result = None
            self._transition_to(SessionPhase.PLAYING)
        return True

    # ========== start_game ==========

    async def start_game(self, bet_amount) -> bool:
        """
        Deposit `bet_amount`, wait for finality and create the session.

        For auto-resolving games one auto-play call follows immediately.
        """
        return await self._guarded("start game", lambda epoch: self._start_game(epoch, bet_amount))

    async def _start_game(self, epoch: int, bet_amount) -> bool:
        view = self._view
        if view.session_id is not None:
            return self._reject(
                ErrorKind.VALIDATION, "A game session already exists; reset before starting another"
            )
        if view.phase not in (SessionPhase.IDLE, SessionPhase.FAILED):
            return self._reject(
                ErrorKind.VALIDATION, f"Cannot start a game while {view.phase.value}"
            )

        # A new attempt abandons any earlier deposit
        self._deposit = None
        view.transaction_ref = None
        view.last_error = None

        try:
            bet = GameSessionProtocol.validate_bet(self.game_config, bet_amount)
            if not getattr(self.wallet, "public_address", None):
                raise NotConnected()
            if not self.recipient_address:
                raise ValidationError("No deposit recipient configured")
        except ValidationError as e:
            self._fail_with(e)
            return False

        self._transition_to(SessionPhase.DEPOSIT_PENDING)
        try:
            transaction_ref = await self.transfer_client.submit_transfer(
                self.wallet, self.recipient_address, bet, self.token_decimals
            )
        except StakeError as e:
            if self._is_current(epoch):
                self._fail_with(e)
            return False
        if not self._is_current(epoch):
            logger.info(f"Discarding transfer {transaction_ref}: session was reset")
            return False
        if not transaction_ref:
            self._fail(ErrorKind.SUBMISSION_FAILED, "Transfer returned no transaction reference")
            return False

        self._deposit = DepositRecord(
            transaction_ref=transaction_ref,
            amount=bet,
            token_kind=self.token_kind,
            confirmation_deadline=_utcnow() + timedelta(milliseconds=self.confirmation_timeout_ms),
        )
        view.transaction_ref = transaction_ref
        self._transition_to(SessionPhase.DEPOSIT_CONFIRMING)

        return await self._confirm_and_create(epoch)

    async def _confirm_and_create(self, epoch: int) -> bool:
        deposit = self._deposit
        timeout_ms = deposit.remaining_ms()
        outcome = await self.confirmation_waiter.await_finality(deposit.transaction_ref, timeout_ms)
        if not self._is_current(epoch):
            return False
        if outcome != ConfirmationOutcome.CONFIRMED:
            self._fail(
                ErrorKind.CONFIRMATION_TIMEOUT,
                f"Deposit {deposit.transaction_ref} was not confirmed within {timeout_ms}ms",
            )
            return False

        self._transition_to(SessionPhase.SESSION_CREATING)
        if self._client_seed is None:
            self._client_seed = self._fixed_client_seed or self.keys.client_seed()

        try:
            response = await self.protocol.create_session(
                self.game_kind,
                deposit.amount,
                deposit.transaction_ref,
                client_seed=self._client_seed,
                device_fingerprint=self.device_fingerprint,
            )
        except StakeError as e:
            if self._is_current(epoch):
                self._fail_with(e)
            return False
        if not self._is_current(epoch):
            logger.warning(
                f"Session {response.session_id} created after reset; it is not adopted"
            )
            return False

        self._view.session_id = response.session_id
        try:
            self._view.game_kind = GameKind.parse(response.game_type or self.game_kind)
        except ValueError:
            self._view.game_kind = self.game_kind
        self._deposit = None
        logger.info(
            f"Session {response.session_id} created for deposit {deposit.transaction_ref}"
        )
        if not self._apply_response(response):
            return False

        if self._view.phase == SessionPhase.PLAYING and self.game_config.auto_resolve:
            logger.info(f"Auto-resolving {self.game_kind.value} session {response.session_id}")
            return await self._play(epoch, None)
        return True

    # ========== Play ==========

    def _move_guard(self) -> bool:
        view = self._view
        if view.session_id is None:
            return self._reject(ErrorKind.INVALID_SESSION, "No active game session")
        if view.phase not in (SessionPhase.PLAYING, SessionPhase.FAILED):
            return self._reject(
                ErrorKind.INVALID_SESSION,
                f"Session {view.session_id} is {view.phase.value} and cannot take moves",
            )
        return True

    async def submit_move(self, action: str, data=None) -> bool:
        """Send one move with a fresh operation id."""

        async def body(epoch: int) -> bool:
            if not self._move_guard():
                return False
            if not action:
                return self._reject(ErrorKind.VALIDATION, "Move action is required")
            move = Move(action=action, data=data, operation_id=self.keys.operation_id())
            return await self._play(epoch, move)

        return await self._guarded("submit move", body)

    async def auto_play(self) -> bool:
        """Ask the server to play out the rest of the game."""

        async def body(epoch: int) -> bool:
            if not self._move_guard():
                return False
            return await self._play(epoch, None)

        return await self._guarded("auto play", body)

    async def _play(self, epoch: int, move: Move | None) -> bool:
        session_id = self._view.session_id
        label = move.action if move is not None else "auto-play"
        logger.debug(
            f"Submitting {label} to {session_id}"
            + (f" (operation {move.operation_id})" if move is not None else "")
        )
        try:
            response = await self.protocol.submit_move(session_id, move)
        except StakeError as e:
            if self._is_current(epoch):
                self._fail_with(e)
            return False
        if not self._is_current(epoch):
            return False

        return self._apply_response(response)

    # ========== Recovery ==========

    async def recover_deposit(self) -> bool:
        """
        Re-check a deposit that timed out (or whose session creation failed)
        and create the session if it has since been confirmed.
        """

        async def body(epoch: int) -> bool:
            if (
                self._deposit is None
                or self._view.phase != SessionPhase.FAILED
                or self._view.session_id is not None
            ):
                return self._reject(ErrorKind.VALIDATION, "No unconfirmed deposit to recover")

            self._deposit = self._deposit.model_copy(
                update={
                    "confirmation_deadline": _utcnow()
                    + timedelta(milliseconds=self.recovery_timeout_ms)
                }
            )
            logger.info(f"Recovering deposit {self._deposit.transaction_ref}")
            self._view.last_error = None
            self._transition_to(SessionPhase.DEPOSIT_CONFIRMING)
            return await self._confirm_and_create(epoch)

        return await self._guarded("recover deposit", body)

    async def reconcile(self) -> bool:
        """Replace local phase, state and result with the server's snapshot."""

        async def body(epoch: int) -> bool:
            session_id = self._view.session_id
            if session_id is None:
                return self._reject(ErrorKind.INVALID_SESSION, "No game session to reconcile")
            try:
                snapshot = await self.protocol.fetch_session(session_id)
            except StakeError as e:
                if self._is_current(epoch):
                    if isinstance(e, InvalidSession):
                        self._fail_with(e)
                    else:
                        self._reject(e.kind, str(e))
                return False
            if not self._is_current(epoch):
                return False

            logger.info(f"Reconciled session {session_id}: server status {snapshot.status}")
            return self._apply_response(snapshot)

        return await self._guarded("reconcile", body)

    async def reset(self, cancel_remote: bool = True) -> None:
        """
        Clear the view back to Idle.

        A live session is cancelled on the server (best effort); results of
        operations still in flight are discarded.
        """
        view = self._view
        session_id = view.session_id
        live = session_id is not None and view.phase in (SessionPhase.PLAYING, SessionPhase.FAILED)

        self._epoch += 1
        self._view = SessionView()
        self._deposit = None
        self._client_seed = None
        logger.info(f"Session reset (was {view.phase.value}, session={session_id})")
        self._emit()

        if cancel_remote and live:
            try:
                cancelled = await self.protocol.cancel_session(session_id, "Reset by client")
                logger.info(f"Cancelled session {session_id} on reset: {cancelled}")
            except Exception as e:
                logger.warning(f"Could not cancel session {session_id} on reset: {e}")

    def __repr__(self) -> str:
        return (
            f"SessionOrchestrator(game={self.game_kind.value}, phase={self._view.phase.value}, "
            f"session={self._view.session_id})"
        )


__all__ = [
    "DEFAULT_CONFIRMATION_TIMEOUT_MS",
    "DEFAULT_RECOVERY_TIMEOUT_MS",
    "SessionListener",
    "SessionOrchestrator",
]
