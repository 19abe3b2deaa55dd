"""
Error taxonomy for the deposit, confirmation and play pipeline.

Collaborators raise these; SessionOrchestrator catches them at its public
boundary and records them as ErrorRecord(kind=exc.kind, message=str(exc)).
"""

from models.enums import ErrorKind


class StakeError(Exception):
    """Base class for all pipeline errors."""

    kind: ErrorKind = ErrorKind.VALIDATION


class ValidationError(StakeError):
    """Rejected locally before any ledger or network call."""

    kind = ErrorKind.VALIDATION


class BetOutOfRange(ValidationError):
    """Bet amount outside the game's [min_bet, max_bet]."""

    def __init__(self, bet_amount, min_bet, max_bet):
        self.bet_amount = bet_amount
        self.min_bet = min_bet
        self.max_bet = max_bet
        super().__init__(f"Bet amount must be between {min_bet} and {max_bet}, got {bet_amount}")


class NotConnected(ValidationError):
    """No wallet signing capability is present."""

    def __init__(self, message: str = "Wallet not connected or does not support signing"):
        super().__init__(message)


class TransferRejected(StakeError):
    """The ledger (or wallet) refused the transfer, e.g. no funded source account."""

    kind = ErrorKind.TRANSFER_REJECTED


class SubmissionFailed(StakeError):
    """Network or signing failure while submitting the transfer."""

    kind = ErrorKind.SUBMISSION_FAILED


class ConfirmationTimeout(StakeError):
    """The transfer did not reach finality before its deadline."""

    kind = ErrorKind.CONFIRMATION_TIMEOUT


class SessionCreateFailed(StakeError):
    """The backend refused to create a session for the deposit."""

    kind = ErrorKind.SESSION_CREATE_FAILED


class GameApiError(StakeError):
    """Application-level failure reported by the backend (success=false)."""

    kind = ErrorKind.MOVE_REJECTED

    def __init__(self, message: str, http_status: int | None = None):
        self.http_status = http_status
        super().__init__(message)


class InvalidSession(GameApiError):
    """The addressed session is unknown, completed or cancelled."""

    kind = ErrorKind.INVALID_SESSION


class MoveRejected(GameApiError):
    """The backend rejected a move or auto-play request."""

    kind = ErrorKind.MOVE_REJECTED


class LedgerRpcError(Exception):
    """JSON-RPC error object or malformed response from the ledger node."""

    def __init__(self, message: str, code: int | None = None):
        self.code = code
        super().__init__(message)
