"""
Enumerations for game kinds, session phases and error kinds
"""

from enum import Enum


class GameKind(str, Enum):
    """Game kinds offered by the backend"""

    UNSET = "unset"
    BLACKJACK = "blackjack"
    DICE = "dice"
    SLOTS = "slots"
    SHIP_CAPTAIN_CREW = "shipcaptaincrew"

    @classmethod
    def parse(cls, value: "str | GameKind") -> "GameKind":
        """Resolve a wire value (case-insensitive) to a GameKind.

        Raises:
            ValueError: If the value names no known game kind
        """
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower().replace("_", "")
        for kind in cls:
            if kind.value == normalized:
                return kind
        raise ValueError(f"Unknown game kind: {value!r}")


class SessionPhase(str, Enum):
    """Orchestrator lifecycle phase"""

    IDLE = "Idle"
    DEPOSIT_PENDING = "DepositPending"
    DEPOSIT_CONFIRMING = "DepositConfirming"
    SESSION_CREATING = "SessionCreating"
    PLAYING = "Playing"
    COMPLETED = "Completed"
    FAILED = "Failed"


class ErrorKind(str, Enum):
    """Kinds of failure surfaced through SessionView.last_error"""

    VALIDATION = "ValidationError"
    TRANSFER_REJECTED = "TransferRejected"
    SUBMISSION_FAILED = "SubmissionFailed"
    CONFIRMATION_TIMEOUT = "ConfirmationTimeout"
    SESSION_CREATE_FAILED = "SessionCreateFailed"
    INVALID_SESSION = "InvalidSession"
    MOVE_REJECTED = "MoveRejected"
    BUSY = "Busy"


class ServerStatus(str, Enum):
    """Session status as reported by the backend"""

    CREATED = "created"
    IN_PROGRESS = "in_progress"
    PLAYING = "playing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    ERROR = "error"

    @classmethod
    def is_terminal(cls, status: str | None) -> bool:
        """Check if a raw status string ends the session.

        Unknown statuses are treated as non-terminal; the server keeps
        authority and a later response will carry the terminal status.
        """
        if status is None:
            return False
        return str(status).lower() in (cls.COMPLETED.value, cls.CANCELLED.value)

    @classmethod
    def is_error(cls, status: str | None) -> bool:
        """Check if the server abandoned the session after an internal error."""
        return status is not None and str(status).lower() == cls.ERROR.value
