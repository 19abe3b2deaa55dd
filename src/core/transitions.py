"""
Session phase transition table.

State Machine:
    Idle → DepositPending → DepositConfirming → SessionCreating → Playing → Completed
      │          │                 │                  │              │
      └──────────┴─────────────────┴──────────────────┴──────────────┴──→ Failed

Failed is recoverable: a new start_game (no session yet), recover_deposit
(unconfirmed or uncreated deposit) or a retried move (session retained).
Any phase may return to Idle through reset().
"""

from models.enums import ErrorKind, SessionPhase


class InvalidTransition(RuntimeError):
    """Attempted a phase change the table does not allow."""

    def __init__(self, old_phase: SessionPhase, new_phase: SessionPhase):
        self.old_phase = old_phase
        self.new_phase = new_phase
        super().__init__(f"Invalid phase transition: {old_phase.value} -> {new_phase.value}")


ALLOWED_TRANSITIONS: dict[SessionPhase, frozenset[SessionPhase]] = {
    SessionPhase.IDLE: frozenset({SessionPhase.DEPOSIT_PENDING, SessionPhase.FAILED}),
    SessionPhase.DEPOSIT_PENDING: frozenset(
        {SessionPhase.DEPOSIT_CONFIRMING, SessionPhase.FAILED}
    ),
    SessionPhase.DEPOSIT_CONFIRMING: frozenset(
        {SessionPhase.SESSION_CREATING, SessionPhase.FAILED}
    ),
    SessionPhase.SESSION_CREATING: frozenset(
        {SessionPhase.PLAYING, SessionPhase.COMPLETED, SessionPhase.FAILED}
    ),
    SessionPhase.PLAYING: frozenset({SessionPhase.COMPLETED, SessionPhase.FAILED}),
    SessionPhase.COMPLETED: frozenset(),
    SessionPhase.FAILED: frozenset(
        {
            SessionPhase.DEPOSIT_PENDING,
            SessionPhase.DEPOSIT_CONFIRMING,
            SessionPhase.PLAYING,
            SessionPhase.COMPLETED,
        }
    ),
}

# Error kind recorded when a stage fails with an unexpected exception
FAILURE_KIND_BY_PHASE: dict[SessionPhase, ErrorKind] = {
    SessionPhase.IDLE: ErrorKind.VALIDATION,
    SessionPhase.DEPOSIT_PENDING: ErrorKind.SUBMISSION_FAILED,
    SessionPhase.DEPOSIT_CONFIRMING: ErrorKind.CONFIRMATION_TIMEOUT,
    SessionPhase.SESSION_CREATING: ErrorKind.SESSION_CREATE_FAILED,
    SessionPhase.PLAYING: ErrorKind.MOVE_REJECTED,
    SessionPhase.COMPLETED: ErrorKind.INVALID_SESSION,
    SessionPhase.FAILED: ErrorKind.MOVE_REJECTED,
}


def can_transition(old_phase: SessionPhase, new_phase: SessionPhase) -> bool:
    """Check a phase change; staying put and returning to Idle are always allowed."""
    if old_phase == new_phase or new_phase == SessionPhase.IDLE:
        return True
    return new_phase in ALLOWED_TRANSITIONS.get(old_phase, frozenset())


def check_transition(old_phase: SessionPhase, new_phase: SessionPhase) -> None:
    """
    Raises:
        InvalidTransition: If the change is not in the table
    """
    if not can_transition(old_phase, new_phase):
        raise InvalidTransition(old_phase, new_phase)
