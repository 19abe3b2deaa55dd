"""Core module - session state machine and idempotency keys"""

from .idempotency import IdempotencyKeyGenerator, default_device_fingerprint
from .session_orchestrator import SessionListener, SessionOrchestrator
from .transitions import ALLOWED_TRANSITIONS, InvalidTransition, can_transition

__all__ = [
    "ALLOWED_TRANSITIONS",
    "IdempotencyKeyGenerator",
    "InvalidTransition",
    "SessionListener",
    "SessionOrchestrator",
    "can_transition",
    "default_device_fingerprint",
]
