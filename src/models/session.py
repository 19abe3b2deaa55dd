"""
Session Models - client-side view of a staked game session

SessionView is the single source of truth the orchestrator exposes to
callers. DepositRecord and Move are the values it owns while driving the
deposit and play protocols.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from utils.decimal_utils import ZERO, to_decimal

from .enums import ErrorKind, GameKind, SessionPhase


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def decimal_or_zero(v) -> Decimal:
    """Coerce a wire amount to Decimal; a missing amount counts as zero."""
    if v is None:
        return ZERO
    return to_decimal(v)


class GameResult(BaseModel):
    """Terminal outcome adopted from the server."""

    is_win: bool
    multiplier: Decimal = Decimal("0")
    payout: Decimal = Decimal("0")

    @field_validator("multiplier", "payout", mode="before")
    @classmethod
    def _coerce_decimal(cls, v):
        return decimal_or_zero(v)


class ErrorRecord(BaseModel):
    """Last failure recorded by the orchestrator (message is pass-through)."""

    kind: ErrorKind
    message: str
    phase: SessionPhase | None = None
    at: datetime = Field(default_factory=_utcnow)


class DepositRecord(BaseModel):
    """
    A submitted stake transfer awaiting finality.

    transaction_ref is immutable once obtained; polling for it must end at
    or before confirmation_deadline.
    """

    model_config = ConfigDict(frozen=True)

    transaction_ref: str
    amount: Decimal
    token_kind: str
    confirmation_deadline: datetime

    def remaining_ms(self, now: datetime | None = None) -> int:
        """Milliseconds left until the deadline (never negative)."""
        now = now or _utcnow()
        remaining = (self.confirmation_deadline - now).total_seconds() * 1000
        return max(0, int(remaining))


class Move(BaseModel):
    """A single move sent to the backend, carrying its idempotency key."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    action: str
    data: Any = None
    operation_id: str = Field(alias="operationId")

    def to_wire(self) -> dict[str, Any]:
        """Serialize for the play endpoint."""
        return self.model_dump(by_alias=True, mode="json")


class SessionView(BaseModel):
    """
    Observable state of one orchestrated game.

    server_state is replaced wholesale on every response and never merged.
    result is populated only in terminal phases.
    """

    session_id: str | None = None
    game_kind: GameKind = GameKind.UNSET
    phase: SessionPhase = SessionPhase.IDLE
    server_state: Any = None
    result: GameResult | None = None
    last_error: ErrorRecord | None = None
    is_loading: bool = False
    transaction_ref: str | None = None
