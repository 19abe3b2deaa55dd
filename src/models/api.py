"""
Game API Models - wire payloads for the backend game service

Fields are snake_case in Python and camelCase on the wire. Unknown fields
sent by the server are kept (extra="allow") so newer payloads still parse.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Generic, TypeVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from utils.decimal_utils import to_decimal

from .session import GameResult, decimal_or_zero

T = TypeVar("T")


class WireModel(BaseModel):
    """Base for camelCase wire payloads."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    def to_wire(self) -> dict[str, Any]:
        """Serialize with wire aliases, dropping unset optionals."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class GameConfig(WireModel):
    """Per-game betting bounds and payout parameters."""

    min_bet: Decimal
    max_bet: Decimal
    base_multiplier: Decimal = Decimal("1")
    house_edge: Decimal = Decimal("0")
    auto_resolve: bool = False

    @field_validator("min_bet", "max_bet", "base_multiplier", "house_edge", mode="before")
    @classmethod
    def _coerce_decimal(cls, v):
        return to_decimal(v)

    def allows(self, bet_amount: Decimal) -> bool:
        """Check if a bet falls within [min_bet, max_bet]."""
        return self.min_bet <= bet_amount <= self.max_bet


class SupportedGame(WireModel):
    """Entry of GET /games/supported."""

    game_type: str
    config: GameConfig


class CreateGameRequest(WireModel):
    """Body of POST /games/create."""

    game_type: str
    bet_amount: Decimal
    deposit_tx_hash: str
    client_seed: str | None = None
    device_fingerprint: str | None = None


class PlayGameRequest(WireModel):
    """Body of POST /games/play. A missing move means auto-play."""

    session_id: str
    move: dict[str, Any] | None = None


class ServerGameResult(WireModel):
    """
    Result block as the server reports it.

    Play responses carry isWin; stored session results do not, so the win is
    then read from the outcome or, failing that, from a positive payout.
    """

    is_win: bool | None = None
    multiplier: Decimal = Decimal("0")
    win_amount: Decimal = Field(
        default=Decimal("0"),
        validation_alias=AliasChoices("winAmount", "payout", "win_amount"),
        serialization_alias="winAmount",
    )
    game_data: Any = None
    outcome: Any = None

    @field_validator("multiplier", "win_amount", mode="before")
    @classmethod
    def _coerce_decimal(cls, v):
        return decimal_or_zero(v)

    def won(self, session_outcome: Any = None) -> bool:
        if self.is_win is not None:
            return self.is_win
        outcome = self.outcome if self.outcome is not None else session_outcome
        if isinstance(outcome, str):
            return outcome.lower() == "win"
        return self.win_amount > 0

    def to_result(self, session_outcome: Any = None) -> GameResult:
        """Project onto the client-side GameResult."""
        return GameResult(
            is_win=self.won(session_outcome), multiplier=self.multiplier, payout=self.win_amount
        )


class GameResponse(WireModel):
    """
    Payload returned by create and play.

    Play responses may omit sessionId; create responses must carry it.
    """

    session_id: str | None = None
    game_type: str | None = None
    bet_amount: Decimal | None = None
    status: str
    result: ServerGameResult | None = None
    outcome: Any = None
    game_state: Any = None
    server_seed_hash: str | None = None

    def game_result(self) -> GameResult | None:
        return self.result.to_result(self.outcome) if self.result is not None else None


class SessionSnapshot(WireModel):
    """Payload returned by GET /games/session/{id} and /games/history."""

    session_id: str
    game_type: str | None = None
    bet_amount: Decimal | None = None
    status: str
    created_at: str | None = None
    updated_at: str | None = None
    result: ServerGameResult | None = None
    outcome: Any = None
    game_state: Any = None

    def game_result(self) -> GameResult | None:
        return self.result.to_result(self.outcome) if self.result is not None else None


class ApiResponse(BaseModel, Generic[T]):
    """
    Envelope wrapping every backend response.

    success=False is a failure even when the HTTP status is 200.
    http_status is local bookkeeping and never serialized.
    """

    model_config = ConfigDict(extra="allow")

    success: bool
    data: T | None = None
    message: str | None = None
    error: str | None = None
    http_status: int | None = Field(default=None, exclude=True)

    @property
    def error_message(self) -> str | None:
        """Human-readable failure text, preferring error over message."""
        if self.success:
            return None
        return self.error or self.message
