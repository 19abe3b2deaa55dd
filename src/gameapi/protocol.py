"""
GameSessionProtocol - typed create / move / fetch / cancel contract with
the backend game service.

Each operation returns a parsed model or raises the StakeError subclass
matching the stage that failed. Error messages are passed through from the
server untouched.
"""

import logging
from decimal import Decimal
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from errors import (
    BetOutOfRange,
    GameApiError,
    InvalidSession,
    MoveRejected,
    SessionCreateFailed,
    ValidationError,
)
from models.api import (
    ApiResponse,
    CreateGameRequest,
    GameConfig,
    GameResponse,
    PlayGameRequest,
    SessionSnapshot,
    SupportedGame,
)
from models.enums import GameKind
from models.session import Move
from utils.decimal_utils import to_decimal

from .client import GameApiClient

logger = logging.getLogger(__name__)

# HTTP statuses that mean the session itself can no longer take moves
INVALID_SESSION_STATUSES = frozenset({404, 409, 410})


class GameSessionProtocol:
    """Backend session operations over a GameApiClient."""

    def __init__(self, client: GameApiClient):
        self.client = client

    def with_client(self, client: GameApiClient) -> "GameSessionProtocol":
        """Return a protocol bound to another client (e.g. after a token refresh)."""
        return GameSessionProtocol(client)

    # ========== Validation ==========

    @staticmethod
    def validate_bet(game_config: GameConfig, bet_amount) -> Decimal:
        """
        Check a bet against the game's bounds before any network call.

        Returns:
            The bet as Decimal

        Raises:
            ValidationError: If the bet is not a number
            BetOutOfRange: If the bet falls outside [min_bet, max_bet]
        """
        try:
            bet = to_decimal(bet_amount)
        except ValueError as e:
            raise ValidationError(f"Invalid bet amount: {bet_amount}") from e
        if not bet.is_finite() or not game_config.allows(bet):
            raise BetOutOfRange(bet_amount, game_config.min_bet, game_config.max_bet)
        return bet

    # ========== Parsing ==========

    @staticmethod
    def _parse(model, data: Any, error_cls: type[GameApiError], what: str, status: int | None):
        if data is None:
            raise error_cls(f"Empty {what} response from server", http_status=status)
        try:
            return model.model_validate(data)
        except PydanticValidationError as e:
            logger.error(f"Malformed {what} response: {e}")
            raise error_cls(f"Malformed {what} response from server", http_status=status) from e

    @staticmethod
    def _failure(response: ApiResponse, default: str) -> str:
        return response.error_message or default

    @staticmethod
    def _snapshot_payload(item: Any) -> Any:
        # History entries may carry the id as `id`/`_id` instead of `sessionId`
        if isinstance(item, dict) and "sessionId" not in item:
            session_id = item.get("id") or item.get("_id")
            if session_id is not None:
                item = {**item, "sessionId": str(session_id)}
        return item

    # ========== Operations ==========

    async def supported_games(self) -> list[SupportedGame]:
        """GET /games/supported"""
        response = await self.client.get("/games/supported")
        if not response.success:
            raise GameApiError(
                self._failure(response, "Failed to fetch supported games"),
                http_status=response.http_status,
            )
        if not isinstance(response.data, list):
            raise GameApiError("Malformed supported games response from server")
        try:
            return [SupportedGame.model_validate(item) for item in response.data]
        except PydanticValidationError as e:
            raise GameApiError("Malformed supported games response from server") from e

    async def create_session(
        self,
        game_kind: GameKind,
        bet_amount,
        deposit_proof: str,
        client_seed: str | None = None,
        device_fingerprint: str | None = None,
        game_config: GameConfig | None = None,
    ) -> GameResponse:
        """
        POST /games/create, binding the session to the deposit transaction.

        Raises:
            BetOutOfRange: When game_config is given and the bet violates it
            SessionCreateFailed: When the server refuses or answers garbage
        """
        if game_config is not None:
            bet = self.validate_bet(game_config, bet_amount)
        else:
            bet = to_decimal(bet_amount)
        if not deposit_proof:
            raise ValidationError("A deposit transaction reference is required")

        try:
            kind = GameKind.parse(game_kind)
        except ValueError as e:
            raise ValidationError(str(e)) from e
        if kind == GameKind.UNSET:
            raise ValidationError("A game kind is required to create a session")

        request = CreateGameRequest(
            game_type=kind.value,
            bet_amount=bet,
            deposit_tx_hash=deposit_proof,
            client_seed=client_seed,
            device_fingerprint=device_fingerprint,
        )
        response = await self.client.post("/games/create", request.to_wire())
        if not response.success:
            raise SessionCreateFailed(
                self._failure(response, "Failed to create game session")
            )
        try:
            created = self._parse(
                GameResponse, response.data, GameApiError, "create session", response.http_status
            )
        except GameApiError as e:
            raise SessionCreateFailed(str(e)) from e
        if not created.session_id:
            raise SessionCreateFailed("Create session response carries no sessionId")
        return created

    async def submit_move(self, session_id: str, move: Move | None = None) -> GameResponse:
        """
        POST /games/play. A None move omits the field, asking the server to
        auto-play the rest of the game.

        Raises:
            InvalidSession: Unknown, completed or cancelled session
            MoveRejected: Any other failure
        """
        if not session_id:
            raise InvalidSession("No active game session")

        request = PlayGameRequest(
            session_id=session_id,
            move=move.to_wire() if move is not None else None,
        )
        response = await self.client.post("/games/play", request.to_wire())
        if not response.success:
            message = self._failure(response, "Failed to make move")
            if response.http_status in INVALID_SESSION_STATUSES:
                raise InvalidSession(message, http_status=response.http_status)
            raise MoveRejected(message, http_status=response.http_status)
        return self._parse(GameResponse, response.data, MoveRejected, "play", response.http_status)

    async def fetch_session(self, session_id: str) -> SessionSnapshot:
        """GET /games/session/{id}"""
        if not session_id:
            raise InvalidSession("No active game session")

        response = await self.client.get(f"/games/session/{session_id}")
        if not response.success:
            message = self._failure(response, "Failed to fetch game session")
            if response.http_status in INVALID_SESSION_STATUSES:
                raise InvalidSession(message, http_status=response.http_status)
            raise GameApiError(message, http_status=response.http_status)
        return self._parse(
            SessionSnapshot,
            self._snapshot_payload(response.data),
            GameApiError,
            "session",
            response.http_status,
        )

    async def cancel_session(self, session_id: str, reason: str = "Cancelled by client") -> bool:
        """POST /games/cancel/{id}"""
        if not session_id:
            raise InvalidSession("No active game session")

        response = await self.client.post(f"/games/cancel/{session_id}", {"reason": reason})
        if not response.success:
            message = self._failure(response, "Failed to cancel game session")
            if response.http_status in INVALID_SESSION_STATUSES:
                raise InvalidSession(message, http_status=response.http_status)
            raise GameApiError(message, http_status=response.http_status)

        data = response.data
        if isinstance(data, dict) and "cancelled" in data:
            return bool(data["cancelled"])
        return True

    async def history(
        self,
        game_kind: GameKind | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[SessionSnapshot]:
        """GET /games/history"""
        params = {
            "gameType": GameKind.parse(game_kind).value if game_kind else None,
            "limit": limit,
            "offset": offset,
        }
        response = await self.client.get("/games/history", params=params)
        if not response.success:
            raise GameApiError(
                self._failure(response, "Failed to fetch game history"),
                http_status=response.http_status,
            )

        items = response.data
        if isinstance(items, dict):
            items = items.get("games") or items.get("sessions") or []
        if not isinstance(items, list):
            raise GameApiError("Malformed history response from server")
        try:
            return [SessionSnapshot.model_validate(self._snapshot_payload(i)) for i in items]
        except PydanticValidationError as e:
            raise GameApiError("Malformed history response from server") from e
