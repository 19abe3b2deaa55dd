"""
Tests for session models (SessionView, DepositRecord, Move) and enums
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError

from models import (
    DepositRecord,
    ErrorKind,
    ErrorRecord,
    GameKind,
    GameResult,
    Move,
    ServerStatus,
    SessionPhase,
    SessionView,
)


class TestGameKind:
    """Tests for GameKind.parse"""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("blackjack", GameKind.BLACKJACK),
            ("Dice", GameKind.DICE),
            (" SLOTS ", GameKind.SLOTS),
            ("ship_captain_crew", GameKind.SHIP_CAPTAIN_CREW),
            (GameKind.DICE, GameKind.DICE),
        ],
    )
    def test_parse(self, raw, expected):
        assert GameKind.parse(raw) == expected

    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            GameKind.parse("roulette")


class TestStatuses:
    """Tests for phase and server status helpers"""

    @pytest.mark.parametrize("status", ["completed", "cancelled", "COMPLETED"])
    def test_terminal_statuses(self, status):
        assert ServerStatus.is_terminal(status)

    @pytest.mark.parametrize("status", ["playing", "in_progress", "created", "mystery", "error", None])
    def test_non_terminal_statuses(self, status):
        assert not ServerStatus.is_terminal(status)

    @pytest.mark.parametrize("status", ["error", "ERROR"])
    def test_error_status(self, status):
        assert ServerStatus.is_error(status)

    @pytest.mark.parametrize("status", ["completed", "cancelled", "playing", None])
    def test_other_statuses_are_not_errors(self, status):
        assert not ServerStatus.is_error(status)


class TestSessionView:
    """Tests for SessionView defaults"""

    def test_defaults(self):
        view = SessionView()

        assert view.phase == SessionPhase.IDLE
        assert view.game_kind == GameKind.UNSET
        assert view.session_id is None
        assert view.result is None
        assert view.last_error is None
        assert view.is_loading is False

    def test_deep_copy_is_independent(self):
        view = SessionView(session_id="s1", server_state={"hand": ["A"]})

        copy = view.model_copy(deep=True)
        copy.server_state["hand"].append("K")

        assert view.server_state == {"hand": ["A"]}


class TestDepositRecord:
    """Tests for DepositRecord"""

    def _deposit(self, deadline):
        return DepositRecord(
            transaction_ref="tx1",
            amount=Decimal("5"),
            token_kind="Mint1",
            confirmation_deadline=deadline,
        )

    def test_remaining_ms(self):
        now = datetime(2026, 1, 1, tzinfo=timezone.utc)
        deposit = self._deposit(now + timedelta(milliseconds=1500))

        assert deposit.remaining_ms(now) == 1500

    def test_remaining_never_negative(self):
        now = datetime(2026, 1, 1, tzinfo=timezone.utc)
        deposit = self._deposit(now - timedelta(seconds=5))

        assert deposit.remaining_ms(now) == 0

    def test_transaction_ref_is_immutable(self):
        deposit = self._deposit(datetime.now(timezone.utc))

        with pytest.raises(ValidationError):
            deposit.transaction_ref = "tx2"


class TestMove:
    """Tests for Move wire format"""

    def test_to_wire_uses_operation_id_alias(self):
        move = Move(action="hit", data={"hand": 0}, operation_id="op_1_abcdef0123456789")

        assert move.to_wire() == {
            "action": "hit",
            "data": {"hand": 0},
            "operationId": "op_1_abcdef0123456789",
        }

    def test_accepts_wire_alias(self):
        move = Move.model_validate({"action": "stand", "operationId": "op_2_x"})

        assert move.operation_id == "op_2_x"


class TestRecords:
    def test_error_record_timestamp(self):
        record = ErrorRecord(kind=ErrorKind.BUSY, message="busy")

        assert record.at.tzinfo is not None
        assert record.phase is None

    def test_game_result_coerces_floats(self):
        result = GameResult(is_win=True, multiplier=1.98, payout=None)

        assert result.multiplier == Decimal("1.98")
        assert result.payout == Decimal("0")
