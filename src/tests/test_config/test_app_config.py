"""
Tests for Config sections, validation and JSON overrides
"""

import json
from decimal import Decimal

import pytest

from unittest.mock import MagicMock

from config import Config, ConfigError, _safe_int_env
from core.session_orchestrator import SessionOrchestrator
from gameapi.client import GameApiClient
from models.api import GameConfig


class TestSafeIntEnv:
    def test_default_when_unset(self, monkeypatch):
        monkeypatch.delenv("STAKEPLAY_TEST_INT", raising=False)

        assert _safe_int_env("STAKEPLAY_TEST_INT", 7) == 7

    def test_clamped_to_bounds(self, monkeypatch):
        monkeypatch.setenv("STAKEPLAY_TEST_INT", "5")

        assert _safe_int_env("STAKEPLAY_TEST_INT", 1000, min_val=50) == 50

    def test_invalid_falls_back(self, monkeypatch):
        monkeypatch.setenv("STAKEPLAY_TEST_INT", "soon")

        assert _safe_int_env("STAKEPLAY_TEST_INT", 30) == 30


class TestSections:
    """Environment-driven sections"""

    def test_ledger_defaults(self, monkeypatch):
        for name in ("SOLANA_RPC_URL", "LEDGER_POLL_INTERVAL_MS", "LEDGER_CONFIRMATION_TIMEOUT_MS"):
            monkeypatch.delenv(name, raising=False)

        ledger = Config(validate=False).LEDGER

        assert ledger["poll_interval_ms"] == 1000
        assert ledger["confirmation_timeout_ms"] == 30000
        assert ledger["recovery_timeout_ms"] == 10000
        assert ledger["commitment"] == "confirmed"

    def test_ledger_env_override(self, monkeypatch):
        monkeypatch.setenv("LEDGER_POLL_INTERVAL_MS", "250")
        monkeypatch.setenv("SOLANA_RPC_URL", "http://localhost:8899")

        ledger = Config(validate=False).LEDGER

        assert ledger["poll_interval_ms"] == 250
        assert ledger["rpc_url"] == "http://localhost:8899"

    def test_backend_url_trailing_slash(self, monkeypatch):
        monkeypatch.setenv("GAME_API_URL", "https://games.example.com/api/")

        assert Config(validate=False).BACKEND["base_url"] == "https://games.example.com/api"

    def test_files_section_is_cached(self, monkeypatch, tmp_path):
        monkeypatch.setenv("STAKEPLAY_LOG_DIR", str(tmp_path))
        cfg = Config(validate=False)

        first = cfg.FILES
        monkeypatch.setenv("STAKEPLAY_LOG_DIR", str(tmp_path / "other"))

        assert cfg.FILES is first
        assert first["log_dir"] == tmp_path


class TestValidation:
    def test_defaults_are_valid(self, monkeypatch):
        for name in ("SOLANA_COMMITMENT", "GAME_API_URL", "LOG_LEVEL"):
            monkeypatch.delenv(name, raising=False)

        Config(validate=True)

    def test_rejects_processed_commitment(self, monkeypatch):
        monkeypatch.setenv("SOLANA_COMMITMENT", "processed")

        with pytest.raises(ConfigError) as exc_info:
            Config(validate=True)

        assert "commitment" in str(exc_info.value)

    def test_rejects_non_http_backend(self, monkeypatch):
        monkeypatch.setenv("GAME_API_URL", "ftp://games")

        with pytest.raises(ConfigError):
            Config(validate=True)

    def test_rejects_inverted_bounds(self):
        cfg = Config(validate=False)
        cfg.set("games", "dice", {"min_bet": Decimal("10"), "max_bet": Decimal("1")})

        with pytest.raises(ConfigError) as exc_info:
            cfg.validate()

        assert "dice" in str(exc_info.value)


class TestGameBounds:
    def test_game_config_model(self):
        game_config = Config(validate=False).get_game_config("blackjack")

        assert isinstance(game_config, GameConfig)
        assert game_config.auto_resolve is False
        assert game_config.max_bet == Decimal("100")

    def test_auto_resolving_games(self):
        cfg = Config(validate=False)

        assert cfg.get_game_config("dice").auto_resolve is True
        assert cfg.get_game_config("slots").auto_resolve is True

    def test_unknown_game(self):
        with pytest.raises(ConfigError):
            Config(validate=False).get_game_bounds("roulette")

    def test_file_overrides(self, tmp_path):
        path = tmp_path / "stakeplay.json"
        path.write_text(json.dumps({"games": {"dice": {"max_bet": "25", "min_bet": 0.5}}}))

        cfg = Config(config_file=str(path), validate=False)
        bounds = cfg.get_game_bounds("dice")

        assert bounds["max_bet"] == Decimal("25")
        assert bounds["min_bet"] == Decimal("0.5")
        assert bounds["auto_resolve"] is True

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")

        with pytest.raises(ConfigError):
            Config(config_file=str(path), validate=False)

    def test_missing_file_is_ignored(self, tmp_path):
        cfg = Config(config_file=str(tmp_path / "absent.json"), validate=False)

        assert cfg.get_game_bounds("dice")["max_bet"] == Decimal("100")


class TestAccessors:
    def test_get_prefers_custom_settings(self):
        cfg = Config(validate=False)
        cfg.set("token", "symbol", "TEST")

        assert cfg.get("token", "symbol") == "TEST"
        assert cfg.get("token", "decimals") == cfg.TOKEN["decimals"]
        assert cfg.get("nothing", "here", "fallback") == "fallback"

    def test_set_reaches_section_properties(self):
        cfg = Config(validate=False)
        cfg.set("ledger", "confirmation_timeout_ms", 5000)
        cfg.set("token", "decimals", 6)

        assert cfg.LEDGER["confirmation_timeout_ms"] == 5000
        assert cfg.LEDGER["poll_interval_ms"] == cfg.get_ledger_config()["poll_interval_ms"]
        assert cfg.TOKEN["decimals"] == 6

    def test_file_overrides_ledger_and_backend(self, tmp_path):
        path = tmp_path / "stakeplay.json"
        path.write_text(
            json.dumps(
                {
                    "ledger": {"rpc_url": "http://localhost:8899", "poll_interval_ms": 250},
                    "backend": {"base_url": "https://games.example.com/api"},
                }
            )
        )

        cfg = Config(config_file=str(path), validate=False)

        assert cfg.LEDGER["rpc_url"] == "http://localhost:8899"
        assert cfg.LEDGER["poll_interval_ms"] == 250
        assert GameApiClient.from_config(cfg.BACKEND).base_url == "https://games.example.com/api"

    def test_overrides_are_validated(self):
        cfg = Config(validate=False)
        cfg.set("backend", "base_url", "ftp://games")

        with pytest.raises(ConfigError) as exc_info:
            cfg.validate()

        assert "GAME_API_URL" in str(exc_info.value)

    def test_orchestrator_from_config_uses_overrides(self):
        cfg = Config(validate=False)
        cfg.set("ledger", "confirmation_timeout_ms", 4000)
        cfg.set("ledger", "poll_interval_ms", 200)
        cfg.set("token", "decimals", 6)
        api_client = GameApiClient.from_config(cfg.BACKEND)

        orchestrator = SessionOrchestrator.from_config(
            "dice", MagicMock(), api_client, app_config=cfg, device_fingerprint="fp"
        )

        assert orchestrator.confirmation_timeout_ms == 4000
        assert orchestrator.confirmation_waiter.poll_interval_ms == 200
        assert orchestrator.token_decimals == 6

    def test_to_dict_is_json_serializable(self):
        exported = Config(validate=False).to_dict()

        json.dumps(exported)
        assert exported["games"]["dice"]["max_bet"] == "100"
