"""
Configuration module for the staked game client
Centralizes game bounds, ledger, backend and token settings with validation
"""

import json
import logging
import os
import threading
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Optional, Union


class ConfigError(Exception):
    """Configuration validation error"""
    pass


def _safe_int_env(name: str, default: int, min_val: int = None, max_val: int = None) -> int:
    """
    Safely parse integer environment variable with bounds.
    Falls back to default on invalid values.
    """
    logger_local = logging.getLogger(__name__)
    try:
        value = int(os.getenv(name, str(default)))
        if min_val is not None:
            value = max(min_val, value)
        if max_val is not None:
            value = min(max_val, value)
        return value
    except (ValueError, TypeError):
        logger_local.warning(f"Invalid {name}, using default {default}")
        return default


class Config:
    """
    Configuration management with:
    - Input validation
    - Environment variable support
    - Safe defaults
    - JSON overrides per section
    """

    # ========== Game Bounds ==========
    # auto_resolve: single-decision games the server finishes on auto-play
    GAMES = {
        'blackjack': {
            'min_bet': Decimal('0.01'),
            'max_bet': Decimal('100'),
            'base_multiplier': Decimal('2'),
            'house_edge': Decimal('0.005'),
            'auto_resolve': False,
        },
        'dice': {
            'min_bet': Decimal('0.001'),
            'max_bet': Decimal('100'),
            'base_multiplier': Decimal('1'),
            'house_edge': Decimal('0.01'),
            'auto_resolve': True,
        },
        'slots': {
            'min_bet': Decimal('0.01'),
            'max_bet': Decimal('50'),
            'base_multiplier': Decimal('1'),
            'house_edge': Decimal('0.04'),
            'auto_resolve': True,
        },
        'shipcaptaincrew': {
            'min_bet': Decimal('0.01'),
            'max_bet': Decimal('50'),
            'base_multiplier': Decimal('2'),
            'house_edge': Decimal('0.02'),
            'auto_resolve': True,
        },
    }

    # ========== Ledger Settings ==========
    @classmethod
    def get_ledger_config(cls) -> dict:
        """Get ledger configuration with validation"""
        return {
            'rpc_url': os.getenv('SOLANA_RPC_URL', 'https://api.devnet.solana.com'),
            'commitment': os.getenv('SOLANA_COMMITMENT', 'confirmed'),
            'poll_interval_ms': _safe_int_env('LEDGER_POLL_INTERVAL_MS', 1000, 50, 60000),
            'confirmation_timeout_ms': _safe_int_env(
                'LEDGER_CONFIRMATION_TIMEOUT_MS', 30000, 1000, 600000
            ),
            'recovery_timeout_ms': _safe_int_env('LEDGER_RECOVERY_TIMEOUT_MS', 10000, 1000, 600000),
            'rpc_timeout_seconds': _safe_int_env('LEDGER_RPC_TIMEOUT_SECONDS', 10, 1, 120),
        }

    LEDGER = property(lambda self: self._with_overrides('ledger', self.get_ledger_config()))

    # ========== Backend Settings ==========
    @classmethod
    def get_backend_config(cls) -> dict:
        """Get game backend configuration"""
        return {
            'base_url': os.getenv('GAME_API_URL', 'http://localhost:3001/api').rstrip('/'),
            'timeout_seconds': _safe_int_env('GAME_API_TIMEOUT_SECONDS', 10, 1, 120),
        }

    BACKEND = property(lambda self: self._with_overrides('backend', self.get_backend_config()))

    # ========== Staking Token ==========
    @classmethod
    def get_token_config(cls) -> dict:
        """Get staking token settings"""
        return {
            'name': os.getenv('STAKING_TOKEN_NAME', 'Cash Token'),
            'symbol': os.getenv('STAKING_TOKEN_SYMBOL', 'CASH'),
            'decimals': _safe_int_env('STAKING_TOKEN_DECIMALS', 9, 0, 18),
            'mint': os.getenv('STAKING_TOKEN_MINT', 'A7DRJdbf6zwjY3wwmecUpiGHqvzcWjcLsJWGe52rj7WL'),
        }

    TOKEN = property(lambda self: self._with_overrides('token', self.get_token_config()))

    # Deposit recipient for every stake
    MANAGER_WALLET_ADDRESS = os.getenv('MANAGER_WALLET_ADDRESS', '')

    # ========== File Settings ==========
    @classmethod
    def get_files_config(cls) -> dict:
        """Get file configuration with lazy initialization to avoid import issues"""
        return {
            'log_dir': Path(os.getenv(
                'STAKEPLAY_LOG_DIR',
                str(Path.home() / '.stakeplay' / 'logs')
            )),
        }

    # ========== Logging Settings ==========
    LOGGING = {
        'level': os.getenv('LOG_LEVEL', 'INFO'),
        'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        'date_format': '%Y-%m-%d %H:%M:%S',
        'max_bytes': 5 * 1024 * 1024,
        'backup_count': 3,
        'console_output': True,
    }

    def __init__(
        self,
        config_file: Optional[str] = None,
        validate: bool = True,
    ):
        """
        Initialize configuration with optional validation

        Args:
            config_file: Optional path to JSON config file
            validate: Whether to validate configuration on init
        """
        self._lock = threading.RLock()
        self._files_config: Optional[dict] = None
        self.config_file = config_file
        self._custom_settings = {}

        if config_file:
            self.load_from_file(config_file)

        if validate:
            self.validate()

    @property
    def FILES(self) -> dict:
        """Cached file configuration"""
        with self._lock:
            if self._files_config is None:
                self._files_config = self.get_files_config()
            return self._files_config

    def _with_overrides(self, section: str, values: dict) -> dict:
        """Layer file or set() overrides for a section over its defaults"""
        with self._lock:
            overrides = self._custom_settings.get(section)
            if isinstance(overrides, dict):
                values.update(overrides)
        return values

    def validate(self):
        """
        Validate all configuration values

        Raises:
            ConfigError: If configuration is invalid
        """
        errors = []

        for game_type in self.GAMES:
            bounds = self.get_game_bounds(game_type)
            if bounds['min_bet'] <= 0:
                errors.append(f"{game_type}: min_bet must be positive")
            if bounds['max_bet'] < bounds['min_bet']:
                errors.append(f"{game_type}: max_bet must not be below min_bet")

        ledger = self.LEDGER
        if ledger['commitment'] not in ('confirmed', 'finalized'):
            errors.append(f"Invalid ledger commitment: {ledger['commitment']}")
        if ledger['confirmation_timeout_ms'] < ledger['poll_interval_ms']:
            errors.append("confirmation_timeout_ms must be at least one poll interval")

        if not str(self.BACKEND['base_url']).startswith(('http://', 'https://')):
            errors.append("GAME_API_URL must be an http(s) URL")

        if self.TOKEN['decimals'] < 0:
            errors.append("Token decimals cannot be negative")

        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if self.LOGGING['level'].upper() not in valid_levels:
            errors.append(f"Invalid log level: {self.LOGGING['level']}")

        if errors:
            raise ConfigError("Configuration validation failed:\n" + "\n".join(errors))

    def load_from_file(self, filepath: Union[str, Path]):
        """
        Load configuration overrides from a JSON file

        Game bounds are read back as Decimal from their string form.

        Args:
            filepath: Path to JSON configuration file
        """
        filepath = Path(filepath)
        logger_local = logging.getLogger(__name__)

        if not filepath.exists():
            logger_local.warning(f"Config file not found: {filepath}")
            return

        try:
            with open(filepath, 'r') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in config file: {e}")
        except OSError as e:
            raise ConfigError(f"Error loading config file: {e}")

        games = data.get('games')
        if isinstance(games, dict):
            data['games'] = {
                name: self._deserialize_dict(values)
                for name, values in games.items()
                if isinstance(values, dict)
            }

        with self._lock:
            self._custom_settings = data

        logger_local.info(f"Loaded configuration from {filepath}")

    def _deserialize_dict(self, d: dict) -> dict:
        """Restore Decimal values for bet bounds"""
        result = {}
        for key, value in d.items():
            if key in ('min_bet', 'max_bet', 'base_multiplier', 'house_edge'):
                result[key] = Decimal(str(value))
            else:
                result[key] = value
        return result

    def get(self, section: str, key: str, default: Any = None) -> Any:
        """
        Get configuration value with support for custom settings

        Args:
            section: Configuration section name
            key: Configuration key
            default: Default value if not found

        Returns:
            Configuration value or default
        """
        with self._lock:
            section_lower = section.lower()
            if section_lower in self._custom_settings:
                if key in self._custom_settings[section_lower]:
                    return self._custom_settings[section_lower][key]

            section_attr = section.upper()
            if hasattr(self, section_attr):
                section_dict = getattr(self, section_attr)
                if isinstance(section_dict, dict):
                    return section_dict.get(key, default)

        return default

    def set(self, section: str, key: str, value: Any):
        """
        Set a configuration value

        Args:
            section: Configuration section name
            key: Configuration key
            value: Value to set
        """
        with self._lock:
            section_lower = section.lower()
            if section_lower not in self._custom_settings:
                self._custom_settings[section_lower] = {}
            self._custom_settings[section_lower][key] = value

    def get_game_bounds(self, game_type: str) -> Dict[str, Any]:
        """
        Get bet bounds for a game, with file overrides applied

        Raises:
            ConfigError: If the game type is not configured
        """
        key = str(game_type).lower()
        if key not in self.GAMES:
            raise ConfigError(f"No configuration for game type: {game_type}")
        bounds = dict(self.GAMES[key])
        with self._lock:
            overrides = self._custom_settings.get('games', {}).get(key, {})
        bounds.update(overrides)
        return bounds

    def get_game_config(self, game_type: str):
        """Get bet bounds for a game as a GameConfig model"""
        from models.api import GameConfig

        return GameConfig(**self.get_game_bounds(game_type))

    def to_dict(self) -> dict:
        """Export entire configuration as dictionary"""
        with self._lock:
            custom_settings = self._custom_settings.copy()

        return {
            'games': {
                name: {k: str(v) if isinstance(v, Decimal) else v for k, v in values.items()}
                for name, values in self.GAMES.items()
            },
            'ledger': self.LEDGER,
            'backend': self.BACKEND,
            'token': self.TOKEN,
            'files': {k: str(v) for k, v in self.FILES.items()},
            'logging': self.LOGGING,
            'custom': custom_settings,
        }


# Create global configuration instance.
#
# IMPORTANT: Keep this import side-effect free. Runtime initialization (logging
# configuration, validation) must happen in an explicit startup path
# (see `scripts/query_session.py`).
config = Config(validate=False)
