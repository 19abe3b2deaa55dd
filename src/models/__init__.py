"""
Data models for staked game sessions
"""

from .api import (
    ApiResponse,
    CreateGameRequest,
    GameConfig,
    GameResponse,
    PlayGameRequest,
    ServerGameResult,
    SessionSnapshot,
    SupportedGame,
)
from .enums import ErrorKind, GameKind, ServerStatus, SessionPhase
from .session import DepositRecord, ErrorRecord, GameResult, Move, SessionView

__all__ = [
    "ErrorKind",
    "GameKind",
    "ServerStatus",
    "SessionPhase",
    # Orchestrator-owned state
    "DepositRecord",
    "ErrorRecord",
    "GameResult",
    "Move",
    "SessionView",
    # Backend wire payloads
    "ApiResponse",
    "CreateGameRequest",
    "GameConfig",
    "GameResponse",
    "PlayGameRequest",
    "ServerGameResult",
    "SessionSnapshot",
    "SupportedGame",
]
