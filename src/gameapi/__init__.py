"""
Backend game service access
"""

from .client import ApiClientConfig, GameApiClient
from .protocol import INVALID_SESSION_STATUSES, GameSessionProtocol

__all__ = [
    "ApiClientConfig",
    "GameApiClient",
    "GameSessionProtocol",
    "INVALID_SESSION_STATUSES",
]
