"""Services package.

Keep this module lightweight: importing `services` only wires up logging.
"""

from __future__ import annotations

from .logger import cleanup_logging, get_logger, setup_logging

__all__ = ["cleanup_logging", "get_logger", "setup_logging"]
