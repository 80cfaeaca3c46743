"""Configuration constants for the settlebot client.

Network, logging and reconnect settings can be overridden via environment
variables. Uses _safe_int() to validate integer env vars with range checking.
"""
import os
import logging

_logger = logging.getLogger(__name__)


def _safe_int(env_var: str, default: int, min_val: int = 1, max_val: int = 65535) -> int:
    """Parse integer from environment variable with validation and fallback.

    Args:
        env_var: Name of the environment variable.
        default: Default value if env var is unset or invalid.
        min_val: Minimum acceptable value (inclusive).
        max_val: Maximum acceptable value (inclusive).

    Returns:
        Parsed integer, or default if parsing/validation fails.
    """
    raw = os.environ.get(env_var)
    if raw is None:
        return default
    try:
        val = int(raw)
        if val < min_val or val > max_val:
            _logger.warning(
                f"{env_var}={val} out of range [{min_val}, {max_val}], "
                f"using default {default}"
            )
            return default
        return val
    except ValueError:
        _logger.warning(
            f"{env_var}={raw!r} is not a valid integer, using default {default}"
        )
        return default


# Network configuration with environment overrides
SERVER_HOST = os.environ.get("SETTLEBOT_HOST", "localhost")
SERVER_PORT = _safe_int("SETTLEBOT_PORT", 10006, 1, 65535)
BOT_NAME = os.environ.get("SETTLEBOT_NAME", "settlebot")
LOG_DIR = os.environ.get("SETTLEBOT_LOG_DIR", "logs")

# Reconnect backoff (env vars use milliseconds, converted to seconds at use time)
RECONNECT_MIN_MS = _safe_int("SETTLEBOT_RECONNECT_MIN_MS", 1000, 1, 60000)
RECONNECT_MAX_MS = _safe_int("SETTLEBOT_RECONNECT_MAX_MS", 30000, 0, 600000)

# Wire framing
LINE_TERMINATOR = "\r\n"
# Full snapshots arrive on a single line; asyncio's 64 KiB default is too small
READ_LIMIT_BYTES = _safe_int("SETTLEBOT_READ_LIMIT_BYTES", 4 * 1024 * 1024, 65536, 256 * 1024 * 1024)

# Inbound envelope models
MODEL_GAME = "game"
MODEL_RESPONSE = "response"
MODEL_JOIN = "join"

# Server response codes
RESPONSE_OK = 0
RESPONSE_ID_ACKNOWLEDGMENT = 1
RESPONSE_TRADE_REQUEST = 100
RESPONSE_BUILD_REQUEST = 101
RESPONSE_INITIAL_BUILD_REQUEST = 102
RESPONSE_MOVE_BANDIT_REQUEST = 103
RESPONSE_FORCE_DISCARD_REQUEST = 104

# Structure names used on nodes, edges and in build commands
STRUCTURE_NONE = ""
STRUCTURE_VILLAGE = "village"
STRUCTURE_CITY = "city"
STRUCTURE_STREET = "street"

# Tiles of this type produce nothing and are never offered in trades
DESERT_RESOURCE = "desert"
