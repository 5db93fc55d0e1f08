"""Configuration management and environment variable utilities."""

import os

from pathlib import Path

from dotenv import load_dotenv

from litescan.helpers.constants import (
    DEFAULT_CACHE_PATH,
    DEFAULT_SYNC_INTERVAL,
    SCAN_WINDOW_SIZE,
)


# Load environment variables from .env file
load_dotenv()


def get_required_env(key: str) -> str:
    """Get a required environment variable.

    Args:
        key: Environment variable name

    Returns:
        Environment variable value

    Raises:
        ValueError: If the environment variable is not set
    """
    value = os.getenv(key)
    if not value:
        msg = f"{key} environment variable is not set"
        raise ValueError(msg)
    return value


def get_optional_env(key: str, default: str | None = None) -> str | None:
    """Get an optional environment variable with a default value.

    Args:
        key: Environment variable name
        default: Default value if not set

    Returns:
        Environment variable value or default
    """
    return os.getenv(key, default)


def get_int_env(key: str, default: int, *, minimum: int = 1) -> int:
    """Get an integer environment variable.

    Args:
        key: Environment variable name
        default: Value used when the variable is unset or empty
        minimum: Smallest accepted value

    Returns:
        Parsed integer

    Raises:
        ValueError: If the value is not an integer or is below minimum

    Example:
        ```python
        from litescan.helpers.config import get_int_env

        window = get_int_env("LITESCAN_SCAN_WINDOW", 20)
        ```
    """
    raw = os.getenv(key)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        msg = f"{key} must be an integer, got {raw!r}"
        raise ValueError(msg) from None
    if value < minimum:
        msg = f"{key} must be >= {minimum}, got {value}"
        raise ValueError(msg)
    return value


def get_bool_env(key: str, *, default: bool = False) -> bool:
    """Get a boolean environment variable ("1", "true", "yes" are truthy)."""
    raw = os.getenv(key)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def get_eth_rpc_url(rpc_url: str | None = None) -> str:
    """Get the node JSON-RPC URL from parameter or environment.

    Args:
        rpc_url: Optional RPC URL to use directly

    Returns:
        JSON-RPC URL

    Raises:
        ValueError: If rpc_url is not given and ETH_RPC_URL is not set
    """
    return rpc_url or get_required_env("ETH_RPC_URL")


def get_cache_path(path: str | Path | None = None) -> Path:
    """Get the JSON cache file location (LITESCAN_CACHE_PATH)."""
    if path:
        return Path(path)
    return Path(get_optional_env("LITESCAN_CACHE_PATH") or DEFAULT_CACHE_PATH)


def get_database_url() -> str | None:
    """Get the SQL cache database URL, or None to use the JSON store."""
    return get_optional_env("LITESCAN_DATABASE_URL") or None


def get_scan_window() -> int:
    """Number of concurrent block fetches per scan window."""
    return get_int_env("LITESCAN_SCAN_WINDOW", SCAN_WINDOW_SIZE)


def get_sync_interval() -> int:
    """Seconds between scheduled syncs."""
    return get_int_env("LITESCAN_SYNC_INTERVAL", DEFAULT_SYNC_INTERVAL)


__all__ = [
    "get_bool_env",
    "get_cache_path",
    "get_database_url",
    "get_eth_rpc_url",
    "get_int_env",
    "get_optional_env",
    "get_required_env",
    "get_scan_window",
    "get_sync_interval",
]
