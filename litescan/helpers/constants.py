"""Common configuration constants used across the application."""

# Scan Constants
SCAN_WINDOW_SIZE = 20
"""Default number of block fetches running concurrently in one scan window"""

BLOCK_FETCH_ATTEMPTS = 3
"""Attempts per block before it is recorded as incomplete"""

PROBE_CONCURRENCY = 20
"""Maximum number of contracts probed concurrently"""

BALANCE_CONCURRENCY = 20
"""Maximum number of balance reads running concurrently for the network graph"""

# HTTP and Network Constants
DEFAULT_TIMEOUT = 30.0
"""Default JSON-RPC request timeout in seconds"""

CONNECTION_TIMEOUT = 3.0
"""Timeout for establishing connections"""

# Retry Configuration
MAX_RETRIES = 5
"""Default maximum number of retry attempts"""

RETRY_BASE_DELAY = 0.5
"""Base delay for exponential backoff in seconds"""

RETRY_MAX_DELAY = 10.0
"""Maximum delay between retries in seconds"""

# HTTP Connection Pooling
MAX_KEEPALIVE_CONNECTIONS = 20
"""Maximum number of keepalive connections in pool"""

MAX_CONNECTIONS = 40
"""Maximum total number of connections"""

# Cache Constants
DEFAULT_CACHE_PATH = "data/cache.json"
"""Default location of the JSON cache document"""

DEFAULT_SYNC_INTERVAL = 15
"""Seconds between scheduled syncs in watch mode"""

# Chain Constants
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
"""Destination some clients report for contract creation transactions"""

DEFAULT_TOKEN_DECIMALS = 18
"""Decimals assumed when a token does not answer decimals()"""

ERC20_SELECTORS = {
    "name": "0x06fdde03",
    "symbol": "0x95d89b41",
    "decimals": "0x313ce567",
    "totalSupply": "0x18160ddd",
}
"""Four-byte selectors of the ERC-20 read methods used to classify tokens"""

# Query Constants
DASHBOARD_ITEMS = 6
"""Number of blocks and transactions shown on the dashboard"""

RECENT_BLOCKS = 25
"""Default number of blocks returned by the blocks view"""


__all__ = [
    "BALANCE_CONCURRENCY",
    "BLOCK_FETCH_ATTEMPTS",
    "CONNECTION_TIMEOUT",
    "DASHBOARD_ITEMS",
    "DEFAULT_CACHE_PATH",
    "DEFAULT_SYNC_INTERVAL",
    "DEFAULT_TIMEOUT",
    "DEFAULT_TOKEN_DECIMALS",
    "ERC20_SELECTORS",
    "MAX_CONNECTIONS",
    "MAX_KEEPALIVE_CONNECTIONS",
    "MAX_RETRIES",
    "PROBE_CONCURRENCY",
    "RECENT_BLOCKS",
    "RETRY_BASE_DELAY",
    "RETRY_MAX_DELAY",
    "SCAN_WINDOW_SIZE",
    "ZERO_ADDRESS",
]
