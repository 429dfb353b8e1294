"""
Application constants.

Centralized constants for the application.
"""

# ========================================================================
# TOKEN / EVENT CONSTANTS
# ========================================================================

# Canonical ERC-20 Transfer event signature
TRANSFER_EVENT_SIGNATURE = "Transfer(address,address,uint256)"

# Topics: signature hash, from, to
TRANSFER_TOPIC_COUNT = 3

# Indexed topic slot size in bytes; addresses occupy the low 20 bytes
TOPIC_SIZE = 32
ADDRESS_SIZE = 20

# ========================================================================
# SUBSCRIPTION CONSTANTS
# ========================================================================

# Reconnect backoff (in seconds): base * 2**(attempt-1), capped, plus jitter
RECONNECT_BASE_DELAY = 1.0
RECONNECT_MAX_DELAY = 60.0
RECONNECT_JITTER_MAX = 1.0

# Delay before the supervisor restarts a crashed subscriber (in seconds)
SUBSCRIBER_RESTART_DELAY = 5.0

# ========================================================================
# DEFAULTS
# ========================================================================

DEFAULT_CONFIG_FILE = "config.toml"
DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///netflow.db"
DEFAULT_API_HOST = "127.0.0.1"
DEFAULT_API_PORT = 3030

# Flow directions stored on transfer records
DIRECTION_INFLOW = "inflow"
DIRECTION_OUTFLOW = "outflow"
