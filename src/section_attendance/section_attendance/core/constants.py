"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_RANGE_DAYS = 30
MAX_RANGE_DAYS = 366
DEFAULT_CACHE_TTL_SECONDS = 60
DEFAULT_NOTIFICATION_WORKERS = 4
DEFAULT_NOTIFICATION_TIMEOUT_SECONDS = 5.0
CACHE_STATUS_HEADER = "X-Cache"

# Cache scope generations outlive entries so a slow read still sees the bump.
GENERATION_TTL_SECONDS = 7 * 24 * 3600
