"""
Shared constants for pkgbadges.
"""

# Badge defaults
DEFAULT_LABEL = "pkgbadges"
SCHEMA_VERSION = 1
BADGE_CACHE_MAX_AGE = 300  # Cache-Control max-age for served badges

# Badge colors (shields.io named colors)
COLOR_BRIGHTGREEN = "brightgreen"
COLOR_GREEN = "green"
COLOR_YELLOWGREEN = "yellowgreen"
COLOR_YELLOW = "yellow"
COLOR_ORANGE = "orange"
COLOR_RED = "red"
COLOR_BLUE = "blue"
COLOR_LIGHTGRAY = "lightgray"

# Upstream APIs
CHOCOLATEY_API = "https://community.chocolatey.org/api/v2"
POWERSHELL_GALLERY_API = "https://www.powershellgallery.com/api/v2"
RESHARPER_API = "https://resharper-plugins.jetbrains.com/api/v2"
ECLIPSE_MARKETPLACE_API = "https://marketplace.eclipse.org/content"
YOUTUBE_API = "https://www.googleapis.com/youtube/v3"

# Timeouts
DEFAULT_TIMEOUT = 30.0

# Response cache
DEFAULT_CACHE_TTL_SECONDS = 300
MAX_CACHE_ENTRIES = 1000

# HTTP status codes that are safe to retry
RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}
