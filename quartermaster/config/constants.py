"""Shared runtime constants for quartermaster services."""

SERVICE_NAMES = [
    "quartermaster",
    "command_api",
]

DEFAULT_CHECK_INTERVAL = 30 * 60.0
DEFAULT_NOTIFY_INTERVAL = 24 * 60 * 60.0
DEFAULT_REPOSITORY_FILE = "repository.db"
DEFAULT_API_PORT = 8000

DEFAULT_ESI_BASE_URL = "https://esi.evetech.net/latest"
DEFAULT_SSO_BASE_URL = "https://login.eveonline.com/v2/oauth"
DEFAULT_DISCORD_API_BASE_URL = "https://discord.com/api/v10"
DEFAULT_USER_AGENT = "EVE Quartermaster/0.1"
DEFAULT_REQUEST_TIMEOUT = 30.0
DEFAULT_RATE_LIMIT_MAX_RETRIES = 3
DEFAULT_RATE_LIMIT_BACKOFF_BASE = 1.0
DEFAULT_RATE_LIMIT_BACKOFF_MAX = 30.0
DEFAULT_RATE_LIMIT_JITTER = 0.5

# Listing titles starting with this marker record a sale price, not stock.
PRICE_TRACKING_PREFIX = "*"
NAME_SIMILARITY_THRESHOLD = 0.8
MIGRATION_VALIDITY_SECONDS = 10 * 60.0
MIGRATION_EXPIRED_TEXT = "Sorry, the migration request is only valid for 10 minutes."
MIGRATION_CONFIRM_EMOJI = "✅"
ACK_EMOJI = "\U0001F44D"
FAIL_EMOJI = "❌"
LEADERBOARD_SIZE = 10

DISCORD_MAX_DESCRIPTION_LENGTH = 4096
THUMBNAIL_URL = "https://i.imgur.com/ZwUn8DI.jpg"
STOCK_THUMBNAIL_URL = "https://i.imgur.com/pKEZq6F.png"
ALL_GOOD_IMAGE_URL = "https://i.imgur.com/rYbXjfI.gif"
COLOR_OK = 0x00FF00
COLOR_ALERT = 0xFF0000
COLOR_CONFIRM = 0xFFFF00
