"""Application constants - centralized configuration values."""

# =============================================================================
# Server
# =============================================================================
SERVER_HOST = "0.0.0.0"
SERVER_PORT = 3000

# =============================================================================
# Session & Security
# =============================================================================
SESSION_COOKIE_NAME = "gh_session"
SESSION_ID_KEY = "session_id"
OAUTH_STATE_KEY = "oauth_state"
CSRF_HEADER_NAME = "X-CSRF-Token"
CSRF_FORM_FIELD = "csrf_token"
DEFAULT_SESSION_TTL_HOURS = 8
TOKEN_BYTES = 32
REDIS_SESSION_PREFIX = "collab_dashboard:session:"

# =============================================================================
# OAuth
# =============================================================================
OAUTH_SCOPES = ("repo", "read:org")

# =============================================================================
# GitHub API
# =============================================================================
GITHUB_API_URL = "https://api.github.com"
GITHUB_OAUTH_URL = "https://github.com"
GITHUB_API_VERSION = "2022-11-28"
GITHUB_USER_AGENT = "collaborator-audit-dashboard"
GITHUB_PAGE_SIZE = 100
MAX_PAGES = 50  # Hard stop when following Link headers

# =============================================================================
# Limits
# =============================================================================
DEFAULT_MAX_CONCURRENCY = 10
MAX_REMOVE_BATCH = 100

# =============================================================================
# API Timeouts (in seconds)
# =============================================================================
HTTPX_TIMEOUT = 10.0

# =============================================================================
# Background Task Intervals (in seconds)
# =============================================================================
SESSION_PURGE_INTERVAL = 10 * 60  # 10 minutes
