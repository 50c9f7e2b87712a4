"""Application-wide constants.

These are fixed values that don't change between environments.
For configurable values, see config.py Settings.
"""

# ─────────────────────────────────────────────────────────────
# Public government feeds
# ─────────────────────────────────────────────────────────────
CMS_RSS_MAIN = "https://www.cms.gov/newsroom/rss.xml"
CMS_RSS_BEHAVIORAL_HEALTH = "https://www.cms.gov/rss/behavioral-health.xml"
CMS_RSS_PHYSICIAN_FEE_SCHEDULE = "https://www.cms.gov/rss/physician-fee-schedule.xml"
SAMHSA_RSS_NEWS = "https://www.samhsa.gov/rss/news.xml"
SAMHSA_RSS_GRANTS = "https://www.samhsa.gov/rss/grants.xml"
LIFELINE_988_URL = "https://988lifeline.org/"
CPT_REGISTRY_SOURCE_URL = (
    "https://www.cms.gov/medicare/regulations-guidance/physician-self-referral/list-cpt-hcpcs-codes"
)

# ─────────────────────────────────────────────────────────────
# Paid regulatory-intelligence providers
# ─────────────────────────────────────────────────────────────
LEXISNEXIS_SEARCH_URL = "https://api.lexisnexis.com/v1/regulatory/search"
WESTLAW_SEARCH_URL = "https://api.thomsonreuters.com/westlaw/v1/search"
PAID_PROVIDER_TIMEOUT_SECONDS = 20.0
PAID_PROVIDER_LOOKBACK_DAYS = 30

# ─────────────────────────────────────────────────────────────
# Timeouts / scheduling defaults (can be overridden in Settings)
# ─────────────────────────────────────────────────────────────
DEFAULT_HTTP_TIMEOUT_SECONDS = 15.0
DEFAULT_ADAPTER_TIMEOUT_SECONDS = 120.0
LIFELINE_PROBE_TIMEOUT_SECONDS = 10.0
DEFAULT_SYNC_HOUR_UTC = 2
RESCHEDULE_INTERVAL_HOURS = 24
DEFAULT_USER_AGENT = "Regwatch Compliance Monitor/1.0"

# ─────────────────────────────────────────────────────────────
# Column limits (mirrors storage/schema.sql)
# ─────────────────────────────────────────────────────────────
POLICY_TITLE_MAX_LENGTH = 511
POLICY_SUMMARY_MAX_LENGTH = 2000
POLICY_CATEGORY_MAX_LENGTH = 128
ALERT_TITLE_MAX_LENGTH = 255
ALERT_DESCRIPTION_MAX_LENGTH = 1000

# ─────────────────────────────────────────────────────────────
# Query surface page sizes
# ─────────────────────────────────────────────────────────────
ACTIVE_ALERTS_PAGE_SIZE = 50
SYNC_LOGS_DEFAULT_LIMIT = 20
POLICY_UPDATES_DEFAULT_LIMIT = 30

# ─────────────────────────────────────────────────────────────
# Message Limits (platform constraints)
# ─────────────────────────────────────────────────────────────
TELEGRAM_MAX_MESSAGE_LENGTH = 4096  # Telegram API limit
DISCORD_MAX_DESCRIPTION_LENGTH = 4096  # Embed description limit

STORE_UNAVAILABLE_MESSAGE = "Store unavailable"
