"""Pipeline-wide constants.

These are provider facts and file-layout conventions that do not change
between environments. For configurable values, see config.py Settings.
"""

# ─────────────────────────────────────────────────────────────
# API Rate Limits (external constraints)
# ─────────────────────────────────────────────────────────────
ALPHA_VANTAGE_REQUEST_INTERVAL_SECONDS = 12.0  # 5 calls/minute free tier
ALPHA_VANTAGE_DAILY_LIMIT = 25
SEC_EDGAR_REQUEST_INTERVAL_SECONDS = 0.1  # 10 req/sec ceiling
YAHOO_REQUEST_INTERVAL_SECONDS = 0.5
MASSIVE_REQUEST_INTERVAL_SECONDS = 0.1
TWELVE_DATA_CREDITS_PER_MINUTE = 8
FINNHUB_CALLS_PER_SECOND = 30

# Bounded backoff on HTTP 429
RETRY_MAX_DELAY_SECONDS = 60.0

# ─────────────────────────────────────────────────────────────
# API URLs
# ─────────────────────────────────────────────────────────────
ALPHA_VANTAGE_BASE_URL = "https://www.alphavantage.co/query"
SEC_BASE_URL = "https://data.sec.gov"
SEC_WWW_URL = "https://www.sec.gov"
YAHOO_CHART_URL = "https://query1.finance.yahoo.com/v8/finance/chart"
TWELVE_DATA_BASE_URL = "https://api.twelvedata.com"
FINNHUB_BASE_URL = "https://finnhub.io/api/v1"
MASSIVE_BASE_URL = "https://api.polygon.io"

YAHOO_USER_AGENT = "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7)"

# ─────────────────────────────────────────────────────────────
# Data conventions
# ─────────────────────────────────────────────────────────────
# Alpha Vantage daily bars carry no time; stamp them at market close
MARKET_CLOSE_TIME = "16:00:00"

# Open-ended periods are treated as running until this date
OPEN_ENDED_DATE = "2099-12-31"

# Sentinels for the cross-entity date-range scan
EARLIEST_SENTINEL = "9999-12-31"
LATEST_SENTINEL = "0000-01-01"

CSV_HEADER = (
    "date",
    "open",
    "high",
    "low",
    "close",
    "volume",
    "dollar_volume",
    "trade_count",
    "sources",
)
CSV_PRICE_DECIMALS = 6
CSV_DOLLAR_DECIMALS = 2
