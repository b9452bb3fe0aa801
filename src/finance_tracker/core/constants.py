"""
Constants for quote sources, price caching, and portfolio calculations.
"""

class QuoteSourceConstants:
    """Names identifying where a price came from."""

    # Primary provider, no API key needed
    YAHOO_FINANCE = "yahoo_finance"

    # Fallback provider, requires an API key
    ALPHA_VANTAGE = "alpha_vantage"

    # Not a provider: the holding was valued at its average unit cost
    AVERAGE_COST = "average_cost"

    # Yahoo rejects requests without a browser-like agent
    BROWSER_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"


class CacheConstants:
    """Freshness window bounds for the price cache."""

    DEFAULT_TTL_SECONDS = 300
    MIN_TTL_SECONDS = 60
    MAX_TTL_SECONDS = 300


class MarketConstants:
    """Limits for market price endpoints."""

    MAX_SYMBOLS_PER_REQUEST = 20

    # Decimal places used for quote prices and day-change figures
    CHANGE_PRECISION = "0.01"
