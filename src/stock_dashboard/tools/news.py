"""Company news tool."""

from datetime import datetime, timedelta, timezone
from time import perf_counter
from typing import Any

from stock_dashboard.data.errors import FETCH_ERRORS, RateLimitedError
from stock_dashboard.data.finnhub_client import MarketDataClient, normalize_symbol
from stock_dashboard.models import parse_timestamp
from stock_dashboard.utils.provenance import build_error_response, build_meta, build_provenance
from stock_dashboard.utils.sanitize import sanitize_text

MAX_ARTICLES = 5

POSITIVE_KEYWORDS = {
    "beat", "beats", "exceeded", "growth", "profit", "surge", "gain",
    "upgrade", "buy", "outperform", "record", "strong", "bullish",
    "raises", "raised", "higher", "boost", "soars", "jumps",
}
NEGATIVE_KEYWORDS = {
    "miss", "missed", "decline", "loss", "cut", "downgrade", "sell",
    "weak", "bearish", "lawsuit", "investigation", "recall", "layoff",
    "warns", "warning", "falls", "drops", "lower", "slump", "plunge",
}


async def stock_news(
    client: MarketDataClient,
    symbol: str,
    days: int = 7,
    now: datetime | None = None,
) -> dict[str, Any]:
    """
    Get recent company news with keyword sentiment.

    Args:
        client: Shared market data client
        symbol: Stock ticker symbol
        days: Number of days to look back (default: 7)

    Returns:
        Dict with up to five newest articles and a sentiment tally
    """
    start_time = perf_counter()
    normalized_symbol = normalize_symbol(symbol)

    if days < 1:
        return build_error_response(
            error_type="invalid_parameters",
            message="days must be at least 1",
            symbol=symbol,
        )

    now = now or datetime.now(timezone.utc)
    from_date = (now - timedelta(days=days)).date()

    try:
        news_data = await client.company_news(normalized_symbol, from_date, now.date())
    except RateLimitedError as e:
        return build_error_response(
            error_type="rate_limited",
            message=str(e),
            symbol=symbol,
            retry_after_seconds=e.retry_after,
        )
    except FETCH_ERRORS as e:
        return build_error_response(
            error_type="data_unavailable",
            message=f"Failed to fetch news: {e}",
            symbol=symbol,
        )

    # Empty news is valid - just return empty list, don't error
    if not isinstance(news_data, list):
        news_data = []

    articles: list[dict[str, Any]] = []
    for index, item in enumerate(news_data[:MAX_ARTICLES]):
        if not isinstance(item, dict):
            continue
        headline = sanitize_text(item.get("headline"), max_length=200)
        summary = sanitize_text(item.get("summary"), max_length=500)
        published = parse_timestamp(item.get("datetime"))
        articles.append({
            "id": f"{normalized_symbol}-{index}",
            "headline": headline,
            "summary": summary,
            "source": sanitize_text(item.get("source"), max_length=50) or "Unknown",
            "url": item.get("url") or None,
            "image_url": item.get("image") or None,
            "published_at": published.isoformat() if published else None,
            "sentiment": _score_sentiment(f"{headline or ''} {summary or ''}"),
        })

    counts = {"positive": 0, "negative": 0, "neutral": 0}
    for a in articles:
        counts[a["sentiment"]] += 1

    warnings: list[str] = []
    if not articles:
        warnings.append(f"No news articles found in the past {days} days")

    duration_ms = (perf_counter() - start_time) * 1000

    return {
        "meta": build_meta("stock_news", duration_ms),
        "data_provenance": {
            "news": build_provenance(warnings=warnings),
        },
        "symbol": normalized_symbol,
        "period_days": days,
        "article_count": len(articles),
        "articles": articles,
        "sentiment": {
            "overall": _overall(counts),
            "counts": counts,
            "method": "keyword_v1",
        },
    }


def _overall(counts: dict[str, int]) -> str | None:
    if sum(counts.values()) == 0:
        return None
    if counts["positive"] > counts["negative"]:
        return "positive"
    if counts["negative"] > counts["positive"]:
        return "negative"
    return "neutral"


def _score_sentiment(text: str) -> str:
    """Simple keyword-based sentiment scoring."""
    text_lower = text.lower()
    pos = sum(1 for w in POSITIVE_KEYWORDS if w in text_lower)
    neg = sum(1 for w in NEGATIVE_KEYWORDS if w in text_lower)

    if pos > neg:
        return "positive"
    elif neg > pos:
        return "negative"
    return "neutral"
