"""Derived and illustrative stock blocks.

Risk metrics are computed deterministically from fundamentals. Technical,
news and insider blocks are placeholders drawn from a seedable numpy
Generator within fixed ranges; they are not measured signals and are
flagged as such in every response that carries them.
"""

import math

import numpy as np

from stock_dashboard.models import (
    InsiderActivity,
    Metrics,
    NewsMetrics,
    Quote,
    RiskMetrics,
    TechnicalIndicators,
)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def momentum_label(change_percent: float | None) -> str:
    """BULLISH above +2% on the day, BEARISH below -2%, otherwise NEUTRAL."""
    if change_percent is None:
        return "NEUTRAL"
    if change_percent > 2:
        return "BULLISH"
    if change_percent < -2:
        return "BEARISH"
    return "NEUTRAL"


def risk_metrics(quote: Quote, metrics: Metrics) -> RiskMetrics:
    """
    Deterministic 0-10 risk gauges.

    Missing beta counts as 1, missing debt/equity as 0 and missing current
    ratio as 1.
    """
    beta = metrics.beta or 1.0
    debt_to_equity = metrics.debt_to_equity or 0.0
    current_ratio = metrics.current_ratio or 1.0

    score = 0.0
    if beta > 1.5:
        score += 3
    elif beta > 1:
        score += 1
    if debt_to_equity > 1:
        score += 3
    elif debt_to_equity > 0.5:
        score += 1
    if current_ratio < 1:
        score += 2
    if abs(quote.change_percent) > 10:
        score += 2

    return RiskMetrics(
        risk_score=_clamp(score, 0, 10),
        volatility_rank=int(_clamp(math.ceil(beta), 1, 5)),
        liquidity_score=_clamp(current_ratio * 3, 0, 10),
        fundamental_risk=_clamp(debt_to_equity * 5, 0, 10),
    )


def technical_indicators(quote: Quote, rng: np.random.Generator) -> TechnicalIndicators:
    price = quote.price
    return TechnicalIndicators(
        rsi=float(rng.uniform(30, 70)),
        moving_avg_20=price * float(rng.uniform(0.95, 1.05)),
        moving_avg_50=price * float(rng.uniform(0.90, 1.10)),
        support=price * float(rng.uniform(0.85, 0.95)),
        resistance=price * float(rng.uniform(1.05, 1.15)),
        momentum=momentum_label(quote.change_percent),
    )


def news_metrics(quote: Quote, rng: np.random.Generator) -> NewsMetrics:
    score = float(rng.uniform(-50, 50))
    if score > 10:
        sentiment = "POSITIVE"
    elif score < -10:
        sentiment = "NEGATIVE"
    else:
        sentiment = "NEUTRAL"
    return NewsMetrics(
        sentiment=sentiment,
        sentiment_score=score,
        news_count=int(rng.integers(5, 25)),
        buzz_score=_clamp(abs(quote.change_percent) + float(rng.uniform(0, 5)), 0, 10),
    )


def insider_activity(rng: np.random.Generator) -> InsiderActivity:
    buys = int(rng.integers(0, 10))
    sells = int(rng.integers(0, 10))
    if buys > sells:
        net = "BUYING"
    elif sells > buys:
        net = "SELLING"
    else:
        net = "NEUTRAL"
    return InsiderActivity(
        recent_buys=buys,
        recent_sells=sells,
        net_activity=net,
        institutional_ownership=float(rng.uniform(40, 80)),
    )
