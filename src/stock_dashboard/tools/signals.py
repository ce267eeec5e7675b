"""Risk rating, momentum and BUY/HOLD/SELL recommendation for a stock."""

import operator
from collections.abc import Callable
from dataclasses import asdict, dataclass
from typing import Any

from stock_dashboard.models import StockDetail
from stock_dashboard.tools.synthetic import momentum_label
from stock_dashboard.utils.validators import check_rule, check_rule_expr

MAX_REASONS = 5

RISK_EXPLANATIONS = {
    "High Risk": "High volatility, potential for large gains/losses",
    "Medium Risk": "Moderate volatility, balanced risk/reward",
    "Low Risk": "Lower volatility, more stable investment",
}


@dataclass(frozen=True)
class RiskAssessment:
    level: str
    score: float
    raw_score: float
    explanation: str


@dataclass(frozen=True)
class Recommendation:
    long_term: float
    short_term: float
    dividend: float
    overall: str
    reasons: tuple[str, ...]


@dataclass(frozen=True)
class SignalReport:
    risk: RiskAssessment
    momentum: str
    recommendation: Recommendation

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["recommendation"]["reasons"] = list(self.recommendation.reasons)
        return data


def _clamp(value: float) -> float:
    return max(0.0, min(10.0, value))


def _tiered(
    value: float | None,
    tiers: tuple[tuple[float, float], ...],
    comparator: Callable[[float, float], bool] = operator.gt,
) -> float:
    """Points for the first (threshold, points) tier the value passes."""
    for threshold, points in tiers:
        if check_rule(value, threshold, comparator):
            return points
    return 0


def assess_risk(detail: StockDetail) -> RiskAssessment:
    """
    Additive risk rubric over beta, P/E, market cap and leverage.

    The reported score is clamped to 10; the bucket uses the raw sum.
    """
    m = detail.metrics
    raw = 0.0
    raw += _tiered(m.beta, ((1.5, 3), (1.2, 2), (1, 1)))
    raw += _tiered(m.pe_ratio, ((30, 3), (20, 2), (15, 1)))
    raw += _tiered(detail.market_cap_b, ((2, 3), (10, 2), (50, 1)), operator.lt)
    raw += _tiered(m.debt_to_equity, ((1, 2), (0.5, 1)))

    if raw >= 6:
        level = "High Risk"
    elif raw >= 3:
        level = "Medium Risk"
    else:
        level = "Low Risk"

    return RiskAssessment(
        level=level,
        score=_clamp(raw),
        raw_score=raw,
        explanation=RISK_EXPLANATIONS[level],
    )


def recommend(detail: StockDetail, momentum: str | None = None) -> Recommendation:
    """Score long-term, short-term and dividend appeal and derive an overall call."""
    m = detail.metrics
    q = detail.quote
    momentum = momentum or momentum_label(q.change_percent)
    reasons: list[str] = []

    long_term = 5.0
    if check_rule(m.pe_ratio, 0) and check_rule(m.pe_ratio, 15, operator.lt):
        long_term += 1
        reasons.append("Low P/E ratio")
    if check_rule(m.roe, 15):
        long_term += 1
        reasons.append("Strong ROE")
    if check_rule(m.debt_to_equity, 0.5, operator.lt):
        long_term += 1
        reasons.append("Low debt")
    if check_rule(m.current_ratio, 1.5):
        long_term += 1
        reasons.append("Good liquidity")
    if check_rule(m.gross_margin, 30):
        long_term += 1
        reasons.append("Healthy gross margins")

    short_term = 5.0
    if q.change_percent > 5:
        short_term += 2
        reasons.append("Strong momentum")
    elif q.change_percent < -5:
        short_term -= 2
        reasons.append("Weak momentum")
    if momentum == "BULLISH":
        short_term += 1
        reasons.append("Bullish technical trend")
    avg_volume = m.avg_volume * 1.5 if m.avg_volume else None
    if q.volume and check_rule_expr(q.volume, avg_volume):
        short_term += 1
        reasons.append("High volume")

    dividend = 0.0
    if m.dividend_yield:
        dividend = min(10.0, m.dividend_yield * 2)
        if m.dividend_yield > 3:
            reasons.append("Good dividend yield")
        if m.dividend_yield > 5:
            reasons.append("High dividend yield")

    long_term, short_term, dividend = _clamp(long_term), _clamp(short_term), _clamp(dividend)
    average = (long_term + short_term + dividend) / 3
    if average >= 7:
        overall = "BUY"
    elif average <= 4:
        overall = "SELL"
    else:
        overall = "HOLD"

    return Recommendation(
        long_term=long_term,
        short_term=short_term,
        dividend=dividend,
        overall=overall,
        reasons=tuple(reasons[:MAX_REASONS]),
    )


def score(detail: StockDetail) -> SignalReport:
    momentum = momentum_label(detail.quote.change_percent)
    return SignalReport(
        risk=assess_risk(detail),
        momentum=momentum,
        recommendation=recommend(detail, momentum),
    )


def analysis_points(detail: StockDetail) -> list[dict[str, str]]:
    """Key talking points: big daily move, valuation, 52-week position, dividend."""
    points: list[dict[str, str]] = []
    change = detail.quote.change_percent
    m = detail.metrics

    if abs(change) > 5:
        direction = "gain" if change > 0 else "loss"
        points.append(
            {
                "point": f"Significant {direction} of {abs(change):.2f}% today",
                "type": "positive" if change > 0 else "negative",
                "explanation": (
                    "Strong positive momentum may indicate good news or market sentiment"
                    if change > 0
                    else "Significant decline may present buying opportunity or indicate fundamental issues"
                ),
            }
        )

    if check_rule(m.pe_ratio, 0):
        if m.pe_ratio < 15:
            points.append(
                {
                    "point": f"Attractive valuation with P/E of {m.pe_ratio:.1f}",
                    "type": "positive",
                    "explanation": "Lower P/E ratios often indicate undervalued stocks relative to earnings",
                }
            )
        elif m.pe_ratio > 25:
            points.append(
                {
                    "point": f"High valuation with P/E of {m.pe_ratio:.1f}",
                    "type": "negative",
                    "explanation": "High P/E may indicate overvaluation or high growth expectations",
                }
            )

    if m.year_high and m.year_low and m.year_high != m.year_low:
        position = (detail.price - m.year_low) / (m.year_high - m.year_low) * 100
        if position > 80:
            points.append(
                {
                    "point": f"Trading near 52-week high ({position:.0f}% of range)",
                    "type": "neutral",
                    "explanation": "Stock is performing well but may face resistance at these levels",
                }
            )
        elif position < 20:
            points.append(
                {
                    "point": f"Trading near 52-week low ({position:.0f}% of range)",
                    "type": "neutral",
                    "explanation": "Stock may be undervalued but consider why it's at these levels",
                }
            )

    if check_rule(m.dividend_yield, 2):
        points.append(
            {
                "point": f"Good dividend yield of {m.dividend_yield:.2f}%",
                "type": "positive",
                "explanation": "Dividend-paying stocks provide regular income and may indicate financial stability",
            }
        )

    return points
