"""Annualized return (XIRR) over irregularly dated cash flows."""

import logging
from collections.abc import Sequence
from datetime import datetime
from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from stock_dashboard.models import HoldingValuation

logger = logging.getLogger(__name__)

DAYS_PER_YEAR = 365.25
INITIAL_GUESS = 0.10
MAX_ITERATIONS = 100
TOLERANCE = 1e-6
MIN_RATE = -0.99
MAX_RATE = 10.0


def _has_both_signs(flows: np.ndarray) -> bool:
    return bool((flows > 0).any() and (flows < 0).any())


def xirr_from_days(
    cash_flows: Sequence[float],
    days: Sequence[float],
    guess: float = INITIAL_GUESS,
) -> float | None:
    """
    Solve NPV(rate) = sum(cf / (1 + rate) ** (days / 365.25)) = 0 by Newton-Raphson.

    Args:
        cash_flows: Signed amounts (investments negative, proceeds positive)
        days: Day offset of each flow from the first flow
        guess: Starting rate (default: 0.10)

    Returns:
        Annualized rate as a percentage, or None when the flows are
        degenerate or the solver does not converge.
    """
    flows = np.asarray(cash_flows, dtype=float)
    if flows.size < 2 or flows.size != len(days):
        return None
    if not _has_both_signs(flows):
        return None

    years = np.asarray(days, dtype=float) / DAYS_PER_YEAR
    rate = guess

    for _ in range(MAX_ITERATIONS):
        base = 1.0 + rate
        npv = float(np.sum(flows / base**years))
        if abs(npv) < TOLERANCE:
            return rate * 100

        d_npv = float(np.sum(-flows * years / base ** (years + 1)))
        if abs(d_npv) < TOLERANCE:
            logger.debug("XIRR aborted: flat derivative")
            return None

        rate = rate - npv / d_npv
        if not MIN_RATE <= rate <= MAX_RATE:
            logger.debug(f"XIRR aborted: rate {rate:.4f} left [{MIN_RATE}, {MAX_RATE}]")
            return None

    logger.debug(f"XIRR did not converge in {MAX_ITERATIONS} iterations")
    return None


def xirr(cash_flows: Sequence[float], dates: Sequence[datetime]) -> float | None:
    """XIRR for dated flows; day offsets are measured from the earliest date."""
    if len(cash_flows) < 2 or len(cash_flows) != len(dates):
        return None
    origin = min(dates)
    days = [(d - origin).total_seconds() / 86400 for d in dates]
    return xirr_from_days(cash_flows, days)


def portfolio_cash_flows(
    valuations: Sequence["HoldingValuation"],
    now: datetime,
) -> tuple[list[float], list[datetime]]:
    """
    Cash-flow series for a portfolio.

    One negative flow of shares * avg_price per position dated at its purchase
    date (now when unknown), plus one positive flow of the total current value
    dated now.
    """
    flows: list[float] = []
    dates: list[datetime] = []

    for v in valuations:
        if v.total_cost > 0:
            flows.append(-v.total_cost)
            dates.append(v.purchase_date or now)

    total_value = sum(v.total_value for v in valuations)
    if total_value > 0:
        flows.append(total_value)
        dates.append(now)

    return flows, dates
