"""Utility modules."""

from stock_dashboard.utils.ohlcv import candles_to_frame, df_to_rows, summarize_frame
from stock_dashboard.utils.provenance import build_error_response, build_meta, build_provenance
from stock_dashboard.utils.returns import portfolio_cash_flows, xirr, xirr_from_days
from stock_dashboard.utils.sanitize import sanitize_text
from stock_dashboard.utils.sectors import SectorAssignment, SectorClassifier
from stock_dashboard.utils.validators import CandleParams, check_rule

__all__ = [
    "candles_to_frame",
    "df_to_rows",
    "summarize_frame",
    "build_error_response",
    "build_meta",
    "build_provenance",
    "portfolio_cash_flows",
    "xirr",
    "xirr_from_days",
    "sanitize_text",
    "SectorAssignment",
    "SectorClassifier",
    "CandleParams",
    "check_rule",
]
