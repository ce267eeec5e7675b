"""Stock dashboard tools."""

from stock_dashboard.tools.compare import compare_stocks
from stock_dashboard.tools.market_overview import get_market_state, market_overview
from stock_dashboard.tools.news import stock_news
from stock_dashboard.tools.peers import stock_peers
from stock_dashboard.tools.portfolio import PortfolioAnalytics, portfolio_summary
from stock_dashboard.tools.price_history import price_history
from stock_dashboard.tools.proxy import quote_payload, search_payload
from stock_dashboard.tools.records import (
    delete_holding,
    save_holding,
    save_note,
    stored_portfolio_summary,
    user_notes,
)
from stock_dashboard.tools.signals import SignalReport, analysis_points, score
from stock_dashboard.tools.stock_detail import FundamentalsAssembler, StockView, stock_detail
from stock_dashboard.tools.symbol_search import symbol_search

__all__ = [
    "FundamentalsAssembler",
    "PortfolioAnalytics",
    "SignalReport",
    "StockView",
    "analysis_points",
    "compare_stocks",
    "delete_holding",
    "get_market_state",
    "market_overview",
    "portfolio_summary",
    "price_history",
    "quote_payload",
    "save_holding",
    "save_note",
    "score",
    "search_payload",
    "stock_detail",
    "stock_news",
    "stock_peers",
    "stored_portfolio_summary",
    "symbol_search",
    "user_notes",
]
