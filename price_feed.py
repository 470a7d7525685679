"""
Live price feed integration with Yahoo Finance
Delayed quotes (free tier). Results are handed to the analytics as an
explicit {ticker: price} map; unknown prices are left out, never zeroed.
"""
import logging
from typing import Dict, Iterable, List, Optional

import yfinance as yf

from data_access import DataAccess
from models import Snapshot

logger = logging.getLogger(__name__)


def tickers_to_quote(snapshot: Snapshot) -> List[str]:
    """Tickers with an open call plus every held ticker, de-duplicated"""
    tickers = []
    for c in snapshot.calls:
        if c.is_open:
            tickers.append(DataAccess.normalize_ticker(c.ticker))
    tickers.extend(DataAccess.held_tickers(snapshot.positions))

    unique = []
    for t in tickers:
        if t and t not in unique:
            unique.append(t)
    return unique


def known_prices(raw: Dict[str, Optional[float]]) -> Dict[str, float]:
    """Drop tickers whose price is missing or not positive"""
    prices = {}
    for ticker, price in raw.items():
        if price is None:
            continue
        try:
            price = float(price)
        except (TypeError, ValueError):
            continue
        if price > 0:
            prices[DataAccess.normalize_ticker(ticker)] = price
    return prices


class PriceFeed:
    """Handle live price feeds from Yahoo Finance"""

    def get_live_price(self, ticker: str) -> Optional[float]:
        """
        Current price for one ticker

        Tries currentPrice, regularMarketPrice, previousClose, then the last
        1-minute close of the day. Returns None if nothing is available.
        """
        stock = yf.Ticker(ticker)
        info = stock.info or {}

        for key in ('currentPrice', 'regularMarketPrice', 'previousClose'):
            if info.get(key):
                return float(info[key])

        hist = stock.history(period="1d", interval="1m")
        if not hist.empty:
            return float(hist['Close'].iloc[-1])

        logger.warning(f"Could not get price for {ticker}")
        return None

    def get_live_prices(self, tickers: Iterable[str]) -> Dict[str, Optional[float]]:
        """
        Get live prices for multiple tickers from Yahoo Finance

        Returns:
            Dict of {ticker: price} (price is None if unavailable)
        """
        prices = {}
        for ticker in tickers:
            ticker = DataAccess.normalize_ticker(ticker)
            try:
                prices[ticker] = self.get_live_price(ticker)
            except Exception as e:
                # yfinance surfaces network/parse failures as assorted exception types
                logger.warning(f"Could not get price for {ticker}: {e}")
                prices[ticker] = None

        fetched = sum(1 for p in prices.values() if p is not None)
        logger.info(f"Fetched {fetched}/{len(prices)} live prices")
        return prices

    def get_price_map(self, snapshot: Snapshot) -> Dict[str, float]:
        """Known prices for every ticker the dashboard needs"""
        return known_prices(self.get_live_prices(tickers_to_quote(snapshot)))
