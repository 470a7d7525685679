"""
Excel export of the trade log, tax view, premium series and strategy comparison
"""
import logging
from datetime import date
from pathlib import Path
from typing import Mapping, Optional

import pandas as pd

from calculations import round_cents
from models import Snapshot
from strategy_comparison import StrategyComparator
from tax_calculator import TaxCalculator
from time_series import PremiumSeriesCalculator
from unified_calculations import UnifiedAnalytics

logger = logging.getLogger(__name__)

SHEET_TRADE_LOG = 'Trade Log'
SHEET_TAX = 'Tax View'
SHEET_WEEKLY = 'Weekly Premium'
SHEET_MONTHLY = 'Monthly Premium'
SHEET_COMPARISON = 'Strategy Comparison'


class ExcelExporter:
    """Write derived views to an .xlsx workbook"""

    @staticmethod
    def trade_log_frame(snapshot: Snapshot) -> pd.DataFrame:
        rows = UnifiedAnalytics.trade_log(snapshot)
        for row in rows:
            row.pop('post_mortem')
        return pd.DataFrame(rows, columns=[
            'id', 'ticker', 'strike', 'contracts', 'date_opened', 'expiration', 'status',
            'date_closed', 'gross_premium', 'close_cost', 'net_premium', 'verdict'
        ])

    @staticmethod
    def tax_frame(snapshot: Snapshot, today: date) -> pd.DataFrame:
        rows = [
            {
                'id': r.call.id,
                'ticker': r.call.ticker,
                'date_opened': r.call.date_opened,
                'date_closed': r.call.date_closed,
                'held_days': r.held_days,
                'net_premium': round_cents(r.net_premium),
                'treatment': r.treatment,
                'wash_sale_risk': r.wash_sale_risk
            }
            for r in TaxCalculator.classify(snapshot.calls, today)
        ]
        return pd.DataFrame(rows, columns=[
            'id', 'ticker', 'date_opened', 'date_closed', 'held_days', 'net_premium',
            'treatment', 'wash_sale_risk'
        ])

    @staticmethod
    def comparison_frame(snapshot: Snapshot, prices: Optional[Mapping[str, float]],
                         today: date) -> pd.DataFrame:
        columns = [
            'ticker', 'total_shares', 'shares_still_held', 'total_cost', 'market_price',
            'net_premium', 'assignment_proceeds', 'buy_hold_return', 'strategy_return',
            'alpha', 'premium_annualized'
        ]
        rows = [
            {col: getattr(c, col) for col in columns}
            for c in StrategyComparator.compare_all(snapshot, prices, today)
        ]
        return pd.DataFrame(rows, columns=columns)

    @staticmethod
    def export(snapshot: Snapshot, path, today: date,
               prices: Optional[Mapping[str, float]] = None) -> Path:
        """
        Write one sheet per view

        Returns:
            Path of the written workbook
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        sheets = {
            SHEET_TRADE_LOG: ExcelExporter.trade_log_frame(snapshot),
            SHEET_TAX: ExcelExporter.tax_frame(snapshot, today),
            SHEET_WEEKLY: pd.DataFrame(PremiumSeriesCalculator.premium_by_week(snapshot.calls),
                                       columns=['week', 'amount', 'cumulative']),
            SHEET_MONTHLY: pd.DataFrame(PremiumSeriesCalculator.premium_by_month(snapshot.calls),
                                        columns=['month', 'amount', 'cumulative']),
            SHEET_COMPARISON: ExcelExporter.comparison_frame(snapshot, prices, today),
        }

        try:
            with pd.ExcelWriter(path, engine='openpyxl') as writer:
                for name, df in sheets.items():
                    df.to_excel(writer, sheet_name=name, index=False)
        except OSError as e:
            logger.error(f"Error writing export {path}: {e}")
            raise

        logger.info(f"Exported {len(snapshot.calls)} calls to {path}")
        return path
