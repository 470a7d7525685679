"""
Configuration for the Covered Call Ledger
"""
import logging
import os
from pathlib import Path

# Paths
BASE_DIR = Path(__file__).parent
DATA_DIR = Path(os.getenv("CC_DATA_DIR", str(BASE_DIR / "data")))
BACKUP_DIR = DATA_DIR / "backups"
LOGS_DIR = Path(os.getenv("CC_LOGS_DIR", str(BASE_DIR / "logs")))

# Option contract size (shares per contract)
CONTRACT_MULTIPLIER = 100

# Tax rules (simplified: fixed day count, ticker/date wash-sale proximity)
LONG_TERM_HOLDING_DAYS = 365
WASH_SALE_WINDOW_DAYS = 30

# Concentration thresholds (fraction of capital deployed in one ticker)
CONCENTRATION_HIGH_PCT = 0.60
CONCENTRATION_MEDIUM_PCT = 0.40

# Call risk: distance from price to strike, in percent of price
CALL_RISK_HIGH_DISTANCE_PCT = 2.0
CALL_RISK_MEDIUM_DISTANCE_PCT = 5.0

# Watchlist implied volatility bands (percent)
IV_HIGH = 60
IV_MEDIUM = 35

# Trade preview strike suggestions (label, OTM multiplier)
SUGGESTED_STRIKE_OFFSETS = [
    ("Conservative", 1.08),
    ("Moderate", 1.04),
    ("Aggressive", 1.01),
]
STRIKE_INCREMENT = 0.50

# Dashboard
UPCOMING_EVENTS_LIMIT = 8

# Household code bounds (namespace key, not a credential)
HOUSEHOLD_CODE_MIN_LEN = 2
HOUSEHOLD_CODE_MAX_LEN = 50

# Backup settings
BACKUP_RETENTION_DAYS = 7

# Logging
LOG_LEVEL = os.getenv("CC_LOG_LEVEL", "INFO")
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(level: str = LOG_LEVEL, logs_dir: Path = LOGS_DIR) -> None:
    """Send log records to logs_dir/covered_calls.log and stderr"""
    logs_dir = Path(logs_dir)
    logs_dir.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[
            logging.FileHandler(logs_dir / 'covered_calls.log'),
            logging.StreamHandler()
        ],
        force=True
    )
