"""
Logging configuration

Console output plus three daily files under LOG_DIR:
- app_<date>.log          everything at INFO and above
- error_<date>.log        ERROR and above
- ledger_<date>.log       money and receipt movements (loans, fees, transfers, sweeps)
"""

import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Loggers whose INFO lines record value changing hands
LEDGER_LOGGERS = (
    "tradewiser.api.endpoints.loans",
    "tradewiser.api.endpoints.receipts",
    "tradewiser.api.endpoints.warehouses",
    "tradewiser.api.endpoints.sacks",
    "tradewiser.services.lending",
)

QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "apscheduler", "httpx")


class LevelColorFormatter(logging.Formatter):
    """Console formatter that colours the level name"""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record):
        # copy so file handlers still see the plain level name
        record = logging.makeLogRecord(record.__dict__)
        color = self.COLORS.get(record.levelname, self.RESET)
        record.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(record)


class PrefixFilter(logging.Filter):
    """Pass records from any logger under one of the given names"""

    def __init__(self, prefixes: Iterable[str]):
        super().__init__()
        self.prefixes = tuple(prefixes)

    def filter(self, record: logging.LogRecord) -> bool:
        return record.name.startswith(self.prefixes)


def _daily_file(log_path: Path, stem: str, level: int,
                log_filter: Optional[logging.Filter] = None) -> logging.Handler:
    today = datetime.now().strftime("%Y-%m-%d")
    handler = logging.FileHandler(log_path / f"{stem}_{today}.log", encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    if log_filter is not None:
        handler.addFilter(log_filter)
    return handler


def setup_logging(log_level: str = "INFO", log_dir: str = None):
    """
    Configure the root logger

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        log_dir: directory for the daily files (defaults to $LOG_DIR or ./logs)
    """
    log_path = Path(log_dir or os.getenv("LOG_DIR", "logs"))
    log_path.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    root_logger.handlers.clear()

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(LevelColorFormatter(LOG_FORMAT, DATE_FORMAT))
    root_logger.addHandler(console)

    root_logger.addHandler(_daily_file(log_path, "app", logging.INFO))
    root_logger.addHandler(_daily_file(log_path, "error", logging.ERROR))
    root_logger.addHandler(_daily_file(log_path, "ledger", logging.INFO, PrefixFilter(LEDGER_LOGGERS)))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.info(f"📋 Logging initialised ({log_level.upper()}, files in {log_path})")


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
