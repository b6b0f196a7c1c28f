"""
Utility modules for the adjustment engine.
"""

from .formatting import (
    format_currency,
    format_number,
    format_percent,
    round_money,
    round_percentage,
)
from .config import Config
from .logging import get_logger, setup_logging

__all__ = [
    "format_currency",
    "format_number",
    "format_percent",
    "round_money",
    "round_percentage",
    "Config",
    "get_logger",
    "setup_logging",
]
