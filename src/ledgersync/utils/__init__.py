"""Utility functions for ledgersync."""

from ledgersync.utils.date_parser import parse_date, parse_datetime, ensure_utc
from ledgersync.utils.amount_parser import parse_amount, amount_to_minor_units

__all__ = [
    "parse_date",
    "parse_datetime",
    "ensure_utc",
    "parse_amount",
    "amount_to_minor_units",
]
