"""Utility functions for phoneledger."""

from phoneledger.utils.date_parser import parse_date
from phoneledger.utils.amount_parser import parse_amount

__all__ = ["parse_date", "parse_amount"]
