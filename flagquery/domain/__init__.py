"""
Domain package for flagquery.

Exports the flag record model and the pure row-to-record mapping helpers.
Keep this package free of I/O.
"""

from flagquery.domain.mapping import format_instant, parse_instant, to_flag_record
from flagquery.domain.models import FlagRecord, FlagRow

__all__ = [
    "FlagRecord",
    "FlagRow",
    "format_instant",
    "parse_instant",
    "to_flag_record",
]
