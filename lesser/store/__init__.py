"""
Line storage for pager sources
"""

from .line_store import Line, LineStore, StoreChange, Subscription, strip_line_ending
from .timestamps import LogTimestampParser, TimestampParser, no_timestamps

__all__ = [
    'Line',
    'LineStore',
    'StoreChange',
    'Subscription',
    'strip_line_ending',
    'LogTimestampParser',
    'TimestampParser',
    'no_timestamps',
]
