"""
Pager sources, multiplexing and the merged view
"""

from .source import Source
from .multiplexer import MERGED, MergedView, SourceMultiplexer, SourceView, merge_key

__all__ = [
    'MERGED',
    'MergedView',
    'Source',
    'SourceMultiplexer',
    'SourceView',
    'merge_key',
]
