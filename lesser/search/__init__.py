"""
Search over line stores
"""

from .engine import Match, MatchHit, SearchEngine, SearchMode, SearchState

__all__ = [
    'Match',
    'MatchHit',
    'SearchEngine',
    'SearchMode',
    'SearchState',
]
