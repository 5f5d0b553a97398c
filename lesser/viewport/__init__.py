"""
Viewport state machine
"""

from .controller import Mode, PageLine, PageSnapshot, PagerState, Viewport, ViewportController

__all__ = [
    'Mode',
    'PageLine',
    'PageSnapshot',
    'PagerState',
    'Viewport',
    'ViewportController',
]
