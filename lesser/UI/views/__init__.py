from .pager_view import PagerView, StatusBar, render_line, render_row, status_text

__all__ = ['PagerView', 'StatusBar', 'render_line', 'render_row', 'status_text']
