from .app import PagerApp, SourceActivity, run_app

__all__ = ['PagerApp', 'SourceActivity', 'run_app']
