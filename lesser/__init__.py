"""
lesser - Interactive terminal pager

A scrollable, searchable view over piped input, static files and files
tracked for live appends, with source switching and timestamp-ordered
merging of several sources.

Package Structure:
- store: Line storage per source and timestamp parsing
- search: Literal and regex search with incremental match tracking
- sources: Sources, multiplexing and the merged view
- ingest: Reader threads, file watching and the event channel
- viewport: Viewport controller state machine
- session: Consumer-side event dispatch
- UI: Textual application and widgets
- main: Command line entry point
"""

__version__ = "0.3.0"
