"""
Error types shared across the pager.

Only PatternError reaches the user directly (inline in the search prompt).
SourceIOError is reported on the status line of the failing source, and
OutOfRangeError is internal: navigation clamps instead of raising it.
"""


class LesserError(Exception):
    """Base class for pager errors"""


class PatternError(LesserError):
    """A search pattern could not be used"""


class InvalidRegexError(PatternError):
    """Regex syntax is invalid"""

    def __init__(self, pattern: str, reason: str):
        super().__init__(f"Invalid regex '{pattern}': {reason}")
        self.pattern = pattern
        self.reason = reason


class SourceIOError(LesserError):
    """A source could not be opened or became unreadable"""

    def __init__(self, name: str, reason: str):
        super().__init__(f"{name}: {reason}")
        self.name = name
        self.reason = reason


class OutOfRangeError(LesserError, IndexError):
    """Line number is past the end of a line store"""

    def __init__(self, line_number: int, length: int):
        super().__init__(f"line {line_number} out of range (length {length})")
        self.line_number = line_number
        self.length = length
