"""
Utility Module - Process-level helpers

Handles:
- File logging setup (the terminal belongs to the pager UI)
- Separating piped stdin from keyboard input
"""
import logging
import os
from pathlib import Path
from typing import BinaryIO, Optional

from lesser.config import PagerConfig
from lesser.errors import SourceIOError

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def configure_logging(config: PagerConfig) -> Optional[logging.Handler]:
    """
    Send the package's log records to the configured log file

    Args:
        config: Settings naming the log file and level

    Returns:
        The file handler, or None when logging is disabled or already set up

    Raises:
        OSError: If the log directory or file cannot be created
    """
    logger = logging.getLogger('lesser')
    # Configure only once
    if logger.handlers:
        return None

    level = getattr(logging, config.log_level)
    logger.setLevel(level)
    # Keep records out of the terminal the UI is drawing on
    logger.propagate = False
    if config.log_file is None:
        logger.addHandler(logging.NullHandler())
        return None

    log_file = Path(config.log_file).expanduser()
    log_file.parent.mkdir(parents=True, exist_ok=True)

    file_handler = logging.FileHandler(log_file)
    file_handler.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)
    return file_handler


def stdin_is_piped() -> bool:
    try:
        return not os.isatty(0)
    except OSError:
        return False


def detach_piped_stdin() -> Optional[BinaryIO]:
    """
    Move piped stdin to a private descriptor and reattach the terminal

    Descriptor 0 is pointed at the controlling terminal so the UI reads
    keys from it, while the returned stream yields the piped data.

    Returns:
        Binary stream of the piped input, or None if stdin is a terminal

    Raises:
        SourceIOError: If there is no terminal to read keys from
    """
    if not stdin_is_piped():
        return None

    piped_fd = os.dup(0)
    terminal = "CONIN$" if os.name == "nt" else "/dev/tty"
    try:
        tty_fd = os.open(terminal, os.O_RDONLY)
    except OSError as e:
        os.close(piped_fd)
        raise SourceIOError(terminal, f"cannot open terminal for keyboard input ({e.strerror or e})")
    os.dup2(tty_fd, 0)
    os.close(tty_fd)
    return os.fdopen(piped_fd, "rb")
