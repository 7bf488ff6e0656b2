"""Reading log files from disk."""

from pathlib import Path

from shared.logger import get_logger

logger = get_logger(__name__)

LOG_SUFFIX = ".log"


class SourceUnreadableError(Exception):
    """The log file could not be read or decoded."""

    def __init__(self, path: Path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


def is_log_file(path: Path) -> bool:
    """Check for a .log suffix (case-insensitive)."""
    return path.suffix.lower() == LOG_SUFFIX


def read_log_text(path: Path, encoding: str = "utf-8") -> str:
    """
    Read a whole log file as text.

    Args:
        path: Path to log file
        encoding: Text encoding of the file

    Returns:
        Decoded file contents

    Raises:
        SourceUnreadableError: If the file is missing, unreadable or not valid text
    """
    try:
        with open(path, "r", encoding=encoding, newline="") as f:
            text = f.read()
    except UnicodeDecodeError as e:
        raise SourceUnreadableError(path, f"not valid {encoding} text ({e.reason})") from e
    except LookupError as e:
        raise SourceUnreadableError(path, f"unknown encoding: {encoding}") from e
    except OSError as e:
        raise SourceUnreadableError(path, e.strerror or str(e)) from e

    logger.debug(f"Read {len(text)} characters from {path}")
    return text
