"""Crontab file store.

The crontab is a plain text file, one job per line, owned by the user.
The store only locates it, makes sure it exists, and parses it; the
scheduler never writes to it.
"""
from pathlib import Path

from loguru import logger

from ..models import Entry
from ..task_parser import parse_crontab

logger = logger.bind(module="scheduler.store")


class CrontabStore:
    """Read-only access to the crontab file."""

    def __init__(self, path: str | Path):
        """Initialize store.

        Args:
            path: Location of the crontab file
        """
        self.path = Path(path).expanduser()

    def ensure_exists(self) -> None:
        """Create the crontab (and its directory) if missing."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if not self.path.exists():
            self.path.touch()
            logger.info(f"Created empty crontab at {self.path}")

    def read_text(self) -> str:
        """Read the whole crontab."""
        with open(self.path, "r", encoding="utf-8") as f:
            return f.read()

    def load(self) -> list[Entry]:
        """Read and parse the crontab.

        Raises:
            CrontabParseError: If any line is malformed
            OSError: If the file cannot be read
        """
        entries = parse_crontab(self.read_text())
        logger.info(f"Loaded {len(entries)} entries from {self.path}")
        return entries
