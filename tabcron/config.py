"""Configuration - daemon settings"""
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
load_dotenv(override=True)


def default_crontab_path() -> Path:
    """Platform default location of the crontab file."""
    if sys.platform == "win32":
        base = Path(os.getenv("LOCALAPPDATA", str(Path.home() / "AppData" / "Local")))
    else:
        base = Path.home() / ".config"
    return base / "tabcron" / "crontab"


@dataclass
class Settings:
    """Daemon settings"""

    # Crontab location
    crontab_path: Path = field(default_factory=default_crontab_path)

    # Dispatch loop timing
    poll_interval_ms: int = 10000  # Longest sleep between checks
    lookahead_ms: int = 10000      # Arm a batch when the next run is closer than this
    cooldown_ms: int = 500         # Pause after a dispatch so the same minute is not seen twice

    # Logging
    log_level: str = "INFO"
    log_file: Optional[Path] = None

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from environment variables"""
        crontab = os.getenv("TABCRON_CRONTAB")
        log_file = os.getenv("TABCRON_LOG_FILE")

        return cls(
            crontab_path=Path(crontab).expanduser() if crontab else default_crontab_path(),

            poll_interval_ms=int(os.getenv("TABCRON_POLL_INTERVAL_MS", "10000")),
            lookahead_ms=int(os.getenv("TABCRON_LOOKAHEAD_MS", "10000")),
            cooldown_ms=int(os.getenv("TABCRON_COOLDOWN_MS", "500")),

            log_level=os.getenv("TABCRON_LOG_LEVEL", "INFO").upper(),
            log_file=Path(log_file).expanduser() if log_file else None,
        )


# Global settings instance
settings = Settings.from_env()
