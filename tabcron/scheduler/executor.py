"""Command executor for dispatched crontab entries.

Launching is fire-and-forget: the executor starts the command through the
host shell and returns as soon as the process exists. Completion, output
and exit status are never observed.
"""
import asyncio
from typing import Protocol

from loguru import logger

logger = logger.bind(module="scheduler.executor")


class CommandExecutor(Protocol):
    """Protocol for launching a command."""

    async def launch(self, command: str) -> None:
        """Start the command without waiting for it to finish."""
        ...


class ShellExecutor:
    """Launches commands with the host's command shell.

    ``sh -c`` on POSIX and ``cmd /c`` on Windows, as chosen by
    asyncio.create_subprocess_shell. The child inherits the daemon's
    stdio and environment.
    """

    def __init__(self, cwd: str | None = None):
        """Initialize executor.

        Args:
            cwd: Working directory for launched commands (defaults to ours)
        """
        self.cwd = cwd

    async def launch(self, command: str) -> None:
        process = await asyncio.create_subprocess_shell(command, cwd=self.cwd)
        logger.debug(f"Launched pid {process.pid}: {command}")
