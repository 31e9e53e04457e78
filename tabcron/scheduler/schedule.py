"""Schedule calculation utilities.

Helpers around Schedule.calc_next for previewing upcoming runs.
"""
from datetime import datetime, timedelta

from .types import Schedule


def local_now() -> datetime:
    """Get the current local wall-clock time."""
    return datetime.now()


def upcoming_runs(
    schedule: Schedule,
    start: datetime | None = None,
    count: int = 5,
) -> list[datetime]:
    """Compute the next ``count`` runs of a schedule.

    Args:
        schedule: The schedule to expand
        start: Reference time (defaults to now)
        count: Number of runs to return

    Returns:
        Run instants in increasing order

    Raises:
        ScheduleError: If the schedule can never fire
    """
    current = start if start is not None else local_now()
    runs: list[datetime] = []

    while len(runs) < count:
        run = schedule.calc_next(current)
        runs.append(run)
        # Results sit on minute boundaries, which calc_next treats as inclusive
        current = run + timedelta(minutes=1)

    return runs


def format_run(run: datetime, now: datetime | None = None) -> str:
    """Format a run instant, with the time left when ``now`` is given."""
    text = run.strftime("%Y-%m-%d %H:%M (%a)")
    if now is None:
        return text

    seconds = int((run - now).total_seconds())
    if seconds < 60:
        return f"{text}, in {seconds}s"
    elif seconds < 3600:
        return f"{text}, in {seconds // 60}m"
    elif seconds < 86400:
        return f"{text}, in {seconds // 3600}h {seconds % 3600 // 60}m"
    else:
        return f"{text}, in {seconds // 86400}d {seconds % 86400 // 3600}h"
