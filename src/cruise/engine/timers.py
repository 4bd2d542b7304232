"""Named, grouped, cancelable timers on the engine clock.

Timers are driven by the tick timestamps, not by wall-clock sleeps,
so the betting countdown and settle removals stay deterministic
and replayable.
"""

from typing import Callable, Dict, List, Optional
from dataclasses import dataclass, field
import itertools
import logging

logger = logging.getLogger(__name__)


@dataclass
class ScheduledTimer:
    """A pending callback."""

    name: str
    due: float
    callback: Callable[[], None]
    group: str = "default"
    interval: Optional[float] = None  # repeat period, None for one-shot
    seq: int = field(default=0, repr=False)


class Scheduler:
    """Timer registry keyed by name.

    Scheduling an existing name replaces the pending timer, so every
    name fires at most once per scheduling. Cancelling is safe to call
    for timers that already fired or never existed.
    """

    def __init__(self, now: float = 0.0):
        self._timers: Dict[str, ScheduledTimer] = {}
        self._now = now
        self._seq = itertools.count()

    @property
    def now(self) -> float:
        return self._now

    def schedule(
        self,
        name: str,
        delay: float,
        callback: Callable[[], None],
        group: str = "default",
        interval: Optional[float] = None,
    ) -> str:
        """Schedule a callback.

        Args:
            name: Unique timer name (replaces an existing timer)
            delay: Seconds from the current engine time
            callback: Called with no arguments when due
            group: Group for batch cancellation
            interval: If set, re-arm every ``interval`` seconds

        Returns:
            The timer name
        """
        if interval is not None and interval <= 0:
            raise ValueError(f"Timer interval must be positive, got {interval}")

        self._timers[name] = ScheduledTimer(
            name=name,
            due=self._now + max(0.0, delay),
            callback=callback,
            group=group,
            interval=interval,
            seq=next(self._seq),
        )
        logger.debug(f"Timer scheduled: {name} in {delay:.3f}s (group={group})")
        return name

    def cancel(self, name: str) -> bool:
        """Cancel a timer. Returns True if it was pending."""
        if self._timers.pop(name, None) is None:
            return False
        logger.debug(f"Timer cancelled: {name}")
        return True

    def cancel_group(self, group: str) -> int:
        """Cancel every pending timer in a group."""
        names = [name for name, t in self._timers.items() if t.group == group]
        for name in names:
            del self._timers[name]
        if names:
            logger.debug(f"Cancelled {len(names)} timers in group {group}")
        return len(names)

    def has_timer(self, name: str) -> bool:
        return name in self._timers

    def timers_in_group(self, group: str) -> List[str]:
        return [name for name, t in self._timers.items() if t.group == group]

    def time_remaining(self, name: str) -> Optional[float]:
        timer = self._timers.get(name)
        if timer is None:
            return None
        return max(0.0, timer.due - self._now)

    def advance(self, now: float) -> int:
        """Move the clock forward and fire every timer that came due.

        Callbacks run in due order and may schedule or cancel other
        timers; those changes are honoured within the same call.

        Returns:
            Number of callbacks fired
        """
        if now > self._now:
            self._now = now

        fired = 0
        while True:
            due = [t for t in self._timers.values() if t.due <= self._now]
            if not due:
                break
            timer = min(due, key=lambda t: (t.due, t.seq))

            if timer.interval is not None:
                timer.due += timer.interval
            else:
                del self._timers[timer.name]

            timer.callback()
            fired += 1

        return fired

    def clear(self) -> None:
        self._timers.clear()
