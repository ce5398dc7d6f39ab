import math
import time
from enum import Enum
from typing import Callable, FrozenSet, List, Optional, Tuple


class TimerEvent(str, Enum):
    WARNING = "warning"
    EXPIRED = "expired"
    GRACE_EXPIRED = "grace_expired"


class QuestionTimer:
    """Countdown for one question, polled against an injectable monotonic clock.

    Each event fires at most once per ``start``: ``WARNING`` when ``warning_at`` seconds
    remain, ``EXPIRED`` at zero, then ``GRACE_EXPIRED`` once the grace period has also
    run out. The timer stops itself after ``GRACE_EXPIRED``.
    """

    def __init__(
        self,
        seconds: int = 120,
        warning_at: int = 30,
        grace: int = 5,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.seconds = seconds
        self.warning_at = warning_at
        self.grace = grace
        self.clock = clock
        self._deadline: Optional[float] = None
        self._fired: set[TimerEvent] = set()

    @property
    def running(self) -> bool:
        return self._deadline is not None

    @property
    def remaining(self) -> int:
        if self._deadline is None:
            return 0
        return max(0, math.ceil(self._deadline - self.clock()))

    @property
    def in_grace(self) -> bool:
        return self.running and TimerEvent.EXPIRED in self._fired

    def start(self, remaining: Optional[int] = None):
        seconds = self.seconds if remaining is None or remaining <= 0 else min(remaining, self.seconds)
        self._deadline = self.clock() + seconds
        self._fired = set()

    def cancel(self):
        self._deadline = None
        self._fired = set()

    def pause(self) -> Optional[Tuple[float, FrozenSet[TimerEvent]]]:
        """Stop polling and return what ``resume`` needs to continue the same countdown."""
        checkpoint = (self._deadline, frozenset(self._fired)) if self._deadline is not None else None
        self.cancel()
        return checkpoint

    def resume(self, checkpoint: Optional[Tuple[float, FrozenSet[TimerEvent]]]):
        # the original deadline is kept, so time spent paused still counts
        if checkpoint is None:
            return
        self._deadline, fired = checkpoint
        self._fired = set(fired)

    def poll(self) -> List[TimerEvent]:
        if self._deadline is None:
            return []

        now = self.clock()
        events = []
        if now >= self._deadline - self.warning_at and TimerEvent.WARNING not in self._fired:
            events.append(TimerEvent.WARNING)
        if now >= self._deadline and TimerEvent.EXPIRED not in self._fired:
            events.append(TimerEvent.EXPIRED)
        if now >= self._deadline + self.grace:
            events.append(TimerEvent.GRACE_EXPIRED)

        self._fired.update(events)
        if TimerEvent.GRACE_EXPIRED in events:
            self._deadline = None
        return events
