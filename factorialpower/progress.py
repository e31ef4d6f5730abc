"""
Progress reporting for FactorialPower simulations.

Repetitions report progress through a plain ``(current, total)`` callable,
so any console printer, tqdm bar or GUI hook can listen to a run.
"""

import sys
from typing import Callable, Optional


class SimulationCancelled(Exception):
    """The run was stopped because ``cancel_check`` returned ``True``."""


class ProgressReporter:
    """Counts finished repetitions and forwards throttled updates.

    Args:
        total: Number of repetitions in the whole run (all group sizes of
            a sweep included).
        callback: Listener invoked as ``callback(current, total)``.
        update_every: Notify the listener each time the count crosses a
            multiple of this value. By default a run produces about 200
            notifications.
    """

    def __init__(
        self,
        total: int,
        callback: Callable[[int, int], None],
        update_every: Optional[int] = None,
    ):
        self.total = total
        self._callback = callback
        self._current = 0
        if update_every is None:
            update_every = max(1, total // 200)
        self.update_every = update_every

    @property
    def current(self) -> int:
        return self._current

    def start(self):
        """Reset the count and announce ``0/total``."""
        self._current = 0
        self._callback(0, self.total)

    def advance(self, n: int = 1):
        """Record *n* finished repetitions (a whole chunk in parallel mode)."""
        previous = self._current
        self._current += n
        crossed = self._current // self.update_every > previous // self.update_every
        if crossed or self._current >= self.total:
            self._callback(min(self._current, self.total), self.total)

    def rewind(self, current: int):
        """Move the count back to *current* without notifying, so a retried stretch is not counted twice."""
        self._current = current

    def finish(self):
        """Announce ``total/total`` unless the last advance already did."""
        if self._current >= self.total:
            return
        self._current = self.total
        self._callback(self.total, self.total)


class PrintReporter:
    """Single-line console progress on stderr, e.g. ``Progress:  45.2% (723/1600 repetitions)``."""

    def __call__(self, current: int, total: int):
        if total <= 0:
            return
        stream = sys.stderr
        stream.write(f"\rProgress: {100.0 * current / total:5.1f}% ({current}/{total} repetitions)")
        if current >= total:
            stream.write("\n")
        stream.flush()


class TqdmReporter:
    """Progress bar backed by tqdm, imported on first use.

    Install with ``pip install FactorialPower[progress]``::

        from factorialpower.progress import TqdmReporter
        model.find_power(progress_callback=TqdmReporter(desc="power"))
    """

    def __init__(self, **tqdm_kwargs):
        self._options = tqdm_kwargs
        self._bar = None

    def __call__(self, current: int, total: int):
        from tqdm import tqdm

        if self._bar is None:
            self._bar = tqdm(total=total, unit="rep", **self._options)

        step = current - self._bar.n
        if step > 0:
            self._bar.update(step)

        if current >= total:
            self._bar.close()
            self._bar = None


def compute_total_simulations(n_simulations: int, n_groupsizes: int = 1) -> int:
    """Number of repetitions a run will report, for sizing ``ProgressReporter``."""
    return n_simulations * n_groupsizes
