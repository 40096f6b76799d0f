"""
Safety ceilings and cooperative cancellation for evaluation runs.

Every loop iteration is counted against the run's budget. The iteration
ceiling is enforced on every iteration; the wall-clock ceiling, the
cancellation token and the host's checkpoint hook are polled every
`checkpoint_interval` iterations. None of them influence the computed
scene, they can only abort the run.
"""

import logging
import threading
import time
from typing import Callable, Optional

from ..config import (
    DEFAULT_CHECKPOINT_INTERVAL,
    DEFAULT_MAX_DURATION,
    DEFAULT_MAX_ITERATIONS,
)
from ..errors import BudgetExceededError, RunCancelledError

logger = logging.getLogger(__name__)


class CancellationToken:
    """A thread-safe flag a caller sets to abort a run at its next checkpoint."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()


class ExecutionBudget:
    """
    Iteration and wall-clock ceilings for one evaluation run.

    A budget is started once per run and must not be shared between
    concurrent runs.
    """

    def __init__(
        self,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        max_duration: Optional[float] = DEFAULT_MAX_DURATION,
        checkpoint_interval: int = DEFAULT_CHECKPOINT_INTERVAL,
        token: Optional[CancellationToken] = None,
        on_checkpoint: Optional[Callable[[int], None]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if checkpoint_interval < 1:
            raise ValueError("checkpoint_interval must be at least 1")
        self.max_iterations = max_iterations
        self.max_duration = max_duration
        self.checkpoint_interval = checkpoint_interval
        self.token = token
        self.on_checkpoint = on_checkpoint
        self._clock = clock
        self._started: Optional[float] = None
        self.iterations = 0

    def start(self) -> None:
        self._started = self._clock()
        self.iterations = 0

    @property
    def elapsed(self) -> float:
        if self._started is None:
            return 0.0
        return self._clock() - self._started

    def tick(self) -> None:
        """Count one loop iteration; raise if a ceiling is crossed."""
        self.iterations += 1
        if self.iterations > self.max_iterations:
            logger.warning("iteration ceiling reached after %d iterations", self.iterations - 1)
            raise BudgetExceededError(
                "max iterations", self.iterations - 1, self.elapsed, self.max_iterations
            )
        if self.iterations % self.checkpoint_interval == 0:
            self.checkpoint()

    def checkpoint(self) -> None:
        """Poll cancellation and the wall clock, then let the host run."""
        if self.token is not None and self.token.cancelled:
            logger.warning("run cancelled after %d iterations", self.iterations)
            raise RunCancelledError(self.iterations, self.elapsed)
        elapsed = self.elapsed
        if self.max_duration is not None and elapsed > self.max_duration:
            logger.warning("time ceiling reached after %.3fs", elapsed)
            raise BudgetExceededError("max duration", self.iterations, elapsed, self.max_duration)
        if self.on_checkpoint is not None:
            self.on_checkpoint(self.iterations)
