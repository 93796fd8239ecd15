"""Progress reporting for long-running sweeps."""

from typing import Callable, Optional


class ProgressReporter:
    """Step counter with an optional callback.

    Attributes:
        message: Current status message.
        completed: Number of steps finished so far.
        total: Number of steps expected.
    """

    def __init__(
        self,
        total: int = 0,
        callback: Optional[Callable[[str, float], None]] = None,
    ) -> None:
        """Initialize the progress reporter.

        Args:
            total: Expected number of steps (0 if unknown).
            callback: Optional callable receiving ``(message, fraction)``
                on each update.
        """
        self.message: str = ""
        self.completed: int = 0
        self.total = total
        self._callback = callback

    @property
    def fraction(self) -> float:
        """Completed share of the work between 0.0 and 1.0."""
        if self.total <= 0:
            return 0.0
        return min(1.0, self.completed / self.total)

    def step(self, message: str) -> None:
        """Mark one more step finished and report *message*."""
        self.completed += 1
        self.message = message
        if self._callback:
            self._callback(message, self.fraction)
