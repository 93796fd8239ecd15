"""Bounded rolling history of power spectra for waterfall review."""

from collections import deque
from typing import Deque, List

from rf_scanner.models import PowerSpectrum

DEFAULT_CAPACITY: int = 100


class SpectralHistory:
    """Insertion-ordered FIFO of the most recent power spectra.

    Appending to a full history evicts the oldest spectrum.  A history
    belongs to a single monitor session and is not safe for concurrent
    producers.

    Example:
        >>> history = SpectralHistory(capacity=2)
        >>> for spectrum in ("first", "second", "third"):
        ...     history.append(spectrum)
        >>> history.snapshot()
        ['second', 'third']
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        """Create an empty history holding at most *capacity* spectra.

        Raises:
            ValueError: If *capacity* is not positive.
        """
        if capacity <= 0:
            raise ValueError(f"History capacity must be positive, got {capacity}")
        self._spectra: Deque[PowerSpectrum] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._spectra.maxlen  # type: ignore[return-value]

    def append(self, spectrum: PowerSpectrum) -> None:
        """Add *spectrum* at the tail, evicting the head when full."""
        self._spectra.append(spectrum)

    def snapshot(self) -> List[PowerSpectrum]:
        """Return the current spectra, oldest first, as a new list."""
        return list(self._spectra)

    def __len__(self) -> int:
        return len(self._spectra)
