"""Periodicity correlator for TDMA frame detection.

A TDMA transmitter repeats its frame structure at a fixed interval, so
the autocorrelation of a block holding several frames has peaks spaced
one frame apart.  :func:`detect_tdma_frames` looks for two consecutive
autocorrelation peaks whose spacing matches the expected frame length.
It answers yes or no and gives no confidence score.
"""

import logging
from typing import List, Optional

import numpy as np

from rf_scanner.models import SampleBlock

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE: float = 0.1
"""Allowed relative deviation of the peak spacing from the frame length."""

#: Magnitudes below this fraction of the zero-lag value are round-off of
#: the FFT route and are set to exactly zero.
_RELATIVE_FLOOR: float = 1e-9


def expected_frame_samples(frame_duration: float, sample_rate: float) -> int:
    """Convert a frame duration in seconds into a whole number of samples."""
    return int(round(frame_duration * sample_rate))


def lag_window_holds_frames(block_size: int, frame_samples: int, frames: int = 2) -> bool:
    """Tell whether the lag window of a block can show *frames* peaks.

    The correlator searches lags ``1`` to ``block_size // 2 - 2``, so the
    peak at ``frames * frame_samples`` has to fall inside that range.
    """
    return frames * frame_samples <= block_size // 2 - 2


def block_size_for_frames(frame_samples: int, frames: int = 2) -> int:
    """Return the smallest power-of-two block for which
    :func:`lag_window_holds_frames` holds.

    >>> block_size_for_frames(512)
    4096
    >>> block_size_for_frames(28333)
    131072
    """
    return 1 << (2 * (frames * frame_samples + 2) - 1).bit_length()


def autocorrelation(block: SampleBlock, max_lag: Optional[int] = None) -> np.ndarray:
    """Compute ``R[i] = sum_j s[j] * conj(s[j + i])`` for ``0 <= i < max_lag``.

    Uses a zero-padded FFT, which gives the same values as the direct
    O(N^2) sum up to round-off.

    Args:
        block: Complex IQ samples.
        max_lag: Number of lags to return; defaults to ``len(block) // 2``.

    Returns:
        Complex array of ``max_lag`` autocorrelation values.
    """
    samples = np.asarray(block, dtype=complex)
    n = samples.size
    if max_lag is None:
        max_lag = n // 2
    max_lag = max(0, min(max_lag, n))
    if n == 0 or max_lag == 0:
        return np.zeros(0, dtype=complex)

    nfft = 1 << (2 * n - 1).bit_length()
    spectrum = np.fft.fft(samples, nfft)
    # ifft(|S|^2)[i] is sum_j s[j + i] * conj(s[j]); R is its conjugate
    lagged = np.fft.ifft(spectrum * np.conj(spectrum))[:max_lag]
    return np.conj(lagged)


def correlation_peaks(magnitude: np.ndarray) -> List[int]:
    """Return lags ``1 <= i <= len - 2`` that are strict local maxima."""
    m = np.asarray(magnitude, dtype=float)
    if m.size < 3:
        return []
    inner = m[1:-1]
    mask = (inner > m[:-2]) & (inner > m[2:])
    return [int(i) for i in np.nonzero(mask)[0] + 1]


def detect_tdma_frames(
    block: SampleBlock,
    frame_samples: int,
    tolerance: float = DEFAULT_TOLERANCE,
) -> bool:
    """Test whether *block* repeats with a period of *frame_samples*.

    Args:
        block: Complex IQ samples.
        frame_samples: Expected frame length in samples.
        tolerance: Allowed deviation as a fraction of *frame_samples*.

    Returns:
        ``True`` if some pair of consecutive autocorrelation peaks is
        spaced less than ``tolerance * frame_samples`` away from
        *frame_samples*.

    Raises:
        ValueError: If *frame_samples* is not positive.
    """
    if frame_samples <= 0:
        raise ValueError(f"Frame length must be positive, got {frame_samples}")

    corr = autocorrelation(block)
    if not lag_window_holds_frames(len(block), frame_samples):
        logger.debug(
            "Lag window of %d samples cannot hold two frames of %d samples",
            len(corr), frame_samples,
        )

    magnitude = np.abs(corr)
    if magnitude.size and magnitude[0] > 0:
        magnitude[magnitude < _RELATIVE_FLOOR * magnitude[0]] = 0.0

    lags = correlation_peaks(magnitude)
    limit = tolerance * frame_samples
    for spacing in np.diff(lags):
        if abs(spacing - frame_samples) < limit:
            return True
    return False
