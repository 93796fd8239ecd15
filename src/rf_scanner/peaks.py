"""Peak extraction and half-power bandwidth estimation."""

from typing import List

import numpy as np

from rf_scanner.models import PeakCandidate, PowerSpectrum
from rf_scanner.spectrum import bin_frequency, bin_width

DEFAULT_THRESHOLD: float = -40.0
"""Default detection threshold in dB."""

HALF_POWER_MARGIN: float = 3.0
"""Drop below the peak, in dB, that bounds the occupied bandwidth."""


def estimate_bandwidth(
    spectrum: PowerSpectrum,
    index: int,
    bin_hz: float,
    margin: float = HALF_POWER_MARGIN,
) -> float:
    """Estimate the bandwidth of the peak at *index*.

    Walks outward from the peak while the power stays above
    ``peak - margin``.  Each bound is the first bin at or below that
    level, or the array edge when the walk runs out of bins.  A peak
    on or next to an edge therefore gets an under-estimate.

    Args:
        spectrum: Centred power spectrum in dB.
        index: Bin index of the peak.
        bin_hz: Width of one bin in Hz.
        margin: Half-power margin in dB.

    Returns:
        ``(right - left) * bin_hz``, never negative.
    """
    level = spectrum[index] - margin
    last = len(spectrum) - 1

    left = index
    while left > 0 and spectrum[left] > level:
        left -= 1

    right = index
    while right < last and spectrum[right] > level:
        right += 1

    return (right - left) * bin_hz


def find_peaks(
    spectrum: PowerSpectrum,
    center: float,
    sample_rate: float,
    threshold: float = DEFAULT_THRESHOLD,
    margin: float = HALF_POWER_MARGIN,
) -> List[PeakCandidate]:
    """Find strict local maxima above *threshold*.

    A bin ``i`` with ``1 <= i <= N - 2`` is a peak when its power is
    greater than both neighbours and greater than *threshold*.  There is
    no de-duplication beyond that test.

    Args:
        spectrum: Centred power spectrum in dB.
        center: Tuned centre frequency in Hz.
        sample_rate: Sample rate in Hz.
        threshold: Minimum peak power in dB.
        margin: Half-power margin for the bandwidth walk.

    Returns:
        Peaks in ascending bin order.
    """
    p = np.asarray(spectrum, dtype=float)
    n = len(p)
    if n < 3:
        return []

    inner = p[1:-1]
    mask = (inner > p[:-2]) & (inner > p[2:]) & (inner > threshold)
    indices = np.nonzero(mask)[0] + 1

    bin_hz = bin_width(sample_rate, n)
    return [
        PeakCandidate(
            bin_index=int(i),
            frequency=bin_frequency(int(i), center, sample_rate, n),
            power=float(p[i]),
            bandwidth=estimate_bandwidth(p, int(i), bin_hz, margin),
        )
        for i in indices
    ]
