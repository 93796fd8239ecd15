"""Spectral transform engine.

Turns a complex sample block into a log-power spectrum.  The spectrum is
centred (``fftshift``) so that bin ``N // 2`` sits on the tuned centre
frequency and frequency increases with the bin index.
"""

import numpy as np

from rf_scanner.models import PowerSpectrum, SampleBlock

#: Smallest linear power fed to the logarithm (-200 dB).
POWER_FLOOR: float = 1e-20


def compute_power_spectrum(block: SampleBlock) -> PowerSpectrum:
    """Compute ``10 * log10(|X_k|^2)`` for every DFT bin of *block*.

    Zero-energy bins are clamped to :data:`POWER_FLOOR` so the result is
    always finite.  Any block length works; powers of two are fastest.

    Args:
        block: 1-D array of complex IQ samples.

    Returns:
        Array of ``len(block)`` power values in dB, centred.

    Raises:
        ValueError: If *block* is empty.
    """
    samples = np.asarray(block)
    if samples.size == 0:
        raise ValueError("Cannot transform an empty sample block")

    coeffs = np.fft.fftshift(np.fft.fft(samples))
    power = np.abs(coeffs) ** 2
    return 10.0 * np.log10(np.maximum(power, POWER_FLOOR))


def bin_width(sample_rate: float, n: int) -> float:
    """Frequency span of one bin in Hz."""
    return sample_rate / n


def bin_frequency(index: int, center: float, sample_rate: float, n: int) -> float:
    """Absolute frequency of bin *index* in a centred *n*-point spectrum."""
    return center + (index - n // 2) * sample_rate / n


def frequency_axis(center: float, sample_rate: float, n: int) -> np.ndarray:
    """Absolute frequency of every bin in a centred *n*-point spectrum."""
    return center + (np.arange(n) - n // 2) * sample_rate / n
