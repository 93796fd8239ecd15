"""Coarse modulation-family estimation from sample dispersion.

This is a heuristic labelling aid, not a demodulator.  It looks at how
much the instantaneous amplitude and the instantaneous (wrapped) phase
of a block spread out and maps the pair onto a small decision table.
The result is deterministic for a given block and nothing more: it is
not expected to be accurate on real traffic.
"""

from typing import Optional, Tuple

import numpy as np

from rf_scanner.models import SampleBlock

UNKNOWN: str = "Unknown"

AMPLITUDE_LOW: float = 0.2
PHASE_LOW: float = 0.3
HIGH: float = 0.5


def modulation_statistics(block: SampleBlock) -> Tuple[float, float]:
    """Return ``(amplitude_variance, phase_variance)`` for *block*.

    The amplitude is the instantaneous magnitude ``|s|`` as delivered,
    so the statistic scales with receiver gain.  The phase is
    ``numpy.angle``, wrapped to ``(-pi, pi]``.

    Args:
        block: Complex IQ samples; the whole block is used.

    Returns:
        Tuple of two non-negative floats.
    """
    samples = np.asarray(block)
    if samples.size == 0:
        return 0.0, 0.0

    amplitude = np.abs(samples)
    phase = np.angle(samples)
    return float(np.var(amplitude)), float(np.var(phase))


def classify_statistics(amplitude_variance: float, phase_variance: float) -> str:
    """Apply the decision table to a pair of dispersion statistics.

    ======================  =====================  =======
    amplitude variance      phase variance         label
    ======================  =====================  =======
    > 0.5                   < 0.3                  ASK
    < 0.2                   > 0.5                  PSK
    > 0.2                   > 0.5                  QAM
    < 0.2                   0.3 < v <= 0.5         FM/PM
    ======================  =====================  =======

    Anything else, including values sitting exactly on a threshold the
    row excludes, is ``"Unknown"``.
    """
    if amplitude_variance > HIGH and phase_variance < PHASE_LOW:
        return "ASK"
    if amplitude_variance < AMPLITUDE_LOW and phase_variance > HIGH:
        return "PSK"
    if amplitude_variance > AMPLITUDE_LOW and phase_variance > HIGH:
        return "QAM"
    if amplitude_variance < AMPLITUDE_LOW and PHASE_LOW < phase_variance <= HIGH:
        return "FM/PM"
    return UNKNOWN


def estimate_modulation(block: SampleBlock, peak_bin: Optional[int] = None) -> str:
    """Estimate the modulation family of the signal in *block*.

    Args:
        block: Complex IQ samples.
        peak_bin: Bin of the peak being labelled.  The statistics always
            cover the whole block, so every peak of a block gets the
            same label.

    Returns:
        One of ``"ASK"``, ``"PSK"``, ``"QAM"``, ``"FM/PM"``, ``"Unknown"``.
    """
    return classify_statistics(*modulation_statistics(block))
