"""Per-block detection pipeline.

:func:`analyze_block` chains the transform, peak extraction,
classification and modulation estimation for one sample block and
returns the resulting :class:`~rf_scanner.models.Signal` records.
"""

from datetime import datetime
from typing import List, Optional, Sequence

from rf_scanner.bands import DEFAULT_RULES, BandRule, classify
from rf_scanner.modulation import estimate_modulation
from rf_scanner.models import SampleBlock, Signal, utc_now
from rf_scanner.peaks import DEFAULT_THRESHOLD, HALF_POWER_MARGIN, find_peaks
from rf_scanner.spectrum import compute_power_spectrum


def analyze_block(
    block: SampleBlock,
    center: float,
    sample_rate: float,
    threshold: float = DEFAULT_THRESHOLD,
    rules: Sequence[BandRule] = DEFAULT_RULES,
    margin: float = HALF_POWER_MARGIN,
    timestamp: Optional[datetime] = None,
) -> List[Signal]:
    """Detect, classify and label every peak in *block*.

    Args:
        block: Complex IQ samples captured at *center*.
        center: Tuned centre frequency in Hz.
        sample_rate: Sample rate in Hz.
        threshold: Peak detection threshold in dB.
        rules: Classification table.
        margin: Half-power margin for the bandwidth walk in dB.
        timestamp: Detection time shared by all returned signals;
            defaults to now.

    Returns:
        One :class:`Signal` per peak, in ascending frequency order.
    """
    spectrum = compute_power_spectrum(block)
    peaks = find_peaks(spectrum, center, sample_rate, threshold, margin)
    if not peaks:
        return []

    when = timestamp or utc_now()
    # Dispersion statistics cover the whole block, not one peak
    modulation = estimate_modulation(block)
    signals: List[Signal] = []
    for peak in peaks:
        signals.append(Signal(
            frequency=peak.frequency,
            power=peak.power,
            bandwidth=peak.bandwidth,
            timestamp=when,
            classification=classify(peak.frequency, peak.bandwidth, rules),
            modulation=modulation,
        ))
    return signals
