"""Data model for detected emissions and session results.

Sample blocks and power spectra are plain ``numpy`` arrays; the records
defined here are what a session hands to storage and export once the
numeric work is done.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List

import numpy as np

#: One acquisition window of complex IQ samples.
SampleBlock = np.ndarray

#: Per-bin power in dB, centred so bin ``N // 2`` is the tuned frequency.
PowerSpectrum = np.ndarray


def utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


@dataclass
class PeakCandidate:
    """A local maximum found in a power spectrum.

    Attributes:
        bin_index: Index of the peak bin in the centred spectrum.
        frequency: Absolute frequency of the bin in Hz.
        power: Power of the peak bin in dB.
        bandwidth: Estimated half-power bandwidth in Hz (``>= 0``).
    """

    bin_index: int = 0
    frequency: float = 0.0
    power: float = 0.0
    bandwidth: float = 0.0


@dataclass(frozen=True)
class Signal:
    """A detected emission, the unit that gets stored and exported.

    Attributes:
        frequency: Centre frequency in Hz.
        power: Peak power in dB.
        bandwidth: Occupied bandwidth in Hz.
        timestamp: Detection time (UTC).
        classification: Service label, e.g. ``"TETRA"`` or ``"Unknown"``.
        modulation: Modulation family label, e.g. ``"PSK"``.
    """

    frequency: float
    power: float
    bandwidth: float
    timestamp: datetime = field(default_factory=utc_now)
    classification: str = "Unknown"
    modulation: str = "Unknown"


@dataclass
class ScanResult:
    """Outcome of one completed frequency sweep.

    Attributes:
        start_frequency: First centre frequency of the sweep in Hz.
        end_frequency: Last allowed centre frequency in Hz.
        step: Sweep step in Hz.
        signals: Detected signals in detection (ascending frequency) order.
        elapsed: Wall-clock duration of the sweep in seconds.
        device: Descriptor of the front end that produced the samples.
    """

    start_frequency: float
    end_frequency: float
    step: float
    signals: List[Signal] = field(default_factory=list)
    elapsed: float = 0.0
    device: str = ""


class ScanState(Enum):
    """Lifecycle of a :class:`~rf_scanner.session.ScanSession`."""

    IDLE = "idle"
    SWEEPING = "sweeping"
    COMPLETE = "complete"
    ABORTED = "aborted"


class MonitorState(Enum):
    """Lifecycle of a :class:`~rf_scanner.session.MonitorSession`."""

    IDLE = "idle"
    MONITORING = "monitoring"
    COMPLETE = "complete"
    CANCELLED = "cancelled"


@dataclass
class MonitorResult:
    """Outcome of one monitor session at a fixed frequency.

    Attributes:
        center_frequency: Monitored frequency in Hz.
        signals: Synthesised TDMA detections in time order.
        history: Snapshot of the spectral history, oldest first.
        elapsed: Time spent in the sampling loop in seconds.
        state: Terminal state, ``COMPLETE`` or ``CANCELLED``.
        device: Descriptor of the front end.
    """

    center_frequency: float
    signals: List[Signal] = field(default_factory=list)
    history: List[PowerSpectrum] = field(default_factory=list)
    elapsed: float = 0.0
    state: MonitorState = MonitorState.IDLE
    device: str = ""
