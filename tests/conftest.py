"""Shared test fixtures and helpers for rf_scanner tests."""

from typing import Callable, Dict, List, Optional

import numpy as np
import pytest

from rf_scanner.config import ScannerConfig
from rf_scanner.errors import AcquisitionError, ExportError, StoreError


def _tone(n: int, bin_offset: int, amplitude: float = 1.0) -> np.ndarray:
    """On-bin complex tone landing in centred bin ``n // 2 + bin_offset``."""
    return amplitude * np.exp(2j * np.pi * bin_offset * np.arange(n) / n)


def _shaped(n: int, bin_offset: int, half_width: float) -> np.ndarray:
    """Bell-shaped line spectrum, -3 dB at +/- *half_width* bins.

    The power falls strictly away from the centre bin, so the block has
    exactly one spectral peak.  Use a non-integer *half_width* to keep
    bins off the exact half-power level.
    """
    coeffs = np.zeros(n, dtype=complex)
    span = int(np.ceil(2 * half_width))
    for m in range(-span, span + 1):
        drop_db = 3.0 * (m / half_width) ** 2
        coeffs[(bin_offset + m) % n] = 10 ** (-drop_db / 20)
    return np.fft.ifft(coeffs) * n


def _pulse_train(n: int, period: int, width: int) -> np.ndarray:
    """Constant bursts of *width* samples repeating every *period* samples."""
    block = np.zeros(n, dtype=complex)
    for start in range(0, n, period):
        block[start:start + width] = (1 + 1j) / np.sqrt(2)
    return block


class FakeAcquisition:
    """Scripted front end.

    *blocks* maps a tuned frequency to the block returned there; other
    frequencies get zeros.  *on_read* runs after every read, and
    *fail_at* makes the given read (1-based) raise.
    """

    description = "fake front end"

    def __init__(
        self,
        blocks: Optional[Dict[float, np.ndarray]] = None,
        default: Optional[np.ndarray] = None,
        fail_at: Optional[int] = None,
        on_read: Optional[Callable[[], None]] = None,
    ) -> None:
        self.blocks = blocks or {}
        self.default = default
        self.fail_at = fail_at
        self.on_read = on_read
        self.frequency: Optional[float] = None
        self.retunes: List[float] = []
        self.reads = 0

    def retune(self, center_frequency: float) -> None:
        self.frequency = center_frequency
        self.retunes.append(center_frequency)

    def read_block(self, size: int) -> np.ndarray:
        self.reads += 1
        if self.fail_at is not None and self.reads >= self.fail_at:
            raise AcquisitionError("device unplugged")
        block = self.blocks.get(self.frequency)
        if block is None:
            block = self.default if self.default is not None else np.zeros(size, dtype=complex)
        if self.on_read is not None:
            self.on_read()
        return block


class RecordingStore:
    def __init__(self) -> None:
        self.signals: list = []

    def store(self, signal) -> None:
        self.signals.append(signal)


class FailingStore:
    def store(self, signal) -> None:
        raise StoreError("database locked")


class RecordingExporter:
    def __init__(self) -> None:
        self.results: list = []
        self.histories: list = []

    def export(self, result) -> None:
        self.results.append(result)

    def export_history(self, history, center_frequency) -> None:
        self.histories.append((history, center_frequency))


class FailingExporter:
    def export(self, result) -> None:
        raise ExportError("disk full")

    def export_history(self, history, center_frequency) -> None:
        raise ExportError("disk full")


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float = 1.0) -> None:
        self.now += seconds


@pytest.fixture
def small_config() -> ScannerConfig:
    """Configuration with 4096-sample blocks and no settling delay."""
    return ScannerConfig(
        block_size=4096,
        settle_time=0.0,
        scan_start=380.0e6,
        scan_end=380.1e6,
        scan_step=25e3,
    )


@pytest.fixture
def bin_hz(small_config: ScannerConfig) -> float:
    """Width of one bin for :func:`small_config` blocks."""
    return small_config.sample_rate / small_config.block_size


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_tone() -> Callable[..., np.ndarray]:
    """Factory for on-bin complex tones: ``make_tone(n, bin_offset, amplitude=1.0)``."""
    return _tone


@pytest.fixture
def make_shaped() -> Callable[..., np.ndarray]:
    """Factory for bell-shaped emissions: ``make_shaped(n, bin_offset, half_width)``."""
    return _shaped


@pytest.fixture
def make_pulse_train() -> Callable[..., np.ndarray]:
    """Factory for burst trains: ``make_pulse_train(n, period, width)``."""
    return _pulse_train


@pytest.fixture
def make_acquisition() -> Callable[..., FakeAcquisition]:
    """Factory for scripted front ends, see :class:`FakeAcquisition`."""
    return FakeAcquisition


@pytest.fixture
def recording_store() -> RecordingStore:
    return RecordingStore()


@pytest.fixture
def failing_store() -> FailingStore:
    return FailingStore()


@pytest.fixture
def recording_exporter() -> RecordingExporter:
    return RecordingExporter()


@pytest.fixture
def failing_exporter() -> FailingExporter:
    return FailingExporter()
