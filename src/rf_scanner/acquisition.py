"""Radio front ends that deliver complex sample blocks.

A session only needs two calls from its front end, described by the
:class:`Acquisition` protocol: ``retune`` and ``read_block``.  Two
implementations are provided:

* :class:`RtlSdrAcquisition` runs the ``rtl_sdr`` command-line tool as a
  subprocess for every block and decodes its raw 8-bit IQ output.
* :class:`SimulatedAcquisition` renders a scene of synthetic emitters,
  used for demos (``--simulate``) and tests.
"""

import logging
import subprocess
from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence

import numpy as np

from rf_scanner.errors import AcquisitionError
from rf_scanner.models import SampleBlock

logger = logging.getLogger(__name__)

RTL_MIN_FREQUENCY: int = 24_000_000
"""Lowest frequency an R820T-based RTL2832U dongle tunes to, in Hz."""

RTL_MAX_FREQUENCY: int = 1_766_000_000
"""Highest frequency an R820T-based RTL2832U dongle tunes to, in Hz."""

# Known error strings from rtl_sdr stderr
_KNOWN_ERRORS = [
    "No supported devices found.",
    "usb_claim_interface",
    "Failed to open rtlsdr device",
    "WARNING: Failed to set center freq.",
    "WARNING: Failed to set sample rate.",
]


class Acquisition(Protocol):
    """Capability a session needs from a radio front end.

    Both calls are made from the session's sampling thread only.
    Failures raise :class:`~rf_scanner.errors.AcquisitionError`.
    """

    def retune(self, center_frequency: float) -> None:
        ...

    def read_block(self, size: int) -> SampleBlock:
        ...


def describe(acquisition: object) -> str:
    """Return the device descriptor of *acquisition*.

    Uses its ``description`` attribute when present, else the class name.
    """
    return str(getattr(acquisition, "description", type(acquisition).__name__))


def decode_iq_bytes(raw: bytes) -> SampleBlock:
    """Decode interleaved unsigned 8-bit I/Q bytes into complex samples.

    ``rtl_sdr`` writes ``I0 Q0 I1 Q1 ...`` with 127.5 as the zero level.
    A trailing odd byte is ignored.

    Args:
        raw: Bytes as written by ``rtl_sdr``.

    Returns:
        ``complex64`` array of ``len(raw) // 2`` samples scaled to
        roughly ``[-1, 1]``.
    """
    data = np.frombuffer(raw, dtype=np.uint8)
    data = data[: len(data) - len(data) % 2].astype(np.float32)
    data = (data - 127.5) / 127.5
    return (data[0::2] + 1j * data[1::2]).astype(np.complex64)


class RtlSdrAcquisition:
    """Front end backed by the ``rtl_sdr`` command-line tool.

    ``retune`` only validates and records the frequency; every
    ``read_block`` call runs::

        rtl_sdr -d <index> -f <freq> -s <rate> -g <gain> -n <size> -

    and decodes its stdout.  Stderr is checked for known error patterns.
    """

    def __init__(
        self,
        sample_rate: float,
        gain: int = 0,
        device_index: int = 0,
        executable: str = "rtl_sdr",
    ) -> None:
        """Initialize the front end.

        Args:
            sample_rate: Sample rate in Hz.
            gain: Tuner gain in dB (0 for automatic).
            device_index: Index of the dongle to open.
            executable: Name or path of the ``rtl_sdr`` binary.
        """
        self.sample_rate = sample_rate
        self.gain = gain
        self.device_index = device_index
        self.executable = executable
        self._frequency: Optional[float] = None

    @property
    def description(self) -> str:
        return f"rtl_sdr device {self.device_index} @ {int(self.sample_rate)} S/s"

    def retune(self, center_frequency: float) -> None:
        """Record the centre frequency for the next reads.

        Raises:
            AcquisitionError: If the frequency is outside the tuner range.
        """
        if not RTL_MIN_FREQUENCY <= center_frequency <= RTL_MAX_FREQUENCY:
            raise AcquisitionError(
                f"Retune rejected: {center_frequency:.0f} Hz is outside "
                f"{RTL_MIN_FREQUENCY}-{RTL_MAX_FREQUENCY} Hz"
            )
        self._frequency = center_frequency

    def build_command(self, size: int) -> List[str]:
        """Return the ``rtl_sdr`` argument list for a read of *size* samples."""
        if self._frequency is None:
            raise AcquisitionError("read_block called before retune")
        return [
            self.executable,
            "-d", str(self.device_index),
            "-f", str(int(self._frequency)),
            "-s", str(int(self.sample_rate)),
            "-g", str(self.gain),
            "-n", str(size),
            "-",
        ]

    def read_block(self, size: int) -> SampleBlock:
        """Capture *size* samples at the current frequency.

        Raises:
            AcquisitionError: If ``rtl_sdr`` is missing, reports a known
                error, times out or returns fewer than *size* samples.
        """
        cmd = self.build_command(size)
        logger.debug("Running: %s", " ".join(cmd))
        timeout = 10.0 + size / self.sample_rate

        try:
            process = subprocess.run(cmd, capture_output=True, timeout=timeout)
        except FileNotFoundError:
            raise AcquisitionError(
                f"{self.executable} not found. Ensure rtl-sdr is installed "
                "and on your $PATH."
            )
        except subprocess.TimeoutExpired:
            raise AcquisitionError(f"{self.executable} timed out after {timeout:.1f} s")

        stderr_output = process.stderr.decode("iso-8859-1")
        for err_line in stderr_output.splitlines():
            for known in _KNOWN_ERRORS:
                if known.lower() in err_line.lower():
                    raise AcquisitionError(f"rtl_sdr error: {err_line.strip()}")

        raw = process.stdout
        if len(raw) < 2 * size:
            raise AcquisitionError(
                f"Short read: expected {size} samples, got {len(raw) // 2}"
            )
        return decode_iq_bytes(raw[: 2 * size])


@dataclass
class Emitter:
    """A synthetic transmitter for :class:`SimulatedAcquisition`.

    Attributes:
        frequency: Carrier frequency in Hz.
        amplitude: Peak linear amplitude.
        bandwidth: Half-power bandwidth in Hz; ``0`` renders a pure tone.
        frame_samples: TDMA frame period in samples; ``0`` for a
            continuous carrier.
        duty_cycle: Fraction of each frame the burst is on.
    """

    frequency: float
    amplitude: float = 1.0
    bandwidth: float = 0.0
    frame_samples: int = 0
    duty_cycle: float = 0.25


class SimulatedAcquisition:
    """Deterministic synthetic front end.

    Each block contains every emitter that falls inside the tuned
    window plus complex Gaussian noise of RMS *noise_level*.  A
    running sample clock keeps TDMA bursts aligned across blocks.
    """

    description = "simulated front end"

    def __init__(
        self,
        emitters: Sequence[Emitter],
        sample_rate: float,
        noise_level: float = 0.0,
        seed: int = 0,
    ) -> None:
        self.emitters = list(emitters)
        self.sample_rate = sample_rate
        self.noise_level = noise_level
        self._rng = np.random.default_rng(seed)
        self._frequency: Optional[float] = None
        self._clock = 0

    def retune(self, center_frequency: float) -> None:
        if center_frequency <= 0:
            raise AcquisitionError(f"Retune rejected: {center_frequency} Hz")
        self._frequency = center_frequency

    def read_block(self, size: int) -> SampleBlock:
        if self._frequency is None:
            raise AcquisitionError("read_block called before retune")

        n = np.arange(size)
        block = np.zeros(size, dtype=complex)
        for emitter in self.emitters:
            offset = emitter.frequency - self._frequency
            if abs(offset) >= self.sample_rate / 2:
                continue
            wave = self._render(emitter, offset, size)
            if emitter.frame_samples > 0:
                position = (self._clock + n) % emitter.frame_samples
                wave = wave * (position < emitter.duty_cycle * emitter.frame_samples)
            block += wave

        if self.noise_level > 0:
            noise = self._rng.standard_normal(size) + 1j * self._rng.standard_normal(size)
            block += self.noise_level * noise / np.sqrt(2)

        self._clock += size
        return block

    def _render(self, emitter: Emitter, offset: float, size: int) -> np.ndarray:
        """Render one emitter at *offset* Hz from the tuned frequency."""
        bin_hz = self.sample_rate / size
        if emitter.bandwidth <= 0:
            t = (self._clock + np.arange(size)) / self.sample_rate
            return emitter.amplitude * np.exp(2j * np.pi * offset * t)

        # Bell-shaped line spectrum: -3 dB at +/- bandwidth / 2, cut at -12 dB
        half = emitter.bandwidth / 2 / bin_hz
        center_bin = int(round(offset / bin_hz))
        span = int(np.ceil(2 * half))
        coeffs = np.zeros(size, dtype=complex)
        for m in range(-span, span + 1):
            drop_db = 3.0 * (m / half) ** 2
            coeffs[(center_bin + m) % size] = 10 ** (-drop_db / 20)
        return emitter.amplitude * np.fft.ifft(coeffs) * size


def demo_scene(
    sample_rate: float,
    frame_samples: int = 0,
    tdma_frequency: Optional[float] = None,
    noise_level: float = 0.0,
    seed: int = 0,
) -> SimulatedAcquisition:
    """Build the synthetic scene used by ``--simulate``.

    Continuous carriers sit at a TETRA channel, a narrow DMR channel
    and a PMR446 channel.  With *tdma_frequency* set, a carrier bursting
    with the given frame period is added there.
    """
    emitters = [
        Emitter(380_050_000, 1.0, 25_000.0),
        Emitter(415_012_500, 0.5, 12_500.0),
        Emitter(446_006_250, 0.5, 12_500.0),
    ]
    if tdma_frequency is not None:
        emitters.append(Emitter(tdma_frequency, 1.0, frame_samples=frame_samples))
    return SimulatedAcquisition(emitters, sample_rate, noise_level=noise_level, seed=seed)
