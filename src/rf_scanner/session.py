"""Scan and monitor sessions.

Both sessions own a single sampling loop that drives the acquisition
collaborator and the pure pipeline functions, accumulates results, and
hands them to storage and export once the loop has exited.  The
sessions never do file or rendering I/O themselves.

:class:`ScanSession` sweeps a frequency range and runs the detection
pipeline at each step.  :class:`MonitorSession` sits on one frequency,
keeps a rolling spectral history and watches for TDMA framing until its
duration elapses or :meth:`MonitorSession.cancel` is called from another
thread.
"""

import logging
import threading
import time
from typing import Callable, Iterator, List, Optional, Protocol, Sequence

import numpy as np

from rf_scanner.acquisition import Acquisition, describe
from rf_scanner.analysis import analyze_block
from rf_scanner.config import ScannerConfig
from rf_scanner.errors import AcquisitionError, ExportError, StoreError
from rf_scanner.formatters import format_frequency
from rf_scanner.history import SpectralHistory
from rf_scanner.io import SignalStore
from rf_scanner.models import (
    MonitorResult,
    MonitorState,
    PowerSpectrum,
    ScanResult,
    ScanState,
    Signal,
    utc_now,
)
from rf_scanner.periodicity import (
    detect_tdma_frames,
    expected_frame_samples,
    lag_window_holds_frames,
)
from rf_scanner.progress import ProgressReporter
from rf_scanner.spectrum import compute_power_spectrum

logger = logging.getLogger(__name__)

#: Bandwidth reported for a TDMA detection: one TETRA channel.
NOMINAL_TDMA_BANDWIDTH: float = 25_000.0

#: Modulation reported for a TDMA detection: the TETRA air interface.
NOMINAL_TDMA_MODULATION: str = "pi/4-DQPSK"


class Exporter(Protocol):
    """Capability a session hands its finished results to.

    Failures raise :class:`~rf_scanner.errors.ExportError`.
    """

    def export(self, result: ScanResult) -> None:
        ...

    def export_history(
        self,
        history: Sequence[PowerSpectrum],
        center_frequency: float,
    ) -> None:
        ...


def sweep_frequencies(start: float, end: float, step: float) -> Iterator[float]:
    """Yield ``start + k * step`` for ``k = 0, 1, ...`` while ``<= end``.

    Computed by multiplication rather than accumulation so long sweeps
    do not drift.

    Raises:
        ValueError: If *step* is not positive.
    """
    if step <= 0:
        raise ValueError(f"Sweep step must be positive, got {step}")
    k = 0
    while True:
        frequency = start + k * step
        if frequency > end:
            return
        yield frequency
        k += 1


def _store_all(store: Optional[SignalStore], signals: List[Signal]) -> None:
    """Persist *signals* one by one, logging and skipping failures."""
    if store is None:
        return
    for signal in signals:
        try:
            store.store(signal)
        except StoreError as exc:
            logger.warning(
                "Could not store signal at %s: %s",
                format_frequency(signal.frequency), exc,
            )


class ScanSession:
    """Sweep a frequency range and collect every detected signal.

    States: ``IDLE`` → ``SWEEPING`` → ``COMPLETE``.  An
    :class:`~rf_scanner.errors.AcquisitionError` at any step moves the
    session to ``ABORTED`` and is re-raised; nothing is exported.

    Example:
        >>> session = ScanSession(acquisition, ScannerConfig())
        >>> result = session.run()
        >>> [s.classification for s in result.signals]
    """

    def __init__(
        self,
        acquisition: Acquisition,
        config: ScannerConfig,
        store: Optional[SignalStore] = None,
        exporter: Optional[Exporter] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        progress: Optional[ProgressReporter] = None,
    ) -> None:
        """Initialize the session.

        Args:
            acquisition: Radio front end.
            config: Sweep range, block size and detection options.
            store: Optional persistence collaborator, called per signal.
            exporter: Optional export collaborator, called once on
                completion.
            sleep: Settling delay function.
            clock: Monotonic clock used for the elapsed time.
            progress: Optional reporter, stepped once per frequency.
        """
        self.acquisition = acquisition
        self.config = config
        self.store = store
        self.exporter = exporter
        self._sleep = sleep
        self._clock = clock
        self.progress = progress
        self.state = ScanState.IDLE
        self.frequency: Optional[float] = None
        self.signals: List[Signal] = []

    def frequencies(self) -> List[float]:
        """Centre frequencies the sweep visits, in order."""
        return list(sweep_frequencies(
            self.config.scan_start, self.config.scan_end, self.config.scan_step,
        ))

    def run(self) -> ScanResult:
        """Run the sweep to completion.

        Returns:
            The finished :class:`ScanResult`.

        Raises:
            AcquisitionError: If retuning or reading fails at any step.
            RuntimeError: If the session has already been run.
        """
        if self.state is not ScanState.IDLE:
            raise RuntimeError(f"Scan session already {self.state.value}")

        cfg = self.config
        frequencies = self.frequencies()
        if self.progress is not None and self.progress.total <= 0:
            self.progress.total = len(frequencies)

        logger.info(
            "Scanning %s to %s in %d steps",
            format_frequency(cfg.scan_start), format_frequency(cfg.scan_end),
            len(frequencies),
        )
        self.state = ScanState.SWEEPING
        started = self._clock()

        for frequency in frequencies:
            self.frequency = frequency
            try:
                self.acquisition.retune(frequency)
                self._sleep(cfg.settle_time)
                block = self.acquisition.read_block(cfg.block_size)
            except AcquisitionError:
                self.state = ScanState.ABORTED
                logger.error("Scan aborted at %s", format_frequency(frequency))
                raise

            found = analyze_block(
                block,
                frequency,
                cfg.sample_rate,
                threshold=cfg.threshold,
                rules=cfg.rules,
                margin=cfg.bandwidth_margin,
            )
            logger.debug("%s: %d peak(s)", format_frequency(frequency), len(found))
            self.signals.extend(found)
            _store_all(self.store, found)

            if self.progress is not None:
                self.progress.step(f"{format_frequency(frequency)}: {len(found)} signal(s)")

        result = ScanResult(
            start_frequency=cfg.scan_start,
            end_frequency=cfg.scan_end,
            step=cfg.scan_step,
            signals=list(self.signals),
            elapsed=self._clock() - started,
            device=describe(self.acquisition),
        )
        self.state = ScanState.COMPLETE
        logger.info("Scan complete: %d signal(s) in %.2f s", len(result.signals), result.elapsed)

        if self.exporter is not None:
            try:
                self.exporter.export(result)
            except ExportError as exc:
                logger.warning("Could not export scan result: %s", exc)

        return result


class MonitorSession:
    """Watch one frequency for TDMA framing.

    States: ``IDLE`` → ``MONITORING`` → ``COMPLETE`` or ``CANCELLED``.
    Each iteration reads one block, appends its spectrum to the history
    and runs the periodicity correlator.  A positive detection produces
    a ``TETRA`` :class:`Signal` whose bandwidth and modulation are the
    protocol's nominal values; the correlator proves framing only and
    measures neither.

    :meth:`cancel` may be called from any thread.  The loop checks the
    flag once per iteration, so cancellation takes effect within one
    block's acquire-and-process time.
    """

    def __init__(
        self,
        acquisition: Acquisition,
        config: ScannerConfig,
        center_frequency: float,
        store: Optional[SignalStore] = None,
        exporter: Optional[Exporter] = None,
        clock: Callable[[], float] = time.monotonic,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        """Initialize the session.

        Args:
            acquisition: Radio front end.
            config: Block size, duration and correlator options.
            center_frequency: Frequency to monitor in Hz.
            store: Optional persistence collaborator, called per signal.
            exporter: Optional export collaborator for the history.
            clock: Monotonic clock measuring the duration.
            cancel_event: Event shared with an external controller;
                a private one is created when omitted.
        """
        self.acquisition = acquisition
        self.config = config
        self.center_frequency = center_frequency
        self.store = store
        self.exporter = exporter
        self._clock = clock
        self._cancel = cancel_event or threading.Event()
        self.state = MonitorState.IDLE
        self.elapsed = 0.0
        self.history = SpectralHistory(config.history_capacity)
        self.signals: List[Signal] = []

    @property
    def cancel_event(self) -> threading.Event:
        """The event an external controller sets to stop the loop."""
        return self._cancel

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def cancel(self) -> None:
        """Request the loop to stop after the current iteration."""
        self._cancel.set()

    def run(self) -> MonitorResult:
        """Monitor until the duration elapses or cancellation.

        The history snapshot is exported in both terminal states.  An
        :class:`~rf_scanner.errors.AcquisitionError` ends the loop on the
        cancelled path; the session is finalised and the error is then
        re-raised.

        Returns:
            The finished :class:`MonitorResult`.

        Raises:
            AcquisitionError: If the front end fails.
            RuntimeError: If the session has already been run.
        """
        if self.state is not MonitorState.IDLE:
            raise RuntimeError(f"Monitor session already {self.state.value}")

        cfg = self.config
        frame_samples = expected_frame_samples(cfg.frame_duration, cfg.sample_rate)
        if not lag_window_holds_frames(cfg.block_size, frame_samples):
            logger.warning(
                "Blocks of %d samples cannot show two frames of %d samples; "
                "increase the block size for TDMA detection",
                cfg.block_size, frame_samples,
            )

        logger.info(
            "Monitoring %s for %.1f s", format_frequency(self.center_frequency),
            cfg.monitor_duration,
        )
        self.state = MonitorState.MONITORING
        started = self._clock()
        failure: Optional[AcquisitionError] = None

        try:
            self.acquisition.retune(self.center_frequency)
            while True:
                if self._cancel.is_set():
                    self.state = MonitorState.CANCELLED
                    break
                if self._clock() - started >= cfg.monitor_duration:
                    self.state = MonitorState.COMPLETE
                    break
                self._iterate(frame_samples)
        except AcquisitionError as exc:
            logger.error("Monitoring stopped: %s", exc)
            self.state = MonitorState.CANCELLED
            failure = exc

        self.elapsed = self._clock() - started
        result = self._finalize()
        if failure is not None:
            raise failure
        return result

    def _iterate(self, frame_samples: int) -> None:
        """Acquire and process one block."""
        block = self.acquisition.read_block(self.config.block_size)
        spectrum = compute_power_spectrum(block)
        self.history.append(spectrum)

        if not detect_tdma_frames(block, frame_samples, self.config.frame_tolerance):
            return

        signal = Signal(
            frequency=self.center_frequency,
            power=float(np.max(spectrum)),
            bandwidth=NOMINAL_TDMA_BANDWIDTH,
            timestamp=utc_now(),
            classification="TETRA",
            modulation=NOMINAL_TDMA_MODULATION,
        )
        logger.info(
            "TDMA framing detected at %s", format_frequency(self.center_frequency)
        )
        self.signals.append(signal)
        _store_all(self.store, [signal])

    def _finalize(self) -> MonitorResult:
        """Hand the history to the exporter and build the result."""
        snapshot = self.history.snapshot()
        if self.exporter is not None and snapshot:
            try:
                self.exporter.export_history(snapshot, self.center_frequency)
            except ExportError as exc:
                logger.warning("Could not export spectral history: %s", exc)

        logger.info(
            "Monitor %s after %.2f s: %d detection(s), %d spectra",
            self.state.value, self.elapsed, len(self.signals), len(snapshot),
        )
        return MonitorResult(
            center_frequency=self.center_frequency,
            signals=list(self.signals),
            history=snapshot,
            elapsed=self.elapsed,
            state=self.state,
            device=describe(self.acquisition),
        )
