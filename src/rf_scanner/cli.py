"""Command-line interface for rf_scanner.

Provides a ``click``-based CLI with subcommands for sweeping a band,
monitoring one frequency for TDMA framing, and inspecting the
classification table.

Usage::

    rf-scanner scan --start 380000000 --end 400000000
    rf-scanner scan --simulate --signals-csv signals.csv --output scan.html
    rf-scanner -v monitor 390012500 --duration 30 --output waterfall.html
    rf-scanner bands --config scanner.yaml
    rf-scanner classify 390012500 25000
"""

import logging
import threading
from typing import Optional

import click

from rf_scanner.acquisition import RtlSdrAcquisition, demo_scene
from rf_scanner.bands import classify as classify_signal
from rf_scanner.bands import format_rule
from rf_scanner.config import ScannerConfig, load_config
from rf_scanner.errors import AcquisitionError
from rf_scanner.formatters import format_bandwidth, format_frequency, format_power
from rf_scanner.io import CsvSignalStore
from rf_scanner.periodicity import (
    block_size_for_frames,
    expected_frame_samples,
    lag_window_holds_frames,
)
from rf_scanner.plotting import PlotlyExporter
from rf_scanner.progress import ProgressReporter
from rf_scanner.session import MonitorSession, ScanSession

#: How often the main thread wakes to check a running monitor, in seconds.
_JOIN_INTERVAL: float = 0.2


def _configure_logging(verbose: int) -> None:
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose >= 2:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load_config(config_file: Optional[str], **overrides: object) -> ScannerConfig:
    """Load the base configuration and apply command-line overrides."""
    try:
        config = load_config(config_file) if config_file else ScannerConfig()
        return config.replace(**overrides)
    except FileNotFoundError as exc:
        raise click.ClickException(str(exc))
    except ValueError as exc:
        raise click.ClickException(str(exc))


def _echo_signals(signals: list) -> None:
    if not signals:
        click.echo("No signals detected.")
        return
    click.echo(f"{'Frequency':>16}  {'Power':>11}  {'Bandwidth':>11}  "
               f"{'Class':<10} Modulation")
    for s in signals:
        click.echo(
            f"{format_frequency(s.frequency):>16}  {format_power(s.power):>11}  "
            f"{format_bandwidth(s.bandwidth):>11}  {s.classification:<10} "
            f"{s.modulation}"
        )


@click.group()
@click.version_option(package_name="rf-scanner")
@click.option("--verbose", "-v", count=True,
              help="Increase log output (-v info, -vv debug).")
def cli(verbose: int) -> None:
    """rf-scanner — RF emission scanner and TDMA monitor for IQ front ends."""
    _configure_logging(verbose)


@cli.command()
@click.option("--start", type=float, default=None,
              help="Start frequency in Hz (default: 380000000).")
@click.option("--end", type=float, default=None,
              help="End frequency in Hz (default: 400000000).")
@click.option("--step", type=float, default=None,
              help="Frequency step in Hz (default: 25000).")
@click.option("--sample-rate", type=float, default=None,
              help="Sample rate in Hz (default: 2000000).")
@click.option("--block-size", type=int, default=None,
              help="Samples per block (default: 16384).")
@click.option("--threshold", type=float, default=None,
              help="Peak threshold in dB (default: -40).")
@click.option("--gain", type=int, default=None,
              help="Tuner gain in dB, 0 for auto (default: 0).")
@click.option("--settle", type=float, default=None,
              help="Settling delay after retuning in seconds (default: 0.05).")
@click.option("--config", "config_file", type=click.Path(), default=None,
              help="YAML configuration file.")
@click.option("--simulate", is_flag=True, default=False,
              help="Use the built-in synthetic front end instead of rtl_sdr.")
@click.option("--signals-csv", type=click.Path(), default=None,
              help="Append detected signals to this CSV file.")
@click.option("--output", "-o", type=click.Path(), default=None,
              help="Save plot to file (.html for interactive, .png for static).")
@click.option("--no-show", is_flag=True, default=False,
              help="Do not open the plot in a browser.")
def scan(
    start: Optional[float],
    end: Optional[float],
    step: Optional[float],
    sample_rate: Optional[float],
    block_size: Optional[int],
    threshold: Optional[float],
    gain: Optional[int],
    settle: Optional[float],
    config_file: Optional[str],
    simulate: bool,
    signals_csv: Optional[str],
    output: Optional[str],
    no_show: bool,
) -> None:
    """Sweep a frequency range and list detected signals."""
    config = _load_config(
        config_file,
        scan_start=start,
        scan_end=end,
        scan_step=step,
        sample_rate=sample_rate,
        block_size=block_size,
        threshold=threshold,
        gain=gain,
        settle_time=settle,
    )

    if simulate:
        acquisition = demo_scene(config.sample_rate)
        config = config.replace(settle_time=0.0)
    else:
        acquisition = RtlSdrAcquisition(config.sample_rate, gain=config.gain)

    show = not no_show
    exporter = PlotlyExporter(config.sample_rate, output=output, show=show) \
        if (output or show) else None
    session = ScanSession(
        acquisition,
        config,
        store=CsvSignalStore(signals_csv) if signals_csv else None,
        exporter=exporter,
        progress=ProgressReporter(
            callback=lambda msg, frac: click.echo(f"[{frac:6.1%}] {msg}", err=True),
        ),
    )

    click.echo(f"Scanning with {acquisition.description}...")
    try:
        result = session.run()
    except AcquisitionError as exc:
        raise click.ClickException(str(exc))

    click.echo(
        f"Scan of {format_frequency(result.start_frequency)} – "
        f"{format_frequency(result.end_frequency)} took {result.elapsed:.1f} s."
    )
    _echo_signals(result.signals)


@cli.command()
@click.argument("frequency", type=float)
@click.option("--duration", type=float, default=None,
              help="Monitor duration in seconds (default: 60).")
@click.option("--sample-rate", type=float, default=None,
              help="Sample rate in Hz (default: 2000000).")
@click.option("--block-size", type=int, default=None,
              help="Samples per block (default: 16384).")
@click.option("--frame-duration", type=float, default=None,
              help="Expected burst repetition period in seconds "
                   "(default: one TETRA timeslot, 14.17 ms).")
@click.option("--tolerance", type=float, default=None,
              help="Allowed relative frame-spacing error (default: 0.1).")
@click.option("--gain", type=int, default=None,
              help="Tuner gain in dB, 0 for auto (default: 0).")
@click.option("--config", "config_file", type=click.Path(), default=None,
              help="YAML configuration file.")
@click.option("--simulate", is_flag=True, default=False,
              help="Use the built-in synthetic front end instead of rtl_sdr.")
@click.option("--signals-csv", type=click.Path(), default=None,
              help="Append detections to this CSV file.")
@click.option("--output", "-o", type=click.Path(), default=None,
              help="Save the waterfall plot to file.")
@click.option("--no-show", is_flag=True, default=False,
              help="Do not open the plot in a browser.")
def monitor(
    frequency: float,
    duration: Optional[float],
    sample_rate: Optional[float],
    block_size: Optional[int],
    frame_duration: Optional[float],
    tolerance: Optional[float],
    gain: Optional[int],
    config_file: Optional[str],
    simulate: bool,
    signals_csv: Optional[str],
    output: Optional[str],
    no_show: bool,
) -> None:
    """Monitor FREQUENCY (Hz) for TDMA framing until the duration ends.

    Press Ctrl-C to stop early; the waterfall is still exported.
    """
    config = _load_config(
        config_file,
        monitor_duration=duration,
        sample_rate=sample_rate,
        block_size=block_size,
        frame_duration=frame_duration,
        frame_tolerance=tolerance,
        gain=gain,
    )

    if simulate:
        frame_samples = expected_frame_samples(config.frame_duration, config.sample_rate)
        too_short = not lag_window_holds_frames(config.block_size, frame_samples)
        if block_size is None and too_short:
            config = config.replace(block_size=block_size_for_frames(frame_samples))
            click.echo(
                f"Raising block size to {config.block_size} samples "
                f"to hold two {frame_samples}-sample frames.",
                err=True,
            )
        acquisition = demo_scene(
            config.sample_rate, frame_samples=frame_samples, tdma_frequency=frequency,
        )
    else:
        acquisition = RtlSdrAcquisition(config.sample_rate, gain=config.gain)

    show = not no_show
    exporter = PlotlyExporter(config.sample_rate, output=output, show=show) \
        if (output or show) else None
    session = MonitorSession(
        acquisition,
        config,
        frequency,
        store=CsvSignalStore(signals_csv) if signals_csv else None,
        exporter=exporter,
    )

    outcome: dict = {}

    def _worker() -> None:
        try:
            outcome["result"] = session.run()
        except AcquisitionError as exc:
            outcome["error"] = exc

    click.echo(f"Monitoring {format_frequency(frequency)} with {acquisition.description}...")
    worker = threading.Thread(target=_worker, name="monitor", daemon=True)
    worker.start()
    while worker.is_alive():
        try:
            worker.join(_JOIN_INTERVAL)
        except KeyboardInterrupt:
            click.echo("Cancelling...", err=True)
            session.cancel()

    if "error" in outcome:
        raise click.ClickException(str(outcome["error"]))
    if "result" not in outcome:
        raise click.ClickException("Monitor session ended without a result")

    result = outcome["result"]
    click.echo(
        f"Monitor {result.state.value} after {result.elapsed:.1f} s, "
        f"{len(result.history)} spectra kept."
    )
    _echo_signals(result.signals)


@cli.command()
@click.option("--config", "config_file", type=click.Path(), default=None,
              help="YAML configuration file with a classification table.")
def bands(config_file: Optional[str]) -> None:
    """Show the classification table, highest priority first."""
    config = _load_config(config_file)
    for i, rule in enumerate(config.rules, start=1):
        click.echo(f"{i}. {format_rule(rule)}")


@cli.command()
@click.argument("frequency", type=float)
@click.argument("bandwidth", type=float)
@click.option("--config", "config_file", type=click.Path(), default=None,
              help="YAML configuration file with a classification table.")
def classify(frequency: float, bandwidth: float, config_file: Optional[str]) -> None:
    """Classify a signal at FREQUENCY (Hz) with BANDWIDTH (Hz)."""
    config = _load_config(config_file)
    click.echo(classify_signal(frequency, bandwidth, config.rules))


if __name__ == "__main__":
    cli()
