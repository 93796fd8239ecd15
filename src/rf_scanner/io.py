"""File persistence for detected signals.

:class:`CsvSignalStore` implements the persistence capability a session
calls once per detected signal.  :func:`save_scan_result` and
:func:`load_signals` write and read whole files in the same format.
"""

from pathlib import Path
from typing import Iterable, List, Protocol, Union

from rf_scanner.errors import StoreError
from rf_scanner.models import ScanResult, Signal
from rf_scanner.parser import HEADER, format_signal_line, parse_signal_line


class SignalStore(Protocol):
    """Capability a session uses to persist each detected signal.

    Failures raise :class:`~rf_scanner.errors.StoreError`.
    """

    def store(self, signal: Signal) -> None:
        ...


class CsvSignalStore:
    """Append-only CSV file of detected signals.

    The header is written when the file is new or empty; existing rows
    are kept, so several sessions can share one file.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)
        self.count = 0

    def store(self, signal: Signal) -> None:
        """Append *signal* as one CSV row.

        Raises:
            StoreError: If the file cannot be written.
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            new_file = not self.path.exists() or self.path.stat().st_size == 0
            with open(self.path, "a", encoding="utf-8") as fh:
                if new_file:
                    fh.write(HEADER + "\n")
                fh.write(format_signal_line(signal) + "\n")
        except OSError as exc:
            raise StoreError(f"Cannot write signal to {self.path}: {exc}") from exc
        self.count += 1


def save_signals(signals: Iterable[Signal], path: Union[str, Path]) -> None:
    """Write *signals* to a new CSV file, replacing any existing one.

    Raises:
        StoreError: If the file cannot be written.
    """
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as fh:
            fh.write(HEADER + "\n")
            for signal in signals:
                fh.write(format_signal_line(signal) + "\n")
    except OSError as exc:
        raise StoreError(f"Cannot write signals to {path}: {exc}") from exc


def save_scan_result(result: ScanResult, path: Union[str, Path]) -> None:
    """Write the signals of a finished scan to *path*."""
    save_signals(result.signals, path)


def load_signals(path: Union[str, Path]) -> List[Signal]:
    """Load a signal CSV file.

    Args:
        path: Path to the CSV file.

    Returns:
        Signals in file order.

    Raises:
        FileNotFoundError: If *path* does not exist.
        ValueError: If a record line is malformed.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"CSV file not found: {path}")

    signals: List[Signal] = []
    with open(path, "r", encoding="utf-8") as fh:
        for line in fh:
            signal = parse_signal_line(line)
            if signal is not None:
                signals.append(signal)
    return signals
