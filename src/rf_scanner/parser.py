"""Line codec for the signal CSV format.

Each detected :class:`~rf_scanner.models.Signal` is one line with the
columns::

    timestamp,frequency,power,bandwidth,classification,modulation

``timestamp`` is ISO 8601 with its UTC offset; numeric columns use
Python's shortest round-tripping float repr.  The file starts with a
header line holding the column names.
"""

from datetime import datetime
from typing import Optional

from rf_scanner.models import Signal

HEADER: str = "timestamp,frequency,power,bandwidth,classification,modulation"

_COLUMNS = len(HEADER.split(","))


def format_signal_line(signal: Signal) -> str:
    """Render *signal* as one CSV line, without a trailing newline."""
    return (
        f"{signal.timestamp.isoformat()},{signal.frequency!r},"
        f"{signal.power!r},{signal.bandwidth!r},"
        f"{signal.classification},{signal.modulation}"
    )


def parse_signal_line(line: str) -> Optional[Signal]:
    """Parse one CSV line back into a :class:`Signal`.

    The header line, blank lines and lines with the wrong number of
    columns yield ``None``.

    Args:
        line: A single CSV row string.

    Returns:
        The parsed signal, or ``None`` if the line holds no record.

    Raises:
        ValueError: If a record line holds a malformed timestamp or
            number.
    """
    line = line.strip()
    if not line or line == HEADER:
        return None

    parts = [p.strip() for p in line.split(",")]
    if len(parts) != _COLUMNS:
        return None

    return Signal(
        frequency=float(parts[1]),
        power=float(parts[2]),
        bandwidth=float(parts[3]),
        timestamp=datetime.fromisoformat(parts[0]),
        classification=parts[4],
        modulation=parts[5],
    )
