"""Human-readable formatters for frequency, bandwidth and power values.

Used by the CLI tables and by plot hover text.
"""

import math
from typing import Optional, Union

# Frequency thresholds
_ONE_KHZ: int = 1_000
_ONE_MHZ: int = 1_000_000
_ONE_GHZ: int = 1_000_000_000


def format_frequency(value: Optional[Union[int, float]]) -> str:
    """Format a frequency in Hz to a human-readable string.

    * ``None``, ``NaN`` or negative → ``""``
    * < 1 kHz → ``"<n> Hz"``
    * < 1 MHz → ``"<n> kHz"``
    * < 1 GHz → ``"<n> MHz"``
    * ≥ 1 GHz → ``"<n> GHz"``

    Scaled values keep up to three decimals with trailing zeros
    stripped, so a 25 kHz channel raster stays readable
    (``380.025 MHz``).

    Args:
        value: Frequency in Hz, or ``None``.

    Returns:
        Formatted string, or ``""`` for invalid input.
    """
    if value is None or math.isnan(value) or value < 0:
        return ""

    if value < _ONE_KHZ:
        return f"{int(round(value))} Hz"

    if value < _ONE_MHZ:
        return f"{_format_decimal(value / _ONE_KHZ)} kHz"

    if value < _ONE_GHZ:
        return f"{_format_decimal(value / _ONE_MHZ)} MHz"

    return f"{_format_decimal(value / _ONE_GHZ)} GHz"


def format_bandwidth(value: Optional[float]) -> str:
    """Format a bandwidth in Hz as kHz with one decimal (``"24.4 kHz"``)."""
    if value is None or math.isnan(value) or value < 0:
        return ""
    return f"{value / _ONE_KHZ:.1f} kHz"


def format_power(value: Optional[float]) -> str:
    """Format a power value as ``"<n.nn> dB"``; ``""`` for ``None``/``NaN``."""
    if value is None or math.isnan(value):
        return ""
    return f"{value:.2f} dB"


def _format_decimal(value: float) -> str:
    """Format with up to 3 decimals, trailing zeros and dot stripped."""
    formatted = f"{value:.3f}"
    if "." in formatted:
        formatted = formatted.rstrip("0").rstrip(".")
    return formatted
