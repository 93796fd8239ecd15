"""Scanner configuration with documented defaults and YAML loading.

A configuration file is a YAML mapping whose keys are the field names
of :class:`ScannerConfig`, plus an optional ``classification`` list in
the :mod:`rf_scanner.bands` rule format::

    sample_rate: 2048000
    threshold: -35.0
    scan_start: 410000000
    scan_end: 430000000
    classification:
    - label: DMR/TETRA
      frequency_range: [410000000, 430000000]
"""

import dataclasses
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Union

import yaml

from rf_scanner.bands import DEFAULT_RULES, BandRule, rules_from_entries
from rf_scanner.history import DEFAULT_CAPACITY
from rf_scanner.peaks import DEFAULT_THRESHOLD, HALF_POWER_MARGIN
from rf_scanner.periodicity import DEFAULT_TOLERANCE, expected_frame_samples

DEFAULT_SAMPLE_RATE: int = 2_000_000
"""Default sample rate in Hz (2 MS/s)."""

DEFAULT_BLOCK_SIZE: int = 16_384
"""Default number of samples per block."""

DEFAULT_SCAN_START: float = 380e6
"""Default sweep start frequency in Hz."""

DEFAULT_SCAN_END: float = 400e6
"""Default sweep end frequency in Hz."""

DEFAULT_SCAN_STEP: float = 25e3
"""Default sweep step in Hz (one TETRA channel)."""

DEFAULT_MONITOR_DURATION: float = 60.0
"""Default monitor duration in seconds."""

DEFAULT_FRAME_DURATION: float = 255 / 18_000
"""Expected burst repetition period in seconds.

One TETRA timeslot (255 symbols at 18 ksym/s), about 14.17 ms.  This is
the spacing of consecutive bursts on a busy carrier, not the 56.67 ms
four-slot TDMA frame.  At the default sample rate it spans 28333
samples, so detection needs blocks of at least 131072 samples.
"""

DEFAULT_SETTLE_TIME: float = 0.05
"""Pause after retuning before samples are trusted, in seconds."""

DEFAULT_GAIN: int = 0
"""Default tuner gain in dB (0 = automatic)."""

#: Fields that must be strictly positive numbers.
_POSITIVE_FIELDS = (
    "sample_rate",
    "block_size",
    "history_capacity",
    "frame_duration",
    "frame_tolerance",
    "monitor_duration",
    "scan_step",
)

#: Fields that must be whole numbers.
_INTEGER_FIELDS = ("block_size", "history_capacity", "gain")


@dataclass(frozen=True)
class ScannerConfig:
    """All options consumed by the detection pipeline and sessions.

    ``bandwidth_margin`` is fixed at 3 dB; it is a field only so the
    pipeline reads it from one place.
    """

    sample_rate: float = DEFAULT_SAMPLE_RATE
    block_size: int = DEFAULT_BLOCK_SIZE
    threshold: float = DEFAULT_THRESHOLD
    bandwidth_margin: float = HALF_POWER_MARGIN
    history_capacity: int = DEFAULT_CAPACITY
    frame_duration: float = DEFAULT_FRAME_DURATION
    frame_tolerance: float = DEFAULT_TOLERANCE
    monitor_duration: float = DEFAULT_MONITOR_DURATION
    scan_start: float = DEFAULT_SCAN_START
    scan_end: float = DEFAULT_SCAN_END
    scan_step: float = DEFAULT_SCAN_STEP
    settle_time: float = DEFAULT_SETTLE_TIME
    gain: int = DEFAULT_GAIN
    rules: List[BandRule] = field(default_factory=lambda: list(DEFAULT_RULES))

    def __post_init__(self) -> None:
        validate_config(self)

    def replace(self, **overrides: Any) -> "ScannerConfig":
        """Return a copy with *overrides* applied, skipping ``None`` values.

        Raises:
            ValueError: If the result fails :func:`validate_config`.
        """
        changes = {k: v for k, v in overrides.items() if v is not None}
        return dataclasses.replace(self, **changes)


def _field_names() -> List[str]:
    return [f.name for f in dataclasses.fields(ScannerConfig)]


def validate_config(config: ScannerConfig) -> None:
    """Check value ranges of a configuration.

    Raises:
        ValueError: On the first out-of-range value found.
    """
    for name in _POSITIVE_FIELDS:
        value = getattr(config, name)
        if value <= 0:
            raise ValueError(f"Invalid config: '{name}' must be positive, got {value}")
    if config.settle_time < 0:
        raise ValueError(
            f"Invalid config: 'settle_time' must not be negative, got {config.settle_time}"
        )
    if config.scan_end < config.scan_start:
        raise ValueError(
            "Invalid config: 'scan_end' is below 'scan_start' "
            f"({config.scan_end} < {config.scan_start})"
        )
    if config.bandwidth_margin != HALF_POWER_MARGIN:
        raise ValueError(
            f"Invalid config: 'bandwidth_margin' is fixed at {HALF_POWER_MARGIN} dB"
        )
    if expected_frame_samples(config.frame_duration, config.sample_rate) < 1:
        raise ValueError(
            "Invalid config: 'frame_duration' is shorter than one sample "
            f"at {config.sample_rate} Hz, got {config.frame_duration}"
        )


def validate_config_yaml(data: object) -> None:
    """Validate the structure of a parsed configuration file.

    Checks:

    1. Top-level value is a mapping.
    2. Every key is a :class:`ScannerConfig` field or ``classification``.
    3. Every value other than ``classification`` is a number, and the
       integer fields hold whole numbers.

    The ``classification`` list is checked by
    :func:`~rf_scanner.bands.validate_rules_yaml` when it is converted.

    Args:
        data: The object returned by ``yaml.safe_load()``.

    Raises:
        ValueError: If the data does not conform.
    """
    if not isinstance(data, dict):
        raise ValueError(
            "Invalid config YAML: expected a mapping, "
            f"got {type(data).__name__}"
        )

    known = set(_field_names()) - {"rules"}
    for key, value in data.items():
        if key == "classification":
            continue
        if key not in known:
            raise ValueError(f"Invalid config YAML: unknown key {key!r}")
        if not isinstance(value, (int, float)) or isinstance(value, bool):
            raise ValueError(
                f"Invalid config YAML: {key!r} is not a number "
                f"(got {type(value).__name__})"
            )
        if key in _INTEGER_FIELDS and int(value) != value:
            raise ValueError(
                f"Invalid config YAML: {key!r} must be a whole number, got {value}"
            )


def config_from_mapping(data: Dict[str, Any]) -> ScannerConfig:
    """Build a validated :class:`ScannerConfig` from a parsed mapping."""
    validate_config_yaml(data)

    values: Dict[str, Any] = {}
    for key, value in data.items():
        if key == "classification":
            values["rules"] = rules_from_entries(value)
        elif key in _INTEGER_FIELDS:
            values[key] = int(value)
        else:
            values[key] = value

    return ScannerConfig(**values)


def load_config(path: Union[str, Path]) -> ScannerConfig:
    """Load a :class:`ScannerConfig` from a YAML file.

    Keys absent from the file keep their defaults.  An empty file
    yields the default configuration.

    Args:
        path: Path to the YAML configuration.

    Returns:
        The validated configuration.

    Raises:
        FileNotFoundError: If *path* does not exist.
        ValueError: If the file content is invalid.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, "r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)

    return config_from_mapping(data or {})
