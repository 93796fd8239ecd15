"""Rule-based service classification by frequency band and bandwidth.

A classification table is an ordered list of :class:`BandRule` entries.
:func:`classify` returns the label of the first rule that matches, so
the most specific rules come first.  Every edge is inclusive.

The built-in table is :data:`DEFAULT_RULES`.  An alternative table can
be loaded from YAML with :func:`load_rules`; the format is a list of
entries, each with::

    - label: TETRA
      frequency_range:
      - 380000000     # start in Hz
      - 400000000     # end in Hz
      bandwidth_range:  # optional, Hz
      - 15000
      - 30000

All values in the YAML are in **Hz**.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Union

import yaml

from rf_scanner.formatters import format_frequency

UNKNOWN: str = "Unknown"

#: Labels a rule may carry.  Together with :data:`UNKNOWN` these are the
#: only values :func:`classify` can return.
LABELS = ("TETRA", "DMR/TETRA", "PMR/DMR")


@dataclass(frozen=True)
class BandRule:
    """A single classification rule.

    Attributes:
        label: Service label returned on a match.
        start_hz: Lower band edge in Hz (inclusive).
        end_hz: Upper band edge in Hz (inclusive).
        min_bandwidth: Smallest matching bandwidth in Hz (inclusive).
        max_bandwidth: Largest matching bandwidth in Hz (inclusive), or
            ``None`` for no upper limit.
    """

    label: str
    start_hz: int
    end_hz: int
    min_bandwidth: float = 0.0
    max_bandwidth: Optional[float] = None

    def matches(self, frequency: float, bandwidth: float) -> bool:
        """Return ``True`` if *frequency* and *bandwidth* fall in this rule."""
        if not self.start_hz <= frequency <= self.end_hz:
            return False
        if bandwidth < self.min_bandwidth:
            return False
        if self.max_bandwidth is not None and bandwidth > self.max_bandwidth:
            return False
        return True


#: Default table: TETRA channels (25 kHz raster) first, then the wider
#: mixed allocations.
DEFAULT_RULES: List[BandRule] = [
    BandRule("TETRA", 380_000_000, 400_000_000, 15_000.0, 30_000.0),
    BandRule("DMR/TETRA", 380_000_000, 430_000_000),
    BandRule("PMR/DMR", 440_000_000, 470_000_000),
]


def classify(
    frequency: float,
    bandwidth: float,
    rules: Sequence[BandRule] = DEFAULT_RULES,
) -> str:
    """Map a frequency/bandwidth pair to a service label.

    Args:
        frequency: Centre frequency in Hz.
        bandwidth: Occupied bandwidth in Hz.
        rules: Ordered rule table; the first match wins.

    Returns:
        The matching rule's label, or :data:`UNKNOWN`.
    """
    for rule in rules:
        if rule.matches(frequency, bandwidth):
            return rule.label
    return UNKNOWN


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_rules_yaml(data: object) -> None:
    """Validate that parsed YAML data has the expected rule structure.

    Checks:

    1. Top-level value is a non-empty ``list``.
    2. Each entry is a ``dict`` with:
       - ``label`` — one of :data:`LABELS`.
       - ``frequency_range`` — a list of exactly 2 numbers, start <= end.
       - ``bandwidth_range`` (optional) — a list of 2 numbers or
         ``[min, null]``.

    Args:
        data: The object returned by ``yaml.safe_load()``.

    Raises:
        ValueError: If the data does not conform.  The message describes
            the first problem found.
    """
    if not isinstance(data, list):
        raise ValueError(
            "Invalid rule YAML: expected a list of entries, "
            f"got {type(data).__name__}"
        )
    if len(data) == 0:
        raise ValueError("Invalid rule YAML: file contains an empty list")

    for i, entry in enumerate(data):
        label = f"entry {i}"
        if not isinstance(entry, dict):
            raise ValueError(
                f"Invalid rule YAML: {label} is not a mapping "
                f"(got {type(entry).__name__})"
            )

        name = entry.get("label")
        if name not in LABELS:
            raise ValueError(
                f"Invalid rule YAML: {label} has label {name!r}; "
                f"expected one of {', '.join(LABELS)}"
            )

        fr = entry.get("frequency_range")
        if not isinstance(fr, list) or len(fr) != 2:
            raise ValueError(
                f"Invalid rule YAML: {label} 'frequency_range' "
                "must be a list of exactly 2 numbers"
            )
        for j, val in enumerate(fr):
            if not _is_number(val):
                raise ValueError(
                    f"Invalid rule YAML: {label} "
                    f"'frequency_range[{j}]' is not a number "
                    f"(got {type(val).__name__})"
                )
        if fr[0] > fr[1]:
            raise ValueError(
                f"Invalid rule YAML: {label} 'frequency_range' start "
                "is above its end"
            )

        bw = entry.get("bandwidth_range")
        if bw is None:
            continue
        if not isinstance(bw, list) or len(bw) != 2:
            raise ValueError(
                f"Invalid rule YAML: {label} 'bandwidth_range' "
                "must be a list of exactly 2 values"
            )
        if not _is_number(bw[0]) or not (bw[1] is None or _is_number(bw[1])):
            raise ValueError(
                f"Invalid rule YAML: {label} 'bandwidth_range' "
                "must hold numbers (the upper bound may be null)"
            )


def rules_from_entries(entries: object) -> List[BandRule]:
    """Build a rule table from already-parsed YAML entries.

    Args:
        entries: Parsed YAML, validated with :func:`validate_rules_yaml`.

    Returns:
        Rules in the order given.

    Raises:
        ValueError: If *entries* is not a valid rule list.
    """
    validate_rules_yaml(entries)

    rules: List[BandRule] = []
    for entry in entries:  # type: ignore[union-attr]
        start, end = entry["frequency_range"]
        min_bw, max_bw = entry.get("bandwidth_range") or (0.0, None)
        rules.append(BandRule(
            label=entry["label"],
            start_hz=int(start),
            end_hz=int(end),
            min_bandwidth=float(min_bw),
            max_bandwidth=None if max_bw is None else float(max_bw),
        ))
    return rules


def load_rules(path: Union[str, Path]) -> List[BandRule]:
    """Load a classification table from a YAML file.

    Args:
        path: Path to the YAML rule table.

    Returns:
        Rules in file order, ready for :func:`classify`.

    Raises:
        FileNotFoundError: If *path* does not exist.
        ValueError: If the file content is not a valid rule table.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Classification table not found: {path}")

    with open(path, "r", encoding="utf-8") as fh:
        entries = yaml.safe_load(fh)

    return rules_from_entries(entries)


def format_rule(rule: BandRule) -> str:
    """Describe a rule on one line, e.g. for ``rf-scanner bands``."""
    text = (
        f"{rule.label:<10} {format_frequency(rule.start_hz)} – "
        f"{format_frequency(rule.end_hz)}"
    )
    if rule.min_bandwidth or rule.max_bandwidth is not None:
        upper = (
            "∞" if rule.max_bandwidth is None
            else format_frequency(rule.max_bandwidth)
        )
        text += f"  (bandwidth {format_frequency(rule.min_bandwidth)} – {upper})"
    return text
