"""Interactive plots of scan results and spectral history with Plotly.

:class:`PlotlyExporter` implements the export capability that sessions
hand their finished results to; the ``plot_*`` functions build the
figures and can be used on their own.
"""

import logging
from pathlib import Path
from typing import List, Optional, Sequence, Union

import numpy as np
import plotly.graph_objects as go

from rf_scanner.errors import ExportError
from rf_scanner.formatters import format_bandwidth, format_frequency, format_power
from rf_scanner.models import PowerSpectrum, ScanResult
from rf_scanner.spectrum import frequency_axis

logger = logging.getLogger(__name__)

#: SDR-style colorscale matching common tools (GQRX, SDR#, etc.).
#: Gradient: dark navy → blue → green → yellow → red.
SDR_COLORSCALE: List[List[object]] = [
    [0.0, "#000080"],
    [0.25, "#0000ff"],
    [0.5, "#00ff00"],
    [0.75, "#ffff00"],
    [1.0, "#ff0000"],
]

#: Marker colour per classification label.
LABEL_COLORS = {
    "TETRA": "#ff4444",
    "DMR/TETRA": "#ffaa00",
    "PMR/DMR": "#44aaff",
    "Unknown": "#aaaaaa",
}

#: Waterfall rows wider than this are reduced by peak-hold decimation.
MAX_WATERFALL_COLUMNS: int = 2048


def _save_figure(fig: go.Figure, output: Union[str, Path]) -> None:
    """Save a Plotly figure to file.

    Args:
        fig: A Plotly :class:`~plotly.graph_objects.Figure`.
        output: Destination path.  ``.html`` → interactive HTML;
            any other extension → static image via ``kaleido``.
    """
    output = Path(output)
    output.parent.mkdir(parents=True, exist_ok=True)
    if output.suffix.lower() == ".html":
        fig.write_html(str(output))
    else:
        fig.write_image(str(output))


def plot_scan_result(
    result: ScanResult,
    title: str = "Detected Signals",
    show: bool = True,
    output: Optional[Union[str, Path]] = None,
) -> go.Figure:
    """Plot detected signals as power-vs-frequency markers.

    One trace per classification label so the legend doubles as a
    filter.  Hover text shows frequency, power, bandwidth and the
    estimated modulation.

    Args:
        result: A finished scan.
        title: Chart title.
        show: If ``True``, opens the plot in the default browser.
        output: Optional file path to save the plot.

    Returns:
        The Plotly :class:`~plotly.graph_objects.Figure`.
    """
    fig = go.Figure()

    labels = sorted({s.classification for s in result.signals})
    for label in labels:
        signals = [s for s in result.signals if s.classification == label]
        fig.add_trace(go.Scatter(
            x=[s.frequency for s in signals],
            y=[s.power for s in signals],
            mode="markers",
            name=label,
            marker=dict(color=LABEL_COLORS.get(label, "#ffffff"), size=8),
            hovertext=[
                f"{format_frequency(s.frequency)}<br>{format_power(s.power)}"
                f"<br>BW {format_bandwidth(s.bandwidth)}<br>{s.modulation}"
                for s in signals
            ],
            hoverinfo="text",
        ))

    fig.update_layout(
        title=(
            f"{title} — {format_frequency(result.start_frequency)} to "
            f"{format_frequency(result.end_frequency)}"
        ),
        xaxis_title="Frequency (Hz)",
        yaxis_title="Power (dB)",
        template="plotly_dark",
        xaxis=dict(
            tickformat=",",
            range=[result.start_frequency, result.end_frequency],
        ),
    )

    if output:
        _save_figure(fig, output)

    if show:
        fig.show()

    return fig


def _decimate(row: np.ndarray, columns: int) -> np.ndarray:
    """Reduce *row* to *columns* values keeping the maximum of each group."""
    usable = len(row) - len(row) % columns
    return row[:usable].reshape(columns, -1).max(axis=1)


def plot_waterfall(
    history: Sequence[PowerSpectrum],
    center_frequency: float,
    sample_rate: float,
    title: str = "RF Waterfall / Spectrogram",
    show: bool = True,
    output: Optional[Union[str, Path]] = None,
) -> go.Figure:
    """Create a waterfall/spectrogram heatmap of a spectral history.

    X = frequency, Y = block number (oldest at the top), colour = power
    using :data:`SDR_COLORSCALE`.  Rows wider than
    :data:`MAX_WATERFALL_COLUMNS` are peak-hold decimated so that
    narrow carriers stay visible.

    Args:
        history: Power spectra, oldest first, all of the same length.
        center_frequency: Tuned centre frequency in Hz.
        sample_rate: Sample rate in Hz.
        title: Chart title.
        show: If ``True``, opens the plot in the default browser.
        output: Optional file path to save the plot.

    Returns:
        The Plotly :class:`~plotly.graph_objects.Figure`.

    Raises:
        ValueError: If *history* is empty.
    """
    if len(history) == 0:
        raise ValueError("Cannot plot waterfall with empty history")

    z = np.vstack(history)
    freqs = frequency_axis(center_frequency, sample_rate, z.shape[1])
    if z.shape[1] > MAX_WATERFALL_COLUMNS:
        # Largest divisor of the row length not above the column limit
        columns = max(
            c for c in range(1, MAX_WATERFALL_COLUMNS + 1) if z.shape[1] % c == 0
        )
        z = np.vstack([_decimate(row, columns) for row in z])
        freqs = freqs[:: len(freqs) // columns]

    fig = go.Figure(data=go.Heatmap(
        x=freqs,
        y=list(range(1, z.shape[0] + 1)),
        z=z,
        colorscale=SDR_COLORSCALE,
        colorbar=dict(title="Power (dB)"),
        hovertemplate=(
            "Frequency: %{x:,.0f} Hz<br>"
            "Block: %{y}<br>"
            "Power: %{z:.2f} dB"
            "<extra></extra>"
        ),
    ))

    fig.update_layout(
        title=f"{title} — {format_frequency(center_frequency)}",
        xaxis_title="Frequency (Hz)",
        yaxis_title="Block",
        template="plotly_dark",
        xaxis=dict(tickformat=","),
        yaxis=dict(autorange="reversed"),
    )

    if output:
        _save_figure(fig, output)

    if show:
        fig.show()

    return fig


class PlotlyExporter:
    """Export capability that renders finished sessions with Plotly.

    Attributes:
        output: File the figure is written to, or ``None``.
        show: Whether to open the figure in a browser.
        sample_rate: Sample rate used to label waterfall columns.
        figures: Every figure produced, in export order.
    """

    def __init__(
        self,
        sample_rate: float,
        output: Optional[Union[str, Path]] = None,
        show: bool = False,
    ) -> None:
        self.sample_rate = sample_rate
        self.output = output
        self.show = show
        self.figures: List[go.Figure] = []

    def export(self, result: ScanResult) -> None:
        """Plot a finished scan.

        Raises:
            ExportError: If the figure cannot be built or written.
        """
        try:
            fig = plot_scan_result(result, show=self.show, output=self.output)
        except (OSError, ValueError) as exc:
            raise ExportError(f"Cannot export scan result: {exc}") from exc
        self.figures.append(fig)

    def export_history(
        self,
        history: Sequence[PowerSpectrum],
        center_frequency: float,
    ) -> None:
        """Plot a monitor session's spectral history as a waterfall.

        Raises:
            ExportError: If the figure cannot be built or written.
        """
        try:
            fig = plot_waterfall(
                history,
                center_frequency,
                self.sample_rate,
                show=self.show,
                output=self.output,
            )
        except (OSError, ValueError) as exc:
            raise ExportError(f"Cannot export spectral history: {exc}") from exc
        self.figures.append(fig)
        logger.info("Exported waterfall of %d spectra", len(history))
