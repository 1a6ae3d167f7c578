"""Figures for occupancy traces.

One trace per participant; the sender's plateaus should line up with
the receiver's probe spikes.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Tuple

# Conditional matplotlib import for environments without display
try:
    import matplotlib
    matplotlib.use("Agg")
    import matplotlib.pyplot as plt
    HAS_MATPLOTLIB = True
except ImportError:
    HAS_MATPLOTLIB = False

from ..pool.config import PoolConfig
from ..pool.trace import OccupancyTrace


@dataclass
class FigureConfig:
    """Configuration for figure generation."""
    dpi: int = 150
    format: str = "png"  # or "pdf", "svg"
    figsize: Tuple[float, float] = (10, 4)
    colors: Dict[str, str] = None

    def __post_init__(self):
        if self.colors is None:
            self.colors = {
                "sender": "#2E86AB",
                "receiver": "#F6AE2D",
                "pulse": "#BBBBBB",
            }


def _require_matplotlib():
    if not HAS_MATPLOTLIB:
        raise ImportError("matplotlib is required for figures: pip install poolparty[plots]")


def plot_traces(
    traces: Dict[str, OccupancyTrace],
    pool_config: Optional[PoolConfig] = None,
    t0_ms: Optional[float] = None,
    output: Optional[Path] = None,
    config: Optional[FigureConfig] = None,
):
    """Plot held count over time for each named trace.

    When ``pool_config`` and ``t0_ms`` are given, pulse boundaries are
    drawn as vertical lines. Returns the figure; saves it if ``output``
    is set.
    """
    _require_matplotlib()
    config = config or FigureConfig()

    fig, ax = plt.subplots(figsize=config.figsize)
    origin = t0_ms
    for name, trace in traces.items():
        data = trace.as_array()
        if len(data) == 0:
            continue
        if origin is None:
            origin = data[0, 0]
        ax.step(
            data[:, 0] - origin,
            data[:, 1],
            where="post",
            label=name,
            color=config.colors.get(name),
        )

    if pool_config is not None and t0_ms is not None:
        for i in range(pool_config.list_size + 1):
            ax.axvline(
                pool_config.negotiate_ms + i * pool_config.pulse_ms,
                color=config.colors["pulse"],
                linestyle="--",
                linewidth=0.8,
            )

    ax.set_xlabel("time since t0 (ms)")
    ax.set_ylabel("slots held")
    ax.set_title("Slot occupancy")
    ax.legend()
    fig.tight_layout()

    if output is not None:
        output = Path(output)
        output.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(output, dpi=config.dpi, format=config.format)
    return fig


def plot_trace(
    trace: OccupancyTrace,
    pool_config: Optional[PoolConfig] = None,
    t0_ms: Optional[float] = None,
    output: Optional[Path] = None,
    label: str = "held",
):
    """Plot a single trace; see ``plot_traces``."""
    return plot_traces({label: trace}, pool_config=pool_config, t0_ms=t0_ms, output=output)
