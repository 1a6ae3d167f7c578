"""Diagnostics for telegraphy sessions."""

from .figures import FigureConfig, plot_trace, plot_traces, HAS_MATPLOTLIB

__all__ = [
    "FigureConfig",
    "plot_trace",
    "plot_traces",
    "HAS_MATPLOTLIB",
]
