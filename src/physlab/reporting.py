"""Reporting utilities for headless simulation runs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping, Sequence

import numpy as np
from tabulate import tabulate


@dataclass(frozen=True)
class DiagnosticSummary:
    name: str
    initial: float
    final: float
    minimum: float
    maximum: float
    mean: float
    n_samples: int


def summarize_series(series: Mapping[str, Sequence[float]]) -> list[DiagnosticSummary]:
    """Summarise every non-empty diagnostic time series."""
    summaries: list[DiagnosticSummary] = []
    for name, values in series.items():
        data = np.asarray(values, dtype=float)
        if data.size == 0:
            continue
        summaries.append(
            DiagnosticSummary(
                name=name,
                initial=float(data[0]),
                final=float(data[-1]),
                minimum=float(np.min(data)),
                maximum=float(np.max(data)),
                mean=float(np.mean(data)),
                n_samples=int(data.size),
            )
        )
    return summaries


def format_summary(summaries: Iterable[DiagnosticSummary]) -> str:
    rows: list[tuple] = []
    for summary in summaries:
        rows.append(
            (
                summary.name,
                summary.n_samples,
                f"{summary.initial:.6g}",
                f"{summary.final:.6g}",
                f"{summary.minimum:.6g}",
                f"{summary.maximum:.6g}",
                f"{summary.mean:.6g}",
            )
        )
    return tabulate(
        rows,
        headers=["Diagnostic", "N", "Initial", "Final", "Min", "Max", "Mean"],
        tablefmt="github",
    )


def format_snapshot(diagnostics: Mapping[str, float]) -> str:
    """Two-column table of the current diagnostic values."""
    rows = [(name, f"{value:.6g}") for name, value in diagnostics.items()]
    return tabulate(rows, headers=["Diagnostic", "Value"], tablefmt="github")
