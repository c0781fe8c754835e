"""Headless runs of the simulations: time series, plots and a final frame."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import matplotlib.pyplot as plt
import numpy as np
from tqdm import tqdm

from .config import SchedulerConfig, apply_overrides, get_verbosity
from .lorenz import LorenzComparator, LorenzParams
from .raster import save_frame
from .registry import create_simulation
from .render import Surface
from .reporting import DiagnosticSummary, format_summary, summarize_series
from .scheduler import FrameScheduler
from .simulation import Simulation

# simulation name -> (file name, title, y label, diagnostics plotted, log scale)
PLOTS: Dict[str, Tuple[str, str, str, Tuple[str, ...], bool]] = {
    "energy-track": ("energy_ledger.png", "Energy ledger", "Energy [J]",
                     ("kinetic", "potential", "dissipated", "total"), False),
    "lorenz": ("separation.png", "Twin separation", "|A - B|", ("separation",), True),
    "gauge-field": ("alignment.png", "Lattice alignment", "Value", ("order_parameter", "misalignment"), False),
    "sled": ("sled_motion.png", "Sled motion", "Value", ("velocity", "acceleration", "net_force"), False),
}


@dataclass(slots=True)
class AnalysisArtifacts:
    simulation: str
    params: object
    times: np.ndarray
    series: Dict[str, np.ndarray]
    summaries: List[DiagnosticSummary]
    table: str
    plots: List[Path]
    frame_path: Optional[Path]
    output_dir: Path
    steps: int
    frames: int


class SimulationAnalysis:
    def __init__(
        self,
        simulation: Simulation,
        params=None,
        surface: Optional[Surface] = None,
        config: Optional[SchedulerConfig] = None,
    ) -> None:
        self.simulation = simulation
        self.params = params if params is not None else simulation.default_params()
        self.surface = surface or Surface()
        self.config = config or SchedulerConfig()

    def record_run(self, seconds: float, fps: float) -> Tuple[FrameScheduler, np.ndarray, Dict[str, np.ndarray]]:
        """Tick a fresh scheduler at ``fps`` for ``seconds`` and record diagnostics per frame."""
        if seconds <= 0 or fps <= 0:
            raise ValueError(
                f"seconds and fps must be positive, got seconds={seconds}, fps={fps}."
            )
        scheduler = FrameScheduler(self.simulation, self.params, self.surface, self.config)
        n_frames = max(1, int(round(seconds * fps)))
        times: List[float] = []
        columns: Dict[str, List[float]] = {}

        frame_iter = tqdm(range(n_frames), desc=f"Simulating {self.simulation.name}",
                          disable=get_verbosity() == 0, leave=False)
        for _ in frame_iter:
            scheduler.tick(1.0 / fps)
            times.append(scheduler.sim_time)
            for name, value in scheduler.diagnostics().items():
                columns.setdefault(name, []).append(value)
        series = {name: np.asarray(values, dtype=float) for name, values in columns.items()}
        return scheduler, np.asarray(times), series

    def _plot_series(
        self,
        times: np.ndarray,
        series: Mapping[str, np.ndarray],
        keys: Sequence[str],
        out_path: Path,
        title: str,
        ylabel: str,
        log: bool = False,
    ) -> None:
        plt.figure(figsize=(7.5, 5.0))
        for key in keys:
            if key not in series:
                continue
            values = np.maximum(series[key], 1.0e-12) if log else series[key]
            plt.plot(times, values, "-", label=key, linewidth=2.0)
        if log:
            plt.yscale("log")
        plt.xlabel("Simulated time [s]")
        plt.ylabel(ylabel)
        plt.title(f"{title} ({self.simulation.name})")
        plt.grid(True, alpha=0.3)
        plt.legend()
        plt.tight_layout()
        plt.savefig(out_path)
        plt.close()

    def run(
        self,
        seconds: float = 10.0,
        fps: float = 60.0,
        output_dir: str | Path | None = None,
        frame_path: str | Path | None = None,
    ) -> AnalysisArtifacts:
        verbosity = get_verbosity()
        name = self.simulation.name

        if verbosity >= 1:
            print(f"Running {name} for {seconds:g}s at {fps:g} fps...")

        scheduler, times, series = self.record_run(seconds, fps)

        artifact_dir = Path(output_dir) if output_dir else Path("artifacts")
        artifact_dir.mkdir(parents=True, exist_ok=True)

        if verbosity >= 1:
            print(f"Generating plots (saving to {artifact_dir})...")

        plots: List[Path] = []
        if name in PLOTS:
            filename, title, ylabel, keys, log = PLOTS[name]
            self._plot_series(times, series, keys, artifact_dir / filename, title, ylabel, log)
            plots.append(artifact_dir / filename)
        if isinstance(self.simulation, LorenzComparator):
            comparison = artifact_dir / "separation_comparison.png"
            compare_lorenz_separation(seconds=seconds, fps=fps, output_path=comparison,
                                      simulation=self.simulation, params=self.params)
            plots.append(comparison)

        frame_file = Path(frame_path) if frame_path else artifact_dir / f"{name}_final.png"
        save_frame(scheduler.render(), frame_file)

        summaries = summarize_series(series)
        table = format_summary(summaries)
        report = [table, "", "Parameters:"]
        report.extend(f"  {f.name} = {getattr(self.params, f.name)}" for f in fields(self.params))
        report.append(f"Steps: {scheduler.steps}, simulated time: {scheduler.sim_time:.4f}s")
        (artifact_dir / "summary.txt").write_text("\n".join(report))

        return AnalysisArtifacts(
            simulation=name,
            params=self.params,
            times=times,
            series=series,
            summaries=summaries,
            table=table,
            plots=plots,
            frame_path=frame_file,
            output_dir=artifact_dir,
            steps=scheduler.steps,
            frames=len(times),
        )


def compare_lorenz_separation(
    rhos: Sequence[float] = (28.0, 5.0),
    seconds: float = 20.0,
    fps: float = 60.0,
    output_path: str | Path | None = None,
    simulation: Optional[LorenzComparator] = None,
    params: Optional[LorenzParams] = None,
) -> Dict[float, np.ndarray]:
    """Separation time series of the twins for several values of rho.

    The chaotic case grows by many orders of magnitude while the sub-critical
    one decays onto a shared fixed point. When ``output_path`` is given the
    series are drawn on one log-scale plot.
    """
    simulation = simulation or LorenzComparator()
    base = params or simulation.default_params()
    results: Dict[float, np.ndarray] = {}
    times = np.empty(0)
    for rho in rhos:
        analysis = SimulationAnalysis(simulation, replace(base, rho=rho))
        _, times, series = analysis.record_run(seconds, fps)
        results[float(rho)] = series["separation"]

    if output_path is not None:
        plt.figure(figsize=(7.5, 5.0))
        for rho, values in results.items():
            plt.semilogy(times, np.maximum(values, 1.0e-12), "-", label=f"rho = {rho:g}", linewidth=2.0)
        plt.xlabel("Simulated time [s]")
        plt.ylabel("|A - B|")
        plt.title(f"Twin separation, epsilon = {base.epsilon:.1e}")
        plt.grid(True, alpha=0.3)
        plt.legend()
        plt.tight_layout()
        plt.savefig(output_path)
        plt.close()
    return results


def split_overrides(simulation: Simulation, params, overrides: Mapping[str, str]):
    """Route ``key=value`` overrides to the parameters or to the simulation config.

    Parameter fields take precedence; anything else must be a config field.
    """
    param_names = {f.name for f in fields(params)}
    param_changes = {k: v for k, v in overrides.items() if k in param_names}
    config_changes = {k: v for k, v in overrides.items() if k not in param_names}
    config = apply_overrides(simulation.config, config_changes) if config_changes else simulation.config
    params = apply_overrides(params, param_changes) if param_changes else params
    return config, params


def run_headless(
    name: str,
    seconds: float = 10.0,
    fps: float = 60.0,
    output_dir: str | Path | None = None,
    overrides: Optional[Mapping[str, str]] = None,
    frame_path: str | Path | None = None,
    theme: str = "light",
    seed: Optional[int] = None,
) -> AnalysisArtifacts:
    simulation = create_simulation(name)
    config, params = split_overrides(simulation, simulation.default_params(), overrides or {})
    if config is not simulation.config:
        simulation = create_simulation(name, config)
    analysis = SimulationAnalysis(simulation, params, Surface(theme=theme), SchedulerConfig(seed=seed))
    return analysis.run(seconds=seconds, fps=fps, output_dir=output_dir, frame_path=frame_path)
