"""Unit tests for reporting.py and registry.py modules."""

import pytest

from physlab.config import SledConfig
from physlab.registry import SIMULATIONS, create_simulation
from physlab.reporting import format_snapshot, format_summary, summarize_series
from physlab.sled import Sled


class TestSummaries:
    """Test diagnostic summaries and tables."""

    def test_summarize(self):
        """Test the summary statistics of a series."""
        (summary,) = summarize_series({"energy": [3.0, 1.0, 2.0]})
        assert summary.name == "energy"
        assert summary.initial == 3.0
        assert summary.final == 2.0
        assert summary.minimum == 1.0
        assert summary.maximum == 3.0
        assert summary.mean == pytest.approx(2.0)
        assert summary.n_samples == 3

    def test_empty_series_skipped(self):
        """Test that series without samples are left out."""
        summaries = summarize_series({"empty": [], "one": [1.0]})
        assert [s.name for s in summaries] == ["one"]

    def test_format_summary(self):
        """Test the GitHub-style table."""
        table = format_summary(summarize_series({"separation": [1e-5, 2.5]}))
        lines = table.splitlines()
        assert lines[0].startswith("| Diagnostic")
        assert "Mean" in lines[0]
        assert "separation" in table
        assert "1e-05" in table

    def test_format_snapshot(self):
        """Test the two-column snapshot table."""
        table = format_snapshot({"kinetic": 0.5, "potential": 1.25})
        assert "| Diagnostic" in table
        assert "kinetic" in table
        assert "1.25" in table


class TestRegistry:
    """Test simulation lookup."""

    def test_all_registered(self):
        """Test that the four models are available."""
        assert list(SIMULATIONS) == ["energy-track", "lorenz", "gauge-field", "sled"]
        for name in SIMULATIONS:
            assert create_simulation(name).name == name

    def test_custom_config(self):
        """Test that a config is passed through."""
        simulation = create_simulation("sled", SledConfig(track_length=20.0))
        assert isinstance(simulation, Sled)
        assert simulation.config.track_length == 20.0

    def test_unknown(self):
        """Test that unknown names list the available simulations."""
        with pytest.raises(ValueError, match="Available simulations"):
            create_simulation("pendulum")

    def test_describe(self):
        """Test the description used by the CLI listing."""
        info = create_simulation("gauge-field").describe()
        assert info["name"] == "gauge-field"
        assert info["params"] == {"field_strength": 0.65, "gauge_freedom": 0.45}
