"""Unit tests for history.py module."""

import pytest

from physlab.history import EMPTY_HISTORY, History


class TestHistory:
    """Test the bounded buffers."""

    def test_eviction_order(self):
        """Test that a full buffer drops its oldest sample first."""
        history = History({"trail": 3})
        for value in range(5):
            history.append("trail", value)
        assert history.view()["trail"] == (2, 3, 4)

    def test_independent_capacities(self):
        """Test that each buffer has its own limit."""
        history = History({"short": 1, "long": 10})
        for value in range(4):
            history.append("short", value)
            history.append("long", value)
        view = history.view()
        assert view.size("short") == 1
        assert view.size("long") == 4
        assert history.capacity("long") == 10

    def test_view_is_snapshot(self):
        """Test that indexing a view returns an immutable tuple."""
        history = History({"a": 5})
        history.append("a", 1.0)
        snapshot = history.view()["a"]
        history.append("a", 2.0)
        assert snapshot == (1.0,)
        assert isinstance(snapshot, tuple)

    def test_view_mapping(self):
        """Test the read-only mapping interface."""
        history = History({"a": 2, "b": 2})
        view = history.view()
        assert set(view) == {"a", "b"}
        assert len(view) == 2
        assert view.latest("a") is None
        history.append("a", 7)
        assert view.latest("a") == 7
        assert view.get("missing", ()) == ()
        assert not hasattr(view, "append")

    def test_clear(self):
        """Test that clear empties every buffer."""
        history = History({"a": 2})
        history.append("a", 1)
        history.clear()
        assert history.view().size("a") == 0

    def test_unknown_buffer(self):
        """Test that appending to a missing buffer names the available ones."""
        with pytest.raises(KeyError, match="Unknown history buffer"):
            History({"a": 2}).append("b", 1)

    def test_capacity_validated(self):
        """Test that empty buffers are rejected."""
        with pytest.raises(ValueError, match="capacity of at least 1"):
            History({"a": 0})

    def test_empty_history(self):
        """Test the shared empty view."""
        assert len(EMPTY_HISTORY) == 0
        assert EMPTY_HISTORY.latest("anything", 3) == 3
