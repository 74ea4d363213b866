"""
Render Tests

ASCII grid composition: backdrop, stamping order, transparency and clipping.
"""

import numpy as np

from ecosystem.constants import Environment
from ecosystem.render import ENVIRONMENT_PATTERNS, empty_grid, render_grid, stamp
from ecosystem.types_state import EcosystemState


class TestStamp:
    """Tests for stamp."""

    def test_spaces_transparent(self):
        """Spaces never overwrite what is underneath."""
        grid = empty_grid(5, 2)
        stamp(grid, ["xxxxx"], 0, 0)
        stamp(grid, ["a b"], 1, 0)
        assert "".join(grid[0]) == "xaxbx"

    def test_clipping(self):
        """Glyphs outside the grid are dropped."""
        grid = empty_grid(4, 2)
        stamp(grid, ["abcdef", "ghij", "klmn"], 2, 1)
        assert "".join(grid[0]) == "    "
        assert "".join(grid[1]) == "  ab"

    def test_negative_origin(self):
        """Negative offsets clip from the top-left."""
        grid = empty_grid(3, 3)
        stamp(grid, ["abc", "def"], -1, -1)
        assert "".join(grid[0]) == "ef "


class TestRenderGrid:
    """Tests for render_grid."""

    def test_dimensions(self, registry):
        """Output is height rows of exactly width characters."""
        text = render_grid(EcosystemState(), registry)
        rows = text.split("\n")
        assert len(rows) == 25
        assert all(len(row) == 80 for row in rows)

    def test_backdrop(self, registry):
        """The environment pattern is drawn at the origin."""
        state = EcosystemState(environment=Environment.PRISMATIC)
        rows = render_grid(state, registry).split("\n")
        assert rows[0].startswith(ENVIRONMENT_PATTERNS[Environment.PRISMATIC][0])

    def test_entity_stamped(self, place, registry):
        """Entities are drawn at their position with their current frame."""
        state = EcosystemState()
        place(state, "weaver", 40, 20)
        rows = render_grid(state, registry).split("\n")
        first_line = registry.resolve_pattern("weaver", 0)[0][0]
        expected = first_line.rstrip()
        assert rows[20][40:40 + len(expected)].strip() == expected.strip()

    def test_later_entities_on_top(self, place, registry):
        """Entities are stamped in list order."""
        registry.register_type("alpha", ["A"], "Alpha", "", ["a", "b", "c"], "")
        registry.register_type("omega", ["Z"], "Omega", "", ["a", "b", "c"], "")
        state = EcosystemState()
        place(state, "alpha", 50, 20)
        place(state, "omega", 50, 20)
        rows = render_grid(state, registry).split("\n")
        assert rows[20][50] == "Z"

    def test_unknown_type_inline_pattern(self, place, registry):
        """Unregistered types draw the pattern they carry."""
        state = EcosystemState()
        entity = place(state, "nexus", 50, 20)
        entity.pattern = ["#"]
        rows = render_grid(state, registry).split("\n")
        assert rows[20][50] == "#"

    def test_out_of_bounds_skipped(self, place, registry):
        """Entities positioned off-grid are not drawn."""
        registry.register_type("alpha", ["A"], "Alpha", "", ["a", "b", "c"], "")
        state = EcosystemState()
        place(state, "alpha", 90, 3)
        text = render_grid(state, registry)
        assert "A" not in text

    def test_grid_dtype(self):
        """The grid is a single-character unicode array."""
        grid = empty_grid(3, 2)
        assert grid.shape == (2, 3)
        assert grid.dtype == np.dtype("<U1")
