"""
Tests for terminal rendering (actm/render.py).
"""

import io

from actm import render
from actm.models import ToolStatus, UpdateResult


class TestDisplayWidth:
    """Tests for width calculation."""

    def test_ignores_color_codes(self):
        """ANSI codes take no columns."""
        assert render.display_width("\033[32m1.0.0\033[0m") == 5

    def test_ignores_hyperlinks(self):
        """OSC 8 wrappers take no columns."""
        assert render.display_width("\033]8;;https://example.com\033\\name\033]8;;\033\\") == 4

    def test_wide_emoji(self):
        """Emoji occupy two columns."""
        assert render.display_width("✅") == 2


class TestFormatTable:
    """Tests for column alignment."""

    def test_columns_align_with_emoji(self):
        """Cells after an emoji start in the same column."""
        lines = render.format_table([["", "tool"], ["✅", "a"], ["x", "b"]])
        assert lines[1].startswith("--")
        assert render.display_width(lines[2].split("a")[0]) == render.display_width(lines[3].split("b")[0])

    def test_empty(self):
        """No rows, no lines."""
        assert render.format_table([]) == []


class TestRenderResults:
    """Tests for result rendering."""

    def test_status_icons_distinct(self):
        """Each status has its own icon."""
        icons = {render.status_icon(s) for s in ToolStatus}
        assert len(icons) == len(ToolStatus)

    def test_update_result_with_log(self):
        """Logs are indented under the result line."""
        out = io.StringIO()
        result = UpdateResult(success=False, tool_name="sample", error="boom", log="a\nb\n")
        render.render_update_result(result, show_log=True, out=out)
        lines = out.getvalue().splitlines()
        assert "sample" in lines[0]
        assert lines[1:] == ["    a", "    b"]
