"""
Terminal rendering of scan, check and update results.

Columns are aligned by display width so emoji icons and colored cells line up.
"""

from __future__ import annotations

import os
import re
import sys
from typing import Sequence, TextIO

from wcwidth import wcswidth

from .catalog import ToolDefinition
from .models import BatchUpdateResult, ToolInfo, ToolStatus, UpdateResult
from .updater import BackupManifest


# Environment options
USE_EMOJI = os.environ.get("ACTM_EMOJI", "1") == "1"
ENABLE_LINKS = os.environ.get("ACTM_LINKS", "1") == "1"
USE_COLOR = os.environ.get("ACTM_COLOR", "1") == "1" and "NO_COLOR" not in os.environ

# ANSI color codes
GREEN = "\033[32m"
BOLD_GREEN = "\033[1;32m"
YELLOW = "\033[33m"
BLUE = "\033[34m"
RED = "\033[31m"
RESET = "\033[0m"

# CSI sequences and OSC 8 open/close markers, ignored for width
CSI_RE = re.compile(r"\x1b\[[0-?]*[ -/]*[@-~]")
OSC8_OPEN_RE = re.compile(r"\x1b\]8;[^\\]*\\")
OSC8_CLOSE_RE = re.compile(r"\x1b\]8;;\\")


def status_icon(status: ToolStatus) -> str:
    """Get status icon for a tool.

    Args:
        status: Detection status

    Returns:
        Status icon string
    """
    if not USE_EMOJI:
        if status == ToolStatus.NOT_INSTALLED:
            return "x"
        if status == ToolStatus.INSTALLED:
            return "✓"
        if status == ToolStatus.OUTDATED:
            return "↑"
        return "!"

    if status == ToolStatus.NOT_INSTALLED:
        return "❌"
    if status == ToolStatus.INSTALLED:
        return "✅"
    if status == ToolStatus.OUTDATED:
        return "⬆"  # Single-width arrow without variation selector
    return "⚠"


def colorize(text: str, color: str) -> str:
    """Apply color to text.

    Args:
        text: Text to colorize
        color: ANSI color code

    Returns:
        Colored text or plain text if colors disabled
    """
    if not USE_COLOR or not text:
        return text
    return f"{color}{text}{RESET}"


def osc8(url: str | None, text: str) -> str:
    """Create OSC8 hyperlink.

    Args:
        url: Link URL
        text: Display text

    Returns:
        Hyperlinked text or plain text if links disabled
    """
    if not ENABLE_LINKS or not url:
        return text
    return f"\033]8;;{url}\033\\{text}\033]8;;\033\\"


def display_width(text: str) -> int:
    """Terminal columns occupied by text, ignoring escape sequences."""
    visible = CSI_RE.sub("", OSC8_CLOSE_RE.sub("", OSC8_OPEN_RE.sub("", text)))
    width = wcswidth(visible)
    return width if width >= 0 else len(visible)


def format_table(rows: Sequence[Sequence[str]], pad: int = 2, header: bool = True) -> list[str]:
    """
    Align rows into columns by display width.

    Args:
        rows: Table rows, the first one is the header when ``header`` is set
        pad: Spaces between columns
        header: Draw a rule under the first row

    Returns:
        Formatted lines
    """
    if not rows:
        return []

    ncol = max(len(r) for r in rows)
    widths = [0] * ncol
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], display_width(cell))

    lines = []
    for ridx, row in enumerate(rows):
        cells = []
        for i in range(ncol):
            cell = row[i] if i < len(row) else ""
            cells.append(cell + " " * (widths[i] - display_width(cell)))
        lines.append((" " * pad).join(cells).rstrip())
        if header and ridx == 0:
            lines.append((" " * pad).join("-" * w for w in widths))
    return lines


def _print_lines(lines: Sequence[str], out: TextIO | None) -> None:
    stream = out or sys.stdout
    for line in lines:
        print(line, file=stream)


def render_tools(
    tools: Sequence[ToolInfo],
    definitions: dict[str, ToolDefinition] | None = None,
    out: TextIO | None = None,
) -> None:
    """Render scan or check results as a table.

    Args:
        tools: Records to render
        definitions: Catalog entries by name, used for homepage links
        out: Output stream (stdout by default)
    """
    rows = [["", "tool", "installed", "latest", "method", "path"]]
    for tool in tools:
        if tool.status == ToolStatus.OUTDATED:
            inst_color, latest_color = YELLOW, BOLD_GREEN
        elif tool.status == ToolStatus.INSTALLED:
            inst_color, latest_color = GREEN, GREEN
        elif tool.status == ToolStatus.ERROR:
            inst_color, latest_color = RED, BLUE
        else:
            inst_color, latest_color = BLUE, BLUE

        definition = (definitions or {}).get(tool.name)
        name = osc8(definition.homepage if definition else None, tool.display_name)

        if tool.status == ToolStatus.ERROR:
            installed = colorize(tool.error or "error", inst_color)
        else:
            installed = colorize(tool.current_version or "-", inst_color)

        rows.append([
            status_icon(tool.status),
            name,
            installed,
            colorize(tool.latest_version or "-", latest_color),
            tool.install_method.value if tool.install_path else "-",
            tool.install_path or "",
        ])

    _print_lines(format_table(rows), out)


def print_summary(tools: Sequence[ToolInfo], out: TextIO | None = None) -> None:
    """Print summary line.

    Args:
        tools: Rendered records
        out: Output stream (stderr by default)
    """
    installed = sum(1 for t in tools if t.status in (ToolStatus.INSTALLED, ToolStatus.OUTDATED))
    outdated = sum(1 for t in tools if t.status == ToolStatus.OUTDATED)
    missing = sum(1 for t in tools if t.status == ToolStatus.NOT_INSTALLED)
    errors = sum(1 for t in tools if t.status == ToolStatus.ERROR)

    parts = [f"{len(tools)} tools", f"{installed} installed", f"{outdated} outdated", f"{missing} missing"]
    if errors:
        parts.append(f"{errors} errors")
    print(f"\nSummary: {', '.join(parts)}", file=out or sys.stderr)


def render_update_result(result: UpdateResult, show_log: bool = False, out: TextIO | None = None) -> None:
    """Render one update or install outcome."""
    if result.success:
        line = f"✅ {result.tool_name}: {result.old_version or '-'} → {result.new_version}"
    else:
        line = f"❌ {result.tool_name}: {colorize(result.error or 'failed', RED)}"
    lines = [line]
    if show_log and result.log:
        lines.extend(f"    {log_line}" for log_line in result.log.rstrip("\n").splitlines())
    _print_lines(lines, out)


def render_batch_result(batch: BatchUpdateResult, show_log: bool = False, out: TextIO | None = None) -> None:
    for result in batch.results:
        render_update_result(result, show_log=show_log, out=out)
    print(batch.summary(), file=out or sys.stdout)


def render_definitions(definitions: Sequence[ToolDefinition], out: TextIO | None = None) -> None:
    rows = [["tool", "command", "providers"]]
    for d in definitions:
        providers = [m.value for m in d.declared_methods()]
        if d.vscode_extension:
            providers.append("vscode-extension")
        if d.github:
            providers.append(f"github:{d.github.slug}")
        rows.append([osc8(d.homepage, d.display_name), d.command, ", ".join(providers)])
    _print_lines(format_table(rows), out)


def render_backups(manifests: Sequence[BackupManifest], out: TextIO | None = None) -> None:
    if not manifests:
        print("No backups found", file=out or sys.stdout)
        return
    rows = [["tool", "version", "method", "date"]]
    for m in manifests:
        rows.append([m.name, m.version or "-", m.install_method.value, m.backup_date])
    _print_lines(format_table(rows), out)
