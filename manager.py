#!/usr/bin/env python3
"""
AI coding tools manager - detect, check and update AI coding CLIs.

Usage:
    manager.py scan                       # Detect installed tools
    manager.py check                      # Detect and compare with upstream
    manager.py update claude gemini       # Update specific tools
    manager.py batch-update --all-outdated
    manager.py install codex --method npm --package @openai/codex
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any, Sequence

import yaml

from actm.logging_config import setup_logging
from actm.models import BatchUpdateResult, InstallMethod, ToolInfo, UpdateResult
from actm.render import (
    print_summary,
    render_backups,
    render_batch_result,
    render_definitions,
    render_tools,
    render_update_result,
)
from actm.service import ToolManagerService, create_service


def print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


def parse_config_value(key: str, raw: str) -> Any:
    """Parse a ``--set`` value; proxies are given as ``protocol://host:port``."""
    if key == "proxy":
        protocol, sep, rest = raw.partition("://")
        host, _, port = rest.rpartition(":")
        if not sep or not host or not port.isdigit():
            raise ValueError(f"Invalid proxy: {raw}. Expected protocol://host:port")
        return {"protocol": protocol, "host": host, "port": int(port)}
    return yaml.safe_load(raw)


def _find_tools(service: ToolManagerService, names: Sequence[str]) -> list[ToolInfo | UpdateResult]:
    """Scan and pick the named tools in argument order; unknown names become failed results."""
    by_name = {t.name: t for t in service.scan_tools()}
    return [
        by_name[name] if name in by_name
        else UpdateResult(success=False, tool_name=name, error=f"Unknown tool: {name}")
        for name in names
    ]


def cmd_scan(service: ToolManagerService, args: argparse.Namespace) -> int:
    """Detect installed tools (no network)."""
    tools = service.scan_tools()
    if args.json:
        print_json([t.to_dict() for t in tools])
        return 0

    print(f"# Scanning {len(tools)} AI coding tools...", file=sys.stderr)
    render_tools(tools, {d.name: d for d in service.get_tool_definitions()})
    print_summary(tools)
    return 0


def cmd_check(service: ToolManagerService, args: argparse.Namespace) -> int:
    """Detect installed tools and resolve upstream versions."""
    tools = service.scan_tools()
    if args.tools:
        selected = set(args.tools)
        tools = [t for t in tools if t.name in selected]

    if not args.json:
        rate_limit = service.github_rate_limit()
        if rate_limit:
            remaining = rate_limit.get("remaining", 0)
            limit = rate_limit.get("limit", 0)
            if remaining < limit * 0.2:  # Warn if less than 20% remaining
                print(
                    f"# ⚠️  GitHub API rate limit low: {remaining}/{limit} remaining",
                    file=sys.stderr,
                )

    tools = service.check_versions(tools)
    if args.json:
        print_json([t.to_dict() for t in tools])
        return 0

    render_tools(tools, {d.name: d for d in service.get_tool_definitions()})
    print_summary(tools)
    return 0


def cmd_update(service: ToolManagerService, args: argparse.Namespace) -> int:
    """Update the named tools one at a time."""
    results = [
        entry if isinstance(entry, UpdateResult) else service.update_tool(entry)
        for entry in _find_tools(service, args.tools)
    ]

    if args.json:
        print_json([r.to_dict() for r in results])
    else:
        for result in results:
            render_update_result(result, show_log=args.verbose)
    return 0 if all(r.success for r in results) else 1


def cmd_batch_update(service: ToolManagerService, args: argparse.Namespace) -> int:
    """Update several tools sequentially."""
    if args.all_outdated:
        tools = [t for t in service.check_versions(service.scan_tools()) if t.is_outdated]
        if not tools:
            if args.json:
                print_json({"results": [], "successCount": 0, "failureCount": 0})
            else:
                print("All tools are up to date", file=sys.stderr)
            return 0
        entries: list[ToolInfo | UpdateResult] = list(tools)
    elif args.tools:
        entries = _find_tools(service, args.tools)
        tools = [e for e in entries if isinstance(e, ToolInfo)]
    else:
        print("Specify tools to update or --all-outdated", file=sys.stderr)
        return 2

    batch = service.batch_update(tools)
    if len(tools) != len(entries):
        # Slot unknown names back in where they were given
        updated = iter(batch.results)
        batch = BatchUpdateResult.from_results([
            next(updated) if isinstance(entry, ToolInfo) else entry
            for entry in entries
        ])

    if args.json:
        print_json(batch.to_dict())
    else:
        render_batch_result(batch, show_log=args.verbose)
    return 0 if batch.failure_count == 0 else 1


def cmd_install(service: ToolManagerService, args: argparse.Namespace) -> int:
    """Install a tool through the chosen provider."""
    package = args.package
    if not package:
        definition = next((d for d in service.get_tool_definitions() if d.name == args.tool), None)
        if definition is not None:
            package = definition.package_for(InstallMethod.parse(args.method))
    result = service.install_tool(args.tool, args.method, package or args.tool)

    if args.json:
        print_json(result.to_dict())
    else:
        render_update_result(result, show_log=args.verbose)
    return 0 if result.success else 1


def cmd_definitions(service: ToolManagerService, args: argparse.Namespace) -> int:
    definitions = service.get_tool_definitions()
    if args.json:
        print_json([d.to_dict() for d in definitions])
    else:
        render_definitions(definitions)
    return 0


def cmd_clear_cache(service: ToolManagerService, args: argparse.Namespace) -> int:
    service.clear_cache()
    if args.json:
        print_json({"cleared": True})
    else:
        print("Version cache cleared", file=sys.stderr)
    return 0


def cmd_config(service: ToolManagerService, args: argparse.Namespace) -> int:
    """Show settings, or change them with --set key=value."""
    error = None
    if args.set:
        changes: dict[str, Any] = {}
        for assignment in args.set:
            key, sep, raw = assignment.partition("=")
            if not sep:
                print(f"Invalid assignment: {assignment}. Expected key=value", file=sys.stderr)
                return 2
            try:
                changes[key.strip()] = parse_config_value(key.strip(), raw.strip())
            except (ValueError, yaml.YAMLError) as e:
                print(f"Invalid value for {key}: {e}", file=sys.stderr)
                return 2
        config, error = service.set_config(changes)
    else:
        config = service.get_config()

    if error:
        print(f"Config not saved: {error}", file=sys.stderr)

    data = config.to_wire()
    if args.json:
        print_json(data)
    else:
        for key, value in data.items():
            if key == "githubToken":
                value = "***"
            elif key == "proxy":
                value = f"{value['protocol']}://{value['host']}:{value['port']}"
            print(f"{key}: {value}")
    return 1 if error else 0


def cmd_backups(service: ToolManagerService, args: argparse.Namespace) -> int:
    manifests = service.list_backups(args.tool)
    if args.json:
        print_json([m.to_dict() for m in manifests])
    else:
        render_backups(manifests)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="actm",
        description="AI coding tools manager - detect, check and update AI coding CLIs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print results as JSON on stdout",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose output",
    )
    parser.add_argument(
        "--log-file",
        help="Also write a DEBUG log to this file",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("scan", help="Detect installed tools")
    p.set_defaults(func=cmd_scan)

    p = sub.add_parser("check", help="Detect tools and check for newer versions")
    p.add_argument("tools", nargs="*", help="Limit to these tools")
    p.set_defaults(func=cmd_check)

    p = sub.add_parser("update", help="Update specific tools")
    p.add_argument("tools", nargs="+", help="Tools to update")
    p.set_defaults(func=cmd_update)

    p = sub.add_parser("batch-update", help="Update several tools sequentially")
    p.add_argument("--all-outdated", action="store_true", help="Update every outdated tool")
    p.add_argument("tools", nargs="*", help="Tools to update")
    p.set_defaults(func=cmd_batch_update)

    p = sub.add_parser("install", help="Install a tool")
    p.add_argument("tool", help="Tool name")
    p.add_argument(
        "--method",
        required=True,
        choices=[m.value for m in InstallMethod if m not in (InstallMethod.BINARY, InstallMethod.UNKNOWN)],
        help="Provider to install with",
    )
    p.add_argument("--package", help="Package identifier (defaults to the catalog entry)")
    p.set_defaults(func=cmd_install)

    p = sub.add_parser("definitions", help="List supported tools")
    p.set_defaults(func=cmd_definitions)

    p = sub.add_parser("clear-cache", help="Forget cached upstream versions")
    p.set_defaults(func=cmd_clear_cache)

    p = sub.add_parser("config", help="Show or change settings")
    p.add_argument("--set", action="append", metavar="KEY=VALUE", help="Change a setting (repeatable)")
    p.set_defaults(func=cmd_config)

    p = sub.add_parser("backups", help="List pre-update backups")
    p.add_argument("tool", nargs="?", help="Only this tool")
    p.set_defaults(func=cmd_backups)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point for the tool manager."""
    args = build_parser().parse_args(argv)

    setup_logging(verbose=args.verbose, log_file=args.log_file)

    service = create_service(verbose=args.verbose)
    return args.func(service, args)


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(130)
