"""Command-line interface for gridgroup."""

from __future__ import annotations

import argparse
import json
import os
import sys

from pathlib import Path
from typing import TYPE_CHECKING, Any

from .builder import BuildOptions, build, key_fields_extractor
from .exceptions import DataFormatError
from .models import GroupHeader
from .store import normalize_rows


if TYPE_CHECKING:
    from .builder import GroupingResult


def main(argv: list[str] | None = None) -> int:
    """Run the main CLI entry point.

    Returns
    -------
    int
        Exit code.
    """
    parser = argparse.ArgumentParser(
        prog="gridgroup",
        description="Hierarchical row grouping for tabular data",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # config command
    config_parser = subparsers.add_parser("config", help="Show or export configuration")
    config_group = config_parser.add_mutually_exclusive_group()
    config_group.add_argument(
        "--show", action="store_true", help="Show current configuration"
    )
    config_group.add_argument(
        "--toml", action="store_true", help="Export configuration as TOML"
    )
    config_group.add_argument(
        "--env", action="store_true", help="Export configuration as environment variables"
    )
    config_group.add_argument(
        "--sources", action="store_true", help="Show configuration file sources"
    )
    config_parser.add_argument(
        "--output", "-o", type=str, help="Output file path (default: stdout)"
    )

    # init command
    init_parser = subparsers.add_parser(
        "init", help="Initialize a gridgroup.toml configuration file"
    )
    init_parser.add_argument(
        "--force", "-f", action="store_true", help="Overwrite existing configuration file"
    )
    init_parser.add_argument(
        "--path",
        "-p",
        type=str,
        default="gridgroup.toml",
        help="Path for configuration file (default: gridgroup.toml)",
    )

    # group command
    group_parser = subparsers.add_parser(
        "group", help="Group the records of a JSON file and print the outline"
    )
    group_parser.add_argument("file", type=str, help="JSON file with a list of records")
    group_parser.add_argument(
        "--by",
        "-b",
        action="append",
        required=True,
        metavar="FIELD",
        help="Grouping key field; repeat for nested levels",
    )
    group_parser.add_argument(
        "--collapsed",
        "-c",
        action="append",
        default=[],
        metavar="VALUE",
        help="Group value to start collapsed; repeatable",
    )
    group_parser.add_argument(
        "--json", action="store_true", help="Print the grouped sequence as JSON"
    )

    args = parser.parse_args(argv)

    if args.command == "config":
        return handle_config(args)
    if args.command == "init":
        return handle_init(args)
    if args.command == "group":
        return handle_group(args)
    parser.print_help()
    return 0


def handle_config(args: argparse.Namespace) -> int:
    """Handle the config command."""
    from .config import GridGroupSettings  # pylint: disable=import-outside-toplevel

    if args.sources:
        return show_config_sources()

    settings = GridGroupSettings()
    if args.toml:
        output = settings.to_toml()
    elif args.env:
        output = settings.to_env()
    else:
        output = settings.show()

    if args.output:
        Path(args.output).write_text(output, encoding="utf-8")
        print(f"Configuration written to {args.output}")
    else:
        print(output)

    return 0


def handle_init(args: argparse.Namespace) -> int:
    """Handle the init command."""
    from .config import GridGroupSettings  # pylint: disable=import-outside-toplevel

    path = Path(args.path)

    if path.exists() and not args.force:
        print(f"Error: {path} already exists. Use --force to overwrite.", file=sys.stderr)
        return 1

    header = """# gridgroup Configuration File
#
# Environment variables can override any setting:
#   GRIDGROUP_GROUPING__DEFAULT_EXPANDED=false
#   GRIDGROUP_GROUPING__INDICATOR_AREAS="data,pinned_start"
#   GRIDGROUP_LOG__LEVEL=DEBUG
#
# Use nested keys with __ (double underscore) delimiter.

"""
    path.write_text(header + GridGroupSettings().to_toml(), encoding="utf-8")
    print(f"Created {path}")

    return 0


def handle_group(args: argparse.Namespace) -> int:
    """Handle the group command."""
    from .config import get_settings  # pylint: disable=import-outside-toplevel

    path = Path(args.file)
    try:
        records = normalize_rows(json.loads(path.read_text(encoding="utf-8")))
    except (OSError, json.JSONDecodeError, DataFormatError) as e:
        print(f"Error: cannot read records from {path}: {e}", file=sys.stderr)
        return 1

    options = BuildOptions(
        previous_expansion=collapsed_memory(args.collapsed),
        default_expanded=get_settings().grouping.default_expanded,
    )
    result = build(records, key_fields_extractor(args.by), options)

    if args.json:
        print(
            json.dumps(
                {
                    "depth": result.depth,
                    "hidden": sorted(result.trimmed),
                    "rows": [r.to_dict() for r in result.sequence],
                },
                indent=2,
                default=str,
            )
        )
    else:
        print(format_outline(result))
    return 0


def collapsed_memory(values: list[str]) -> dict[Any, bool]:
    """Expansion memory collapsing each ``--collapsed`` value.

    Each value matches both as typed and as a JSON scalar, so ``2020``
    collapses the group of the number 2020 as well as the string "2020".
    """
    memory: dict[Any, bool] = {}
    for raw in values:
        memory[raw] = False
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            continue
        if not isinstance(parsed, (dict, list)):
            memory[parsed] = False
    return memory


def format_outline(result: GroupingResult) -> str:
    """Render visible rows as an indented outline.

    Headers show ``-`` when expanded and ``+`` when collapsed, followed by
    the group value and the number of rows one level down.
    """
    parents: dict[int, int] = {}
    for index, record in enumerate(result.sequence):
        if isinstance(record, GroupHeader):
            for child in record.children:
                parents[child] = index

    lines = []
    for index, record in enumerate(result.sequence):
        if result.trimmed.get(index):
            continue
        if isinstance(record, GroupHeader):
            marker = "-" if record.expanded else "+"
            lines.append(
                f"{'  ' * record.depth}{marker} {record.group_value} ({len(record.children)})"
            )
        else:
            parent = parents.get(index)
            indent = result.sequence[parent].depth + 1 if parent is not None else 0
            lines.append(f"{'  ' * indent}{json.dumps(record.to_dict(), default=str)}")
    return "\n".join(lines)


def show_config_sources() -> int:
    """Show configuration file sources and their status."""
    sources = [
        ("Built-in defaults", ""),
        ("pyproject.toml [tool.gridgroup]", "pyproject.toml"),
        ("./gridgroup.toml", "gridgroup.toml"),
        ("~/.config/gridgroup/config.toml", "~/.config/gridgroup/config.toml"),
        ("Environment variables", ""),
    ]

    print("Configuration Sources (in order of precedence):\n")
    print(f"{'Source':<40} {'Status':<15} {'Path'}")
    print("-" * 80)

    for name, path_str in sources:
        if name == "Built-in defaults":
            status, path_display = "✓ Active", ""
        elif name == "Environment variables":
            env_vars = [k for k in os.environ if k.startswith("GRIDGROUP_")]
            status = f"✓ {len(env_vars)} vars" if env_vars else "✗ No vars"
            path_display = ", ".join(env_vars[:3]) + ("..." if len(env_vars) > 3 else "")
        else:
            path = Path(path_str).expanduser()
            status = "✓ Found" if path.exists() else "✗ Not found"
            path_display = str(path)

        print(f"{name:<40} {status:<15} {path_display}")

    print("\nNote: Later sources override earlier ones.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
