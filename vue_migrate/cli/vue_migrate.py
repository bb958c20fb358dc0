"""
Command line entry point: convert Vue 2 Options API components to <script setup>.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from vue_migrate.core.config import load_config
from vue_migrate.core.pipeline import ComponentMigrator, MigrationReport


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vue-migrate",
        description="Convert Vue 2 Options API single-file components (with Vuex and Nuxt usage) "
                    "to Vue 3 <script setup> components.",
    )
    parser.add_argument("path", help="A .vue file or a directory searched recursively for .vue files.")
    parser.add_argument("-o", "--output",
                        help="Output file or directory. Directories mirror the input tree. "
                             "Defaults to rewriting files in place.")
    parser.add_argument("--config", help="Path to configuration YAML file (default: vuemigrate.config.yaml)")
    parser.add_argument("--dry-run", action="store_true",
                        help="Convert without writing any files.")
    parser.add_argument("--no-format", action="store_true",
                        help="Do not run the external formatter on generated components.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    return parser


def _cli_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    if args.no_format:
        overrides["format_output"] = False
    return overrides


def _print_summary(report: MigrationReport, dry_run: bool) -> None:
    verb = "Would convert" if dry_run else "Converted"
    print(f"\n✅ {verb} {report.converted} component(s), {report.unchanged} unchanged "
          f"({report.total_time:.2f}s)")
    for result in report.failed:
        print(f"❌ {result.path}: {result.error}", file=sys.stderr)
    if report.failed:
        print(f"⚠️  {len(report.failed)} component(s) failed", file=sys.stderr)


def run(argv: Optional[List[str]] = None) -> int:
    """Parse ``argv``, migrate, and return the process exit code."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    root = Path(args.path)
    if not root.exists():
        print(f"❌ Error: {root} does not exist.", file=sys.stderr)
        return 1

    config = load_config(config_path=args.config, cli_args=_cli_overrides(args))
    migrator = ComponentMigrator(config, dry_run=args.dry_run)
    output_root = Path(args.output) if args.output else None

    print(f"🚀 Migrating components under {root}")
    report = migrator.migrate(root, output_root)
    if not report.results:
        print("ℹ️  No .vue files found.")
        return 0

    _print_summary(report, args.dry_run)
    return 1 if report.failed else 0


def main():
    """Main entry point for the migrator."""
    try:
        sys.exit(run())
    except KeyboardInterrupt:
        print("\n⚠️  Interrupted.", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    main()
