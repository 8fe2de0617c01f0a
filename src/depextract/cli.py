"""Command-line interface for depextract."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from depextract.config import Settings, read_config
from depextract.pipeline import run

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="depextract",
        description="Check the declared dependencies of every mod in a NeoForge mods folder.",
    )
    parser.add_argument(
        "directories",
        nargs="+",
        type=Path,
        help="Directories containing mod JARs (or an instance directory with a mods/ folder)",
    )
    parser.add_argument(
        "--minecraft",
        default=None,
        help="Installed Minecraft version",
    )
    parser.add_argument(
        "--neoforge",
        default=None,
        help="Installed NeoForge version",
    )
    parser.add_argument(
        "--only-satisfied",
        action="store_true",
        default=None,
        help="Only list mods whose dependencies are all satisfied",
    )
    parser.add_argument(
        "--only-unsatisfied",
        action="store_true",
        default=None,
        help="Only list mods with at least one unsatisfied dependency",
    )
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=None,
        help="Output HTML file path (default: dependencies.html)",
    )
    parser.add_argument(
        "--dark",
        action="store_true",
        default=None,
        dest="dark_mode",
        help="Render the report with a dark theme",
    )
    parser.add_argument(
        "--open",
        action="store_true",
        default=None,
        dest="open_result",
        help="Open the generated HTML in a browser",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose (debug) output",
    )
    return parser


def build_settings(args: argparse.Namespace, config: dict[str, object]) -> Settings:
    """Merge config-file values with command-line options; options win."""
    values = dict(config)
    overrides = {
        "minecraft_version": args.minecraft,
        "neoforge_version": args.neoforge,
        "only_satisfied": args.only_satisfied,
        "only_unsatisfied": args.only_unsatisfied,
        "dark_mode": args.dark_mode,
        "output": args.output,
        "open_result": args.open_result,
    }
    values.update({k: v for k, v in overrides.items() if v is not None})

    if "output" in values:
        values["output"] = Path(values["output"])
    for key in ("minecraft_version", "neoforge_version"):
        if key in values:
            values[key] = str(values[key])
    return Settings(**values)


def main(argv: list[str] | None = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.WARNING, format="%(message)s")
    if args.verbose:
        logging.getLogger("depextract").setLevel(logging.DEBUG)

    config = read_config(args.directories[0])
    missing = [
        flag
        for flag, key, value in (
            ("--minecraft", "minecraft_version", args.minecraft),
            ("--neoforge", "neoforge_version", args.neoforge),
        )
        if value is None and key not in config
    ]
    if missing:
        parser.error(f"the following arguments are required: {', '.join(missing)}")

    settings = build_settings(args, config)

    try:
        run(args.directories, settings)
    except NotADirectoryError as e:
        logger.error("%s", e)
        sys.exit(1)
