"""Run settings and the optional ``.depextract.toml`` config file."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

try:
    import tomllib
except ImportError:
    import tomli as tomllib  # type: ignore[no-redef]

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = ".depextract.toml"
DEFAULT_OUTPUT = Path("dependencies.html")


@dataclass
class Settings:
    """Everything a run needs beyond the list of directories."""

    minecraft_version: str
    neoforge_version: str
    only_satisfied: bool = False
    only_unsatisfied: bool = False
    dark_mode: bool = False
    output: Path = field(default_factory=lambda: DEFAULT_OUTPUT)
    open_result: bool = False


def read_config(directory: Path) -> dict[str, object]:
    """Read the ``[depextract]`` table from ``.depextract.toml`` in *directory*.

    Keys mirror :class:`Settings`.  Returns an empty dict when the file is
    missing or unreadable.
    """
    config_path = directory / CONFIG_FILE_NAME
    if not config_path.exists():
        return {}

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        logger.warning("Could not read %s: %s", config_path, e)
        return {}

    table = data.get("depextract", {})
    if not isinstance(table, dict):
        logger.warning("Ignoring [depextract] in %s: not a table", config_path)
        return {}

    known = set(Settings.__dataclass_fields__)
    unknown = sorted(set(table) - known)
    if unknown:
        logger.warning("Ignoring unknown keys in %s: %s", config_path, ", ".join(unknown))
    return {k: v for k, v in table.items() if k in known}
