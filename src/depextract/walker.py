"""Discover mod JARs on disk and expand their jar-in-jar contents."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Iterator
from pathlib import Path

from depextract.archive import READ_ERRORS, ArchiveHandle
from depextract.model import EmbeddingMetadata
from depextract.versioning import InvalidVersionRange, parse_range, parse_version

logger = logging.getLogger(__name__)

ARCHIVE_SUFFIX = ".jar"
EMBEDDED_METADATA_PATH = "META-INF/jarjar/metadata.json"


class EmbeddedMetadataError(ValueError):
    """Raised when a jar-in-jar metadata document is malformed."""


def _scan_dir(root: Path) -> Path:
    # An instance directory keeps its mods in a mods/ subfolder
    mods_dir = root / "mods"
    return mods_dir if mods_dir.is_dir() else root


def find_archives(roots: Iterable[Path]) -> list[Path]:
    """Return all ``*.jar`` files directly inside each root directory.

    Raises :class:`NotADirectoryError` if a root is missing or not a directory.
    """
    archives: list[Path] = []
    for root in roots:
        if not root.is_dir():
            raise NotADirectoryError(f"Expected a directory, got '{root}'")
        scan_dir = _scan_dir(root)
        found = sorted(
            p
            for p in scan_dir.iterdir()
            if p.is_file() and p.name.lower().endswith(ARCHIVE_SUFFIX)
        )
        logger.debug("Found %d archives in %s", len(found), scan_dir)
        archives.extend(found)
    return archives


def _require(mapping: object, key: str, expected: type, where: str) -> object:
    if not isinstance(mapping, dict):
        raise EmbeddedMetadataError(f"{where} is not an object")
    value = mapping.get(key)
    if not isinstance(value, expected):
        raise EmbeddedMetadataError(f"{where} has no valid '{key}'")
    return value


def parse_embedded_metadata(text: str, parent_name: str) -> list[tuple[str, EmbeddingMetadata]]:
    """Parse a ``META-INF/jarjar/metadata.json`` document.

    Returns ``(internal_path, metadata)`` pairs.  Raises
    :class:`EmbeddedMetadataError` if the document is malformed.
    """
    try:
        document = json.loads(text)
    except json.JSONDecodeError as e:
        raise EmbeddedMetadataError(f"Invalid JSON: {e}") from e

    jars = _require(document, "jars", list, "Metadata document")

    entries: list[tuple[str, EmbeddingMetadata]] = []
    for i, jar in enumerate(jars):
        where = f"Entry {i}"
        path = _require(jar, "path", str, where)
        identifier = _require(jar, "identifier", dict, where)
        version = _require(jar, "version", dict, where)
        group = _require(identifier, "group", str, f"{where} identifier")
        artifact = _require(identifier, "artifact", str, f"{where} identifier")
        range_spec = _require(version, "range", str, f"{where} version")
        artifact_version = _require(version, "artifactVersion", str, f"{where} version")

        try:
            version_range = parse_range(range_spec)
        except InvalidVersionRange:
            logger.warning(
                "Embedded JAR '%s' in '%s' declares invalid version range '%s'",
                path,
                parent_name,
                range_spec,
            )
            version_range = None

        entries.append(
            (
                path,
                EmbeddingMetadata(
                    group=group,
                    artifact=artifact,
                    version_range=version_range,
                    version=parse_version(artifact_version),
                    obfuscated=bool(jar.get("isObfuscated", False)),
                ),
            )
        )
    return entries


def read_embedded_entries(archive: ArchiveHandle) -> list[tuple[str, EmbeddingMetadata]]:
    """Return the jar-in-jar entries declared by *archive* (empty if none)."""
    if not archive.exists(EMBEDDED_METADATA_PATH):
        return []
    try:
        text = archive.read_text(EMBEDDED_METADATA_PATH)
    except UnicodeDecodeError as e:
        raise EmbeddedMetadataError(f"Undecodable metadata: {e}") from e
    return parse_embedded_metadata(text, archive.file_name)


def _walk_embedded(parent: ArchiveHandle) -> Iterator[ArchiveHandle]:
    try:
        entries = read_embedded_entries(parent)
    except (EmbeddedMetadataError, *READ_ERRORS) as e:
        logger.error(
            "Failed to read jar-in-jar metadata from mod JAR '%s': %s", parent.file_name, e
        )
        return

    for path, embedding in entries:
        if not parent.exists(path):
            logger.warning(
                "Embedded JAR '%s' declared by mod JAR '%s' does not exist, skipping",
                path,
                parent.file_name,
            )
            continue
        try:
            child = parent.open_nested(path, embedding)
        except READ_ERRORS as e:
            logger.error(
                "Failed to open embedded JAR '%s' in mod JAR '%s': %s",
                path,
                parent.file_name,
                e,
            )
            continue
        with child:
            yield child


def walk_archives(paths: Iterable[Path]) -> Iterator[ArchiveHandle]:
    """Yield an open handle for every archive and each of its embedded JARs.

    A handle stays open only until the consumer asks for the next one.
    Embedded JARs are expanded for top-level archives only; archives found
    inside another archive are never scanned for further embedded JARs.
    """
    for path in paths:
        try:
            archive = ArchiveHandle.open(path)
        except READ_ERRORS as e:
            logger.error("Encountered an error while reading mod JAR '%s': %s", path.name, e)
            continue

        with archive:
            logger.debug("Reading mod JAR '%s'...", archive.file_name)
            yield archive
            yield from _walk_embedded(archive)
