"""Orchestrator: walk → accept → post-process → emit."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from depextract.archive import READ_ERRORS, ArchiveHandle
from depextract.config import Settings
from depextract.extractors.base import Extractor
from depextract.extractors.dependencies import DependencyExtractor
from depextract.walker import find_archives, walk_archives

logger = logging.getLogger(__name__)


def _feed(extractors: Sequence[Extractor], archive: ArchiveHandle) -> None:
    for ext in extractors:
        try:
            ext.accept_archive(archive)
        except READ_ERRORS as e:
            logger.error(
                "Extractor '%s' failed on mod JAR '%s': %s", ext.name, archive.file_name, e
            )


def run(roots: Sequence[Path], settings: Settings) -> Path:
    """Run every extractor over the archives under *roots*; return the report path.

    Raises :class:`NotADirectoryError` if a root cannot be listed.
    """
    paths = find_archives(roots)
    logger.info("Found %d mod JARs", len(paths))

    dependencies = DependencyExtractor(settings)
    extractors: list[Extractor] = [dependencies]
    logger.debug("Extractors: %s", [ext.name for ext in extractors])

    for archive in walk_archives(paths):
        _feed(extractors, archive)

    for ext in extractors:
        ext.post_process()

    mod_count = dependencies.mod_count
    for ext in extractors:
        ext.emit_results(mod_count)

    out_path = settings.output
    logger.info("Generated %s", out_path)

    if settings.open_result:
        import webbrowser

        webbrowser.open(out_path.resolve().as_uri())

    return out_path
