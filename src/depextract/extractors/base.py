"""Extractor protocol: every per-archive data extractor conforms to this interface."""

from __future__ import annotations

from typing import Protocol

from depextract.archive import ArchiveHandle


class Extractor(Protocol):
    """Protocol for extractors fed by the archive walk."""

    name: str

    def accept_archive(self, archive: ArchiveHandle) -> None:
        """Inspect one open archive (top-level or embedded).

        May raise ``OSError`` for an unreadable archive; the run continues.
        """
        ...

    def post_process(self) -> None:
        """Called once after every archive has been visited."""
        ...

    def emit_results(self, mod_count: int) -> None:
        """Write results; *mod_count* excludes the platform identities."""
        ...
