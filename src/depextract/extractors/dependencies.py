"""Resolve mod identities from every archive and validate their dependencies."""

from __future__ import annotations

import logging

from depextract.archive import ArchiveHandle
from depextract.config import Settings
from depextract.graph import Namespace, NamespaceBuilder, platform_identities
from depextract.renderer.html import render_report
from depextract.resolver import resolve_identities
from depextract.validator import ValidationReport, validate

logger = logging.getLogger(__name__)


class DependencyExtractor:
    """Builds the mod namespace during the walk and validates it afterwards."""

    name = "Dependencies"

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.jar_count = 0
        self.namespace: Namespace | None = None
        self.report: ValidationReport | None = None
        self._builder = NamespaceBuilder()

    def accept_archive(self, archive: ArchiveHandle) -> None:
        identities = resolve_identities(archive)
        if identities is None:
            return
        # Claimed archives count even when their metadata was unusable
        self.jar_count += 1
        self._builder.add_all(identities)
        logger.debug("Found %d mod(s) in mod JAR '%s'", len(identities), archive.file_name)

    def post_process(self) -> None:
        self.namespace = self._builder.build(
            platform_identities(self.settings.minecraft_version, self.settings.neoforge_version)
        )
        self.report = validate(self.namespace).filtered(
            only_satisfied=self.settings.only_satisfied,
            only_unsatisfied=self.settings.only_unsatisfied,
        )

    @property
    def mod_count(self) -> int:
        return self.namespace.mod_count if self.namespace is not None else len(self._builder)

    def emit_results(self, mod_count: int) -> None:
        if self.report is None:
            raise RuntimeError("emit_results() called before post_process()")

        logger.info("Building dependency display...")
        render_report(
            self.report,
            self.settings.output,
            minecraft_version=self.settings.minecraft_version,
            neoforge_version=self.settings.neoforge_version,
            mod_count=mod_count,
            jar_count=self.jar_count,
            dark_mode=self.settings.dark_mode,
        )
        logger.info("Dependency display built")
