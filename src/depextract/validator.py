"""Check every declared dependency against a frozen namespace."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, replace

from depextract.graph import Namespace, mod_id_sort_key
from depextract.model import PLACEHOLDER_RESULT, Dependency, ModIdentity, SatisfactionResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModResults:
    """All dependency results of one mod, in display order."""

    identity: ModIdentity
    results: tuple[SatisfactionResult, ...]

    @property
    def all_satisfied(self) -> bool:
        return all(r.satisfied for r in self.results if not r.is_placeholder)


@dataclass(frozen=True, eq=False)
class ValidationReport:
    rows: tuple[ModResults, ...]
    duplicates: Mapping[str, tuple[ModIdentity, ...]]
    mod_count: int
    only_satisfied: bool = False
    only_unsatisfied: bool = False

    @property
    def all_satisfied(self) -> bool:
        return all(row.all_satisfied for row in self.rows)

    def filtered(self, only_satisfied: bool = False, only_unsatisfied: bool = False) -> ValidationReport:
        """Drop rows according to the requested filters.

        ``only_satisfied`` keeps mods whose real results are all satisfied,
        ``only_unsatisfied`` keeps mods with at least one unsatisfied result.
        Requesting both keeps nothing.  Results are never recomputed.
        """
        rows = self.rows
        if only_satisfied:
            rows = tuple(row for row in rows if row.all_satisfied)
        if only_unsatisfied:
            rows = tuple(row for row in rows if not row.all_satisfied)
        return replace(
            self,
            rows=rows,
            only_satisfied=self.only_satisfied or only_satisfied,
            only_unsatisfied=self.only_unsatisfied or only_unsatisfied,
        )


def check_dependency(dependency: Dependency, namespace: Namespace) -> SatisfactionResult:
    target = namespace.lookup(dependency.mod_id)
    installed = target is not None
    in_range = installed and dependency.is_version_satisfied(target.version)
    return SatisfactionResult(
        dependency=dependency,
        installed_version=target.version if installed else None,
        installed=installed,
        in_range=in_range,
        satisfied=dependency.severity.is_satisfied(installed, in_range),
    )


def validate_identity(identity: ModIdentity, namespace: Namespace) -> ModResults:
    if not identity.dependencies:
        return ModResults(identity, (PLACEHOLDER_RESULT,))

    dependencies = sorted(identity.dependencies, key=lambda d: mod_id_sort_key(d.mod_id))
    return ModResults(identity, tuple(check_dependency(d, namespace) for d in dependencies))


def validate(namespace: Namespace) -> ValidationReport:
    """Compute a result for every dependency of every non-platform mod."""
    logger.info("Validating dependency satisfaction...")
    rows = tuple(validate_identity(identity, namespace) for identity in namespace.identities())

    for row in rows:
        for result in row.results:
            if not result.satisfied:
                logger.debug(
                    "Mod '%s' has unsatisfied %s dependency on '%s'",
                    row.identity.mod_id,
                    result.dependency.severity.value.lower(),
                    result.dependency.mod_id,
                )

    logger.info("Dependencies validated")
    return ValidationReport(rows=rows, duplicates=namespace.duplicates, mod_count=namespace.mod_count)
