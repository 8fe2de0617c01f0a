"""Data model for resolved mod identities and dependency results."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from depextract.versioning import ArtifactVersion, VersionRange


class Severity(Enum):
    """Strictness class of a declared dependency."""

    REQUIRED = "Required"
    OPTIONAL = "Optional"
    DISCOURAGED = "Discouraged"
    INCOMPATIBLE = "Incompatible"

    def is_satisfied(self, installed: bool, in_range: bool) -> bool:
        if self is Severity.REQUIRED:
            return installed and in_range
        if self is Severity.OPTIONAL:
            return not installed or in_range
        # Discouraged/incompatible: the flagged version must not be present
        return not installed or not in_range

    @classmethod
    def parse(cls, token: str | None) -> Severity | None:
        """Map a descriptor ``type`` token to a severity.

        A missing token means REQUIRED; an unknown token returns None.
        """
        if token is None:
            return cls.REQUIRED
        if not isinstance(token, str):
            return None
        return cls.__members__.get(token.strip().upper())


class ModKind(Enum):
    """What kind of unit an archive provides (the manifest ``FMLModType``)."""

    MOD = "MOD"
    LIBRARY = "LIBRARY"
    GAMELIBRARY = "GAMELIBRARY"
    LANGPROVIDER = "LANGPROVIDER"


@dataclass(frozen=True)
class Dependency:
    """A declared relationship to another mod.

    ``version_range`` is None when the declared range was malformed; such a
    dependency never counts as in range.  An undeclared range is
    :data:`~depextract.versioning.UNBOUNDED_RANGE`, not None.
    """

    mod_id: str
    version_range: VersionRange | None
    severity: Severity

    def is_version_satisfied(self, version: ArtifactVersion) -> bool:
        return self.version_range is not None and self.version_range.contains(version)


@dataclass(frozen=True)
class EmbeddingMetadata:
    """How a jar-in-jar archive was declared by its parent."""

    group: str
    artifact: str
    version_range: VersionRange | None
    version: ArtifactVersion
    obfuscated: bool = False


@dataclass(frozen=True)
class ModIdentity:
    """The canonical identity resolved for one mod in one archive."""

    file_name: str
    mod_id: str
    display_name: str
    version: ArtifactVersion
    dependencies: tuple[Dependency, ...] = ()
    kind: ModKind = ModKind.MOD
    embedded: bool = False
    source_path: Path | None = None

    def __post_init__(self) -> None:
        if not self.mod_id:
            raise ValueError(f"Mod in '{self.file_name}' has an empty id")


@dataclass(frozen=True)
class SatisfactionResult:
    """Outcome of checking one dependency of one mod.

    The placeholder row emitted for mods without dependencies has
    ``dependency=None`` and always counts as satisfied.
    """

    dependency: Dependency | None
    installed_version: ArtifactVersion | None
    installed: bool
    in_range: bool
    satisfied: bool

    @property
    def is_placeholder(self) -> bool:
        return self.dependency is None


PLACEHOLDER_RESULT = SatisfactionResult(None, None, False, False, True)
