"""Resolve the canonical mod identities provided by a single archive.

Resolution is an ordered chain of resolvers.  Each one either declines the
archive (returns None) or claims it and returns the identities it found,
possibly none:

1. :func:`from_descriptor` - a ``neoforge.mods.toml`` (or legacy
   ``mods.toml``) descriptor
2. :func:`from_language_provider` - a ``FMLModType: LANGPROVIDER`` manifest,
   with the provider id recovered from bytecode
3. :func:`from_library` - a library manifest, or any embedded JAR
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from pathlib import Path

try:
    import tomllib
except ImportError:
    import tomli as tomllib  # type: ignore[no-redef]

from depextract.archive import READ_ERRORS, ArchiveHandle, Manifest
from depextract.bytecode import ClassFormatError, find_returned_string
from depextract.model import Dependency, ModIdentity, ModKind, Severity
from depextract.versioning import (
    INVALID_VERSION,
    ArtifactVersion,
    InvalidVersionRange,
    UNBOUNDED_RANGE,
    parse_range,
    parse_version,
)

logger = logging.getLogger(__name__)

DESCRIPTOR_PATHS = ("META-INF/neoforge.mods.toml", "META-INF/mods.toml")
LANGUAGE_LOADER_SERVICE = (
    "META-INF/services/net.neoforged.neoforgespi.language.IModLanguageLoader"
)
JAR_VERSION_PLACEHOLDER = "${file.jarVersion}"

AUTO_MODULE_NAME = "Automatic-Module-Name"
IMPL_TITLE = "Implementation-Title"
IMPL_VERSION = "Implementation-Version"
MOD_TYPE = "FMLModType"

_LIBRARY_KINDS = {ModKind.GAMELIBRARY.value, ModKind.LIBRARY.value}
_WHITESPACE_RE = re.compile(r"\s+")

Resolver = Callable[[ArchiveHandle], "list[ModIdentity] | None"]


# Descriptor ------------------------------------------------------------------


def _parse_dependencies(entries: object, mod_id: str) -> tuple[Dependency, ...]:
    if entries is None:
        return ()
    if not isinstance(entries, list):
        logger.warning("Dependencies of mod '%s' are not a list, ignoring them", mod_id)
        return ()

    dependencies: list[Dependency] = []
    for entry in entries:
        if not isinstance(entry, dict):
            logger.error("Found malformed dependency entry %r in mod '%s', skipping", entry, mod_id)
            continue

        dep_id = entry.get("modId")
        if not isinstance(dep_id, str) or not dep_id:
            logger.error("Found dependency without a mod id in mod '%s', skipping", mod_id)
            continue

        range_spec = entry.get("versionRange")
        if range_spec is None:
            version_range = UNBOUNDED_RANGE
        else:
            try:
                version_range = parse_range(str(range_spec))
            except InvalidVersionRange:
                logger.error(
                    "Found dependency for '%s' with invalid version range '%s' in mod '%s'!",
                    dep_id,
                    range_spec,
                    mod_id,
                )
                version_range = None

        if "type" not in entry and isinstance(entry.get("mandatory"), bool):
            # Pre-NeoForge descriptors use a boolean instead of a type
            severity = Severity.REQUIRED if entry["mandatory"] else Severity.OPTIONAL
        else:
            severity = Severity.parse(entry.get("type"))
        if severity is None:
            logger.error(
                "Found dependency for '%s' with invalid type '%s' in mod '%s', skipping!",
                dep_id,
                entry.get("type"),
                mod_id,
            )
            continue

        dependencies.append(Dependency(dep_id, version_range, severity))
    return tuple(dependencies)


def _descriptor_version(raw: object, manifest: Manifest) -> ArtifactVersion:
    if raw == JAR_VERSION_PLACEHOLDER:
        raw = manifest.get(IMPL_VERSION)
    if not isinstance(raw, str) or not raw.strip():
        return INVALID_VERSION
    return parse_version(raw)


def parse_descriptor(
    document: dict,
    *,
    file_name: str,
    manifest: Manifest,
    embedded: bool = False,
    source_path: Path | None = None,
) -> list[ModIdentity]:
    """Build identities from a parsed mods.toml *document*."""
    mods = document.get("mods")
    if not isinstance(mods, list):
        logger.error("Mod definition in mod JAR '%s' has no 'mods' list", file_name)
        return []

    dependency_table = document.get("dependencies")
    if dependency_table is not None and not isinstance(dependency_table, dict):
        logger.warning(
            "Mod definition in mod JAR '%s' declares 'dependencies' as '%s' instead "
            "of a table, this is invalid and will be skipped!",
            file_name,
            type(dependency_table).__name__,
        )
        dependency_table = None

    identities: list[ModIdentity] = []
    for mod in mods:
        mod_id = mod.get("modId") if isinstance(mod, dict) else None
        if not isinstance(mod_id, str) or not mod_id:
            logger.error("Found mod without a mod id in mod JAR '%s', skipping", file_name)
            continue

        dependencies = _parse_dependencies(
            dependency_table.get(mod_id) if dependency_table else None, mod_id
        )
        version = _descriptor_version(mod.get("version"), manifest)
        if version is INVALID_VERSION:
            logger.warning("Could not determine version of mod '%s' in mod JAR '%s'", mod_id, file_name)

        identities.append(
            ModIdentity(
                file_name=file_name,
                mod_id=mod_id,
                display_name=str(mod.get("displayName") or mod_id),
                version=version,
                dependencies=dependencies,
                kind=ModKind.MOD,
                embedded=embedded,
                source_path=source_path,
            )
        )
    return identities


def from_descriptor(archive: ArchiveHandle) -> list[ModIdentity] | None:
    path = next((p for p in DESCRIPTOR_PATHS if archive.exists(p)), None)
    if path is None:
        return None

    try:
        document = tomllib.loads(archive.read_text(path))
    except (*READ_ERRORS, tomllib.TOMLDecodeError, UnicodeDecodeError) as e:
        logger.error("Failed to parse mod definition for mod JAR '%s': %s", archive.file_name, e)
        return []

    identities = parse_descriptor(
        document,
        file_name=archive.file_name,
        manifest=archive.manifest,
        embedded=archive.nested,
        source_path=archive.source_path,
    )
    if not identities:
        logger.error("Failed to parse mod definition for mod JAR '%s'", archive.file_name)
    return identities


# Language provider -----------------------------------------------------------


def provider_name_from_bytecode(archive: ArchiveHandle) -> str | None:
    """Recover a language provider's id from its ``name()`` implementation.

    Each step (service file, class file, string literal) logs and returns
    None on failure so the caller can fall back to a manifest guess.
    """
    if not archive.exists(LANGUAGE_LOADER_SERVICE):
        logger.error(
            "Language provider in mod JAR '%s' doesn't contain an IModLanguageLoader "
            "service file, this is invalid",
            archive.file_name,
        )
        return None

    try:
        service = archive.read_text(LANGUAGE_LOADER_SERVICE)
    except (*READ_ERRORS, UnicodeDecodeError) as e:
        logger.error("Failed to read language loader service from mod JAR '%s': %s", archive.file_name, e)
        return None

    class_name = next(
        (
            line.split("#", 1)[0].strip()
            for line in service.splitlines()
            if line.split("#", 1)[0].strip()
        ),
        None,
    )
    if class_name is None:
        logger.error("Language loader service file in mod JAR '%s' is empty", archive.file_name)
        return None

    class_path = class_name.replace(".", "/") + ".class"
    if not archive.exists(class_path):
        logger.error(
            "Language provider class '%s' is missing from mod JAR '%s'", class_name, archive.file_name
        )
        return None

    try:
        name = find_returned_string(
            archive.read_bytes(class_path), "name", "()Ljava/lang/String;"
        )
    except (*READ_ERRORS, ClassFormatError) as e:
        logger.error(
            "Language provider class '%s' from mod JAR '%s' is invalid: %s",
            class_name,
            archive.file_name,
            e,
        )
        return None

    if name is None or not name.strip():
        logger.error(
            "Failed to locate the language provider name in class '%s' in mod JAR '%s'",
            class_name,
            archive.file_name,
        )
        return None
    return name.strip()


def from_language_provider(archive: ArchiveHandle) -> list[ModIdentity] | None:
    manifest = archive.manifest
    if manifest.get(MOD_TYPE) != ModKind.LANGPROVIDER.value:
        return None

    display_name = manifest.get(IMPL_TITLE) or manifest.get(AUTO_MODULE_NAME)
    if not display_name:
        logger.warning("Can't determine name of language provider in mod JAR '%s', skipping", archive.file_name)
        return []

    provider_name = provider_name_from_bytecode(archive)
    if provider_name is None:
        # Guess; the real id lives only in the provider's bytecode
        provider_name = manifest.get(AUTO_MODULE_NAME) or display_name.lower()

    return [
        ModIdentity(
            file_name=archive.file_name,
            mod_id=provider_name,
            display_name=display_name,
            version=parse_version(manifest.get(IMPL_VERSION) or "0.0"),
            kind=ModKind.LANGPROVIDER,
            embedded=archive.nested,
            source_path=archive.source_path,
        )
    ]


# Library / jar-in-jar --------------------------------------------------------


def normalize_mod_id(name: str) -> str:
    return _WHITESPACE_RE.sub("_", name.strip().lower())


def _strip_archive_suffix(file_name: str) -> str:
    return file_name[:-4] if file_name.lower().endswith(".jar") else file_name


def from_library(archive: ArchiveHandle) -> list[ModIdentity] | None:
    manifest = archive.manifest
    mod_type = manifest.get(MOD_TYPE)
    if mod_type not in _LIBRARY_KINDS and not archive.nested:
        return None

    name = (
        manifest.get(AUTO_MODULE_NAME)
        or manifest.get(IMPL_TITLE)
        or _strip_archive_suffix(archive.file_name)
    )

    impl_version = manifest.get(IMPL_VERSION)
    if impl_version:
        version = parse_version(impl_version)
    elif archive.embedding is not None:
        version = archive.embedding.version
    else:
        version = parse_version("NONE")

    # Embedded JARs without mod metadata count as game libraries
    kind = ModKind(mod_type) if mod_type in _LIBRARY_KINDS else ModKind.GAMELIBRARY

    return [
        ModIdentity(
            file_name=archive.file_name,
            mod_id=normalize_mod_id(name) or normalize_mod_id(archive.file_name),
            display_name=name,
            version=version,
            kind=kind,
            embedded=archive.nested,
            source_path=archive.source_path,
        )
    ]


RESOLVERS: tuple[Resolver, ...] = (from_descriptor, from_language_provider, from_library)


def resolve_identities(
    archive: ArchiveHandle, resolvers: tuple[Resolver, ...] = RESOLVERS
) -> list[ModIdentity] | None:
    """Return the identities *archive* provides; the first claiming resolver wins.

    A claimed archive may yield no identities (a descriptor that fails to
    parse, a nameless language provider).  None means no resolver claimed it.
    """
    for resolver in resolvers:
        identities = resolver(archive)
        if identities is not None:
            return identities

    logger.warning("Mod definition not found in mod JAR '%s', skipping", archive.file_name)
    return None
