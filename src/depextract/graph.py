"""Accumulate resolved identities into a frozen, multi-valued namespace."""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from types import MappingProxyType

from depextract.model import ModIdentity, ModKind
from depextract.versioning import parse_version

logger = logging.getLogger(__name__)

MINECRAFT_ID = "minecraft"
NEOFORGE_ID = "neoforge"
PLATFORM_IDS = (MINECRAFT_ID, NEOFORGE_ID)


def mod_id_sort_key(mod_id: str | None) -> tuple[int, str]:
    """Sort key placing the platform ids first, then everything else by name."""
    if mod_id in PLATFORM_IDS:
        return PLATFORM_IDS.index(mod_id), ""
    return len(PLATFORM_IDS), mod_id or ""


def platform_identities(minecraft_version: str, neoforge_version: str) -> tuple[ModIdentity, ModIdentity]:
    """The synthetic identities standing in for the game and the mod loader."""
    return (
        ModIdentity("", MINECRAFT_ID, "Minecraft", parse_version(minecraft_version), kind=ModKind.MOD),
        ModIdentity("", NEOFORGE_ID, "NeoForge", parse_version(neoforge_version), kind=ModKind.MOD),
    )


@dataclass(frozen=True, eq=False)
class Namespace:
    """Read-only snapshot of every resolved identity, keyed by mod id.

    ``duplicates`` holds the id collisions worth reporting: platform ids are
    never included, nor are collisions where every copy is a jar-in-jar.
    """

    entries: Mapping[str, tuple[ModIdentity, ...]]
    duplicates: Mapping[str, tuple[ModIdentity, ...]]

    def __contains__(self, mod_id: object) -> bool:
        return mod_id in self.entries

    def get(self, mod_id: str) -> tuple[ModIdentity, ...]:
        return self.entries.get(mod_id, ())

    def lookup(self, mod_id: str) -> ModIdentity | None:
        """Return one identity for *mod_id*.

        With duplicates this is whichever copy was added first; the choice
        does not prefer a higher version or a top-level copy.
        """
        members = self.entries.get(mod_id)
        return members[0] if members else None

    def identities(self) -> Iterator[ModIdentity]:
        """Non-platform identities, in display order."""
        for mod_id in sorted(self.entries, key=mod_id_sort_key):
            if mod_id in PLATFORM_IDS:
                continue
            yield from sorted(self.entries[mod_id], key=lambda m: m.file_name)

    @property
    def mod_count(self) -> int:
        return sum(
            len(members) for mod_id, members in self.entries.items() if mod_id not in PLATFORM_IDS
        )


class NamespaceBuilder:
    """Collects identities from the archive walk; :meth:`build` freezes them."""

    def __init__(self) -> None:
        self._entries: defaultdict[str, list[ModIdentity]] = defaultdict(list)

    def add(self, identity: ModIdentity) -> None:
        self._entries[identity.mod_id].append(identity)

    def add_all(self, identities: Iterable[ModIdentity]) -> None:
        for identity in identities:
            self.add(identity)

    def __len__(self) -> int:
        return sum(len(members) for members in self._entries.values())

    def build(self, platform: Iterable[ModIdentity]) -> Namespace:
        entries = {mod_id: list(members) for mod_id, members in self._entries.items()}
        for identity in platform:
            entries[identity.mod_id] = [identity, *entries.get(identity.mod_id, [])]

        duplicates: dict[str, tuple[ModIdentity, ...]] = {}
        for mod_id in sorted(entries, key=mod_id_sort_key):
            members = entries[mod_id]
            if mod_id in PLATFORM_IDS or len(members) < 2:
                continue
            if all(m.embedded for m in members):
                logger.debug(
                    "Mod '%s' is embedded by %d mod JARs, not reporting as duplicate",
                    mod_id,
                    len(members),
                )
                continue
            logger.warning(
                "Found duplicated mod '%s' in mod JARs %s",
                mod_id,
                ", ".join(f"'{m.file_name}'" for m in members),
            )
            duplicates[mod_id] = tuple(members)

        return Namespace(
            entries=MappingProxyType({k: tuple(v) for k, v in entries.items()}),
            duplicates=MappingProxyType(duplicates),
        )
