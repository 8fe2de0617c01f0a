"""Tests for identity resolution from descriptors, manifests and bytecode."""

from __future__ import annotations

import pytest

from conftest import class_file, corrupt_entry, descriptor, embedded_metadata, jar_bytes, manifest_text
from depextract.archive import ArchiveHandle
from depextract.model import ModKind, Severity
from depextract.resolver import (
    LANGUAGE_LOADER_SERVICE,
    normalize_mod_id,
    resolve_identities,
)
from depextract.walker import walk_archives

DESCRIPTOR = "META-INF/neoforge.mods.toml"
MANIFEST = "META-INF/MANIFEST.MF"


def resolve(path):
    with ArchiveHandle.open(path) as archive:
        return resolve_identities(archive)


class TestDescriptor:
    def test_mod_with_dependencies(self, make_jar):
        path = make_jar(
            "example.jar",
            {
                DESCRIPTOR: descriptor(
                    [{"modId": "example", "version": "1.2.0", "displayName": "Example Mod"}],
                    {
                        "example": [
                            {"modId": "neoforge", "type": "required", "versionRange": "[21.0,)"},
                            {"modId": "jei", "type": "OPTIONAL"},
                            {"modId": "badmod", "type": "incompatible", "versionRange": "[1.0]"},
                        ]
                    },
                )
            },
        )
        [mod] = resolve(path)
        assert mod.mod_id == "example"
        assert mod.display_name == "Example Mod"
        assert str(mod.version) == "1.2.0"
        assert mod.kind is ModKind.MOD
        assert not mod.embedded
        assert mod.source_path == path.resolve()

        deps = {d.mod_id: d for d in mod.dependencies}
        assert deps["neoforge"].severity is Severity.REQUIRED
        assert deps["jei"].severity is Severity.OPTIONAL
        assert deps["jei"].version_range.is_unbounded
        assert deps["badmod"].severity is Severity.INCOMPATIBLE

    def test_several_mods_in_one_file(self, make_jar):
        path = make_jar(
            "multi.jar",
            {DESCRIPTOR: descriptor([{"modId": "a", "version": "1"}, {"modId": "b", "version": "2"}])},
        )
        assert [m.mod_id for m in resolve(path)] == ["a", "b"]

    def test_display_name_defaults_to_id(self, make_jar):
        path = make_jar("m.jar", {DESCRIPTOR: descriptor([{"modId": "plain", "version": "1"}])})
        assert resolve(path)[0].display_name == "plain"

    def test_jar_version_placeholder_uses_manifest(self, make_jar):
        path = make_jar(
            "m.jar",
            {
                DESCRIPTOR: descriptor([{"modId": "m", "version": "${file.jarVersion}"}]),
                MANIFEST: manifest_text(Implementation_Version="3.4.5"),
            },
        )
        assert str(resolve(path)[0].version) == "3.4.5"

    def test_placeholder_without_manifest_is_invalid(self, make_jar):
        path = make_jar("m.jar", {DESCRIPTOR: descriptor([{"modId": "m", "version": "${file.jarVersion}"}])})
        assert not resolve(path)[0].version.is_valid

    def test_malformed_range_becomes_none(self, make_jar):
        path = make_jar(
            "m.jar",
            {
                DESCRIPTOR: descriptor(
                    [{"modId": "m", "version": "1"}],
                    {"m": [{"modId": "other", "type": "required", "versionRange": "[2.0,1.0]"}]},
                )
            },
        )
        [dep] = resolve(path)[0].dependencies
        assert dep.version_range is None

    def test_unknown_type_drops_dependency(self, make_jar):
        path = make_jar(
            "m.jar",
            {
                DESCRIPTOR: descriptor(
                    [{"modId": "m", "version": "1"}],
                    {
                        "m": [
                            {"modId": "other", "type": "sometimes"},
                            {"modId": "kept", "type": "discouraged"},
                        ]
                    },
                )
            },
        )
        [dep] = resolve(path)[0].dependencies
        assert dep.mod_id == "kept"
        assert dep.severity is Severity.DISCOURAGED

    def test_missing_type_means_required(self, make_jar):
        path = make_jar(
            "m.jar",
            {DESCRIPTOR: descriptor([{"modId": "m", "version": "1"}], {"m": [{"modId": "other"}]})},
        )
        assert resolve(path)[0].dependencies[0].severity is Severity.REQUIRED

    def test_legacy_mandatory_flag(self, make_jar):
        path = make_jar(
            "legacy.jar",
            {
                "META-INF/mods.toml": descriptor(
                    [{"modId": "old", "version": "1"}],
                    {"old": [{"modId": "x", "mandatory": False}, {"modId": "y", "mandatory": True}]},
                )
            },
        )
        deps = {d.mod_id: d.severity for d in resolve(path)[0].dependencies}
        assert deps == {"x": Severity.OPTIONAL, "y": Severity.REQUIRED}

    def test_non_table_dependencies_are_ignored(self, make_jar):
        text = 'dependencies = "nope"\n' + descriptor([{"modId": "m", "version": "1"}])
        path = make_jar("m.jar", {DESCRIPTOR: text})
        [mod] = resolve(path)
        assert mod.dependencies == ()

    def test_broken_toml_yields_nothing(self, make_jar):
        path = make_jar("m.jar", {DESCRIPTOR: "[[mods]\nmodId = "})
        assert resolve(path) == []

    def test_unreadable_descriptor_yields_nothing(self, make_jar):
        path = make_jar("m.jar", {DESCRIPTOR: descriptor([{"modId": "m", "version": "1"}])})
        corrupt_entry(path, DESCRIPTOR)
        assert resolve(path) == []


class TestLanguageProvider:
    def _provider(self, make_jar, extra):
        entries = {
            MANIFEST: manifest_text(
                FMLModType="LANGPROVIDER",
                Implementation_Title="Kotlin For Forge",
                Implementation_Version="5.0.0",
                Automatic_Module_Name="thedarkcolour.kotlinforforge",
            )
        }
        entries.update(extra)
        return make_jar("kff.jar", entries)

    def test_id_comes_from_bytecode(self, make_jar):
        path = self._provider(
            make_jar,
            {
                LANGUAGE_LOADER_SERVICE: "# loader\ncom.example.Loader\n",
                "com/example/Loader.class": class_file("kotlinforforge"),
            },
        )
        [mod] = resolve(path)
        assert mod.mod_id == "kotlinforforge"
        assert mod.display_name == "Kotlin For Forge"
        assert mod.kind is ModKind.LANGPROVIDER
        assert str(mod.version) == "5.0.0"

    def test_missing_service_falls_back_to_module_name(self, make_jar):
        path = self._provider(make_jar, {})
        assert resolve(path)[0].mod_id == "thedarkcolour.kotlinforforge"

    def test_missing_class_falls_back(self, make_jar):
        path = self._provider(make_jar, {LANGUAGE_LOADER_SERVICE: "com.example.Loader\n"})
        assert resolve(path)[0].mod_id == "thedarkcolour.kotlinforforge"

    def test_corrupt_class_falls_back(self, make_jar):
        path = self._provider(
            make_jar,
            {
                LANGUAGE_LOADER_SERVICE: "com.example.Loader\n",
                "com/example/Loader.class": b"\xca\xfe",
            },
        )
        assert resolve(path)[0].mod_id == "thedarkcolour.kotlinforforge"

    @pytest.mark.parametrize("literal", ["", "   "])
    def test_blank_name_literal_falls_back(self, make_jar, literal):
        path = self._provider(
            make_jar,
            {
                LANGUAGE_LOADER_SERVICE: "com.example.Loader\n",
                "com/example/Loader.class": class_file(literal),
            },
        )
        assert resolve(path)[0].mod_id == "thedarkcolour.kotlinforforge"

    def test_corrupt_class_entry_falls_back(self, make_jar):
        path = self._provider(
            make_jar,
            {
                LANGUAGE_LOADER_SERVICE: "com.example.Loader\n",
                "com/example/Loader.class": class_file("kotlinforforge"),
            },
        )
        corrupt_entry(path, "com/example/Loader.class")
        assert resolve(path)[0].mod_id == "thedarkcolour.kotlinforforge"

    def test_nameless_provider_is_skipped(self, make_jar):
        path = make_jar("anon.jar", {MANIFEST: manifest_text(FMLModType="LANGPROVIDER")})
        assert resolve(path) == []


class TestLibrary:
    def test_game_library_manifest(self, make_jar):
        path = make_jar(
            "some-lib-1.0.jar",
            {MANIFEST: manifest_text(FMLModType="GAMELIBRARY", Implementation_Version="1.0")},
        )
        [mod] = resolve(path)
        assert mod.mod_id == "some-lib-1.0"
        assert mod.kind is ModKind.GAMELIBRARY
        assert str(mod.version) == "1.0"

    def test_library_kind_is_kept(self, make_jar):
        path = make_jar(
            "lib.jar",
            {MANIFEST: manifest_text(FMLModType="LIBRARY", Automatic_Module_Name="Some Lib")},
        )
        [mod] = resolve(path)
        assert mod.kind is ModKind.LIBRARY
        assert mod.mod_id == "some_lib"
        assert str(mod.version) == "NONE"

    def test_plain_top_level_jar_is_skipped(self, make_jar):
        path = make_jar("random.jar", {MANIFEST: manifest_text()})
        assert resolve(path) is None

    def test_embedded_jar_takes_metadata_version(self, make_jar):
        path = make_jar(
            "parent.jar",
            {
                DESCRIPTOR: descriptor([{"modId": "parent", "version": "1"}]),
                "META-INF/jarjar/metadata.json": embedded_metadata(
                    ("META-INF/jarjar/mixinextras-1.0.jar", "mixinextras", "[0.3,)", "0.3.5")
                ),
                "META-INF/jarjar/mixinextras-1.0.jar": jar_bytes({}),
            },
        )
        identities = []
        for archive in walk_archives([path]):
            identities.extend(resolve_identities(archive) or [])

        assert [m.mod_id for m in identities] == ["parent", "mixinextras-1.0"]
        embedded = identities[1]
        assert embedded.embedded
        assert embedded.kind is ModKind.GAMELIBRARY
        assert str(embedded.version) == "0.3.5"
        assert embedded.source_path == path.resolve()


def test_normalize_mod_id():
    assert normalize_mod_id("  My Cool\tLib ") == "my_cool_lib"
