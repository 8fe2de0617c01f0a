"""Shared fixtures: build real JAR files and minimal class files on disk."""

from __future__ import annotations

import io
import json
import struct
import zipfile
from pathlib import Path

import pytest


def manifest_text(**attributes: str) -> str:
    """Render manifest attributes; underscores in keys become dashes."""
    lines = ["Manifest-Version: 1.0"]
    lines += [f"{key.replace('_', '-')}: {value}" for key, value in attributes.items()]
    return "\r\n".join(lines) + "\r\n\r\n"


def jar_bytes(entries: dict[str, str | bytes]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        for name, data in entries.items():
            zf.writestr(name, data)
    return buffer.getvalue()


def corrupt_entry(path: Path, name: str) -> None:
    """Rewrite *path* with *name* deflated and its compressed bytes garbled.

    Reading the entry afterwards fails inside zlib, not in zipfile itself.
    """
    with zipfile.ZipFile(path) as zf:
        entries = {info.filename: zf.read(info) for info in zf.infolist()}
    with zipfile.ZipFile(path, "w") as zf:
        for entry, data in entries.items():
            compression = zipfile.ZIP_DEFLATED if entry == name else zipfile.ZIP_STORED
            zf.writestr(entry, data, compress_type=compression)
    with zipfile.ZipFile(path) as zf:
        info = zf.getinfo(name)

    # Local file header: 30 fixed bytes, then the name and extra field
    start = info.header_offset + 30 + len(info.filename.encode("utf-8")) + len(info.extra)
    data = bytearray(path.read_bytes())
    data[start : start + info.compress_size] = b"\xff" * info.compress_size
    path.write_bytes(bytes(data))


def descriptor(mods: list[dict], dependencies: dict[str, list[dict]] | None = None) -> str:
    """Render a minimal neoforge.mods.toml document."""
    lines = ['modLoader = "javafml"', 'loaderVersion = "[1,)"', ""]
    for mod in mods:
        lines.append("[[mods]]")
        lines += [f"{key} = {_toml_value(value)}" for key, value in mod.items()]
        lines.append("")
    for mod_id, deps in (dependencies or {}).items():
        for dep in deps:
            lines.append(f"[[dependencies.{mod_id}]]")
            lines += [f"{key} = {_toml_value(value)}" for key, value in dep.items()]
            lines.append("")
    return "\n".join(lines)


def _toml_value(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return json.dumps(value)


def embedded_metadata(*jars: tuple[str, str, str, str]) -> str:
    """jar-in-jar metadata for ``(path, artifact, range, version)`` tuples."""
    return json.dumps(
        {
            "jars": [
                {
                    "identifier": {"group": "com.example", "artifact": artifact},
                    "version": {"range": version_range, "artifactVersion": version},
                    "path": path,
                    "isObfuscated": False,
                }
                for path, artifact, version_range, version in jars
            ]
        }
    )


def class_file(
    value: str,
    *,
    method_name: str = "name",
    descriptor: str = "()Ljava/lang/String;",
    code: bytes | None = None,
    with_long: bool = False,
) -> bytes:
    """Assemble a class with one method that returns the string *value*.

    The String constant sits at pool index 5, so the default body is
    ``ldc #5; areturn``.
    """
    def utf8(text: str) -> bytes:
        raw = text.encode("utf-8")
        return struct.pack(">BH", 1, len(raw)) + raw

    pool = [
        utf8(method_name),  # 1
        utf8(descriptor),  # 2
        utf8("Code"),  # 3
        utf8(value),  # 4
        struct.pack(">BH", 8, 4),  # 5 String
        utf8("com/example/Loader"),  # 6
        struct.pack(">BH", 7, 6),  # 7 Class
        utf8("java/lang/Object"),  # 8
        struct.pack(">BH", 7, 8),  # 9 Class
    ]
    count = len(pool) + 1
    if with_long:
        pool.append(struct.pack(">Bq", 5, 42))  # 10 and 11
        count += 2

    body = code if code is not None else bytes([0x12, 5, 0xB0])
    code_attr = struct.pack(">HHI", 1, 1, len(body)) + body + struct.pack(">HH", 0, 0)
    method = struct.pack(">HHHH", 0x0001, 1, 2, 1) + struct.pack(">HI", 3, len(code_attr)) + code_attr

    return (
        struct.pack(">IHHH", 0xCAFEBABE, 0, 65, count)
        + b"".join(pool)
        + struct.pack(">HHHHHH", 0x0021, 7, 9, 0, 0, 1)
        + method
        + struct.pack(">H", 0)
    )


@pytest.fixture
def make_jar(tmp_path: Path):
    """Factory writing a JAR with the given entries into ``tmp_path/mods``."""
    mods_dir = tmp_path / "mods"
    mods_dir.mkdir(exist_ok=True)

    def _make(name: str, entries: dict[str, str | bytes]) -> Path:
        path = mods_dir / name
        path.write_bytes(jar_bytes(entries))
        return path

    return _make
