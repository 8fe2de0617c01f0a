"""Read-only access to JAR archives and their manifests."""

from __future__ import annotations

import io
import logging
import re
import zipfile
import zlib
from pathlib import Path, PurePosixPath

from depextract.model import EmbeddingMetadata

logger = logging.getLogger(__name__)

MANIFEST_PATH = "META-INF/MANIFEST.MF"

# Everything zipfile raises for an unreadable archive or entry.  RuntimeError
# covers encrypted entries and NotImplementedError (unsupported compression).
READ_ERRORS = (OSError, EOFError, RuntimeError, zipfile.BadZipFile, zlib.error)

_LINE_SPLIT_RE = re.compile(r"\r\n|\r|\n")


class Manifest:
    """Main attributes of a JAR manifest.  Attribute names are case-insensitive."""

    def __init__(self, attributes: dict[str, str] | None = None) -> None:
        self._attributes = {k.lower(): v for k, v in (attributes or {}).items()}

    @classmethod
    def parse(cls, text: str) -> Manifest:
        """Parse the main section of a ``MANIFEST.MF`` document.

        Continuation lines start with a single space.  Parsing stops at the
        first blank line, which ends the main section.
        """
        attributes: dict[str, str] = {}
        last_key: str | None = None
        for line in _LINE_SPLIT_RE.split(text):
            if not line:
                if attributes:
                    break
                continue
            if line.startswith(" ") and last_key is not None:
                attributes[last_key] += line[1:]
                continue
            key, sep, value = line.partition(":")
            if not sep:
                logger.debug("Ignoring malformed manifest line %r", line)
                last_key = None
                continue
            last_key = key.strip()
            attributes[last_key] = value.strip()
        return cls(attributes)

    def get(self, name: str, default: str | None = None) -> str | None:
        return self._attributes.get(name.lower(), default)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._attributes

    def __len__(self) -> int:
        return len(self._attributes)


def _entry_name(path: str) -> str:
    return path.lstrip("/")


class ArchiveHandle:
    """An open archive, addressable by internal path.

    Use as a context manager so the underlying ZIP is released on every exit
    path.  Embedded archives are opened from their parent's bytes and carry
    the :class:`EmbeddingMetadata` their parent declared for them.
    """

    def __init__(
        self,
        file_name: str,
        source_path: Path,
        zip_file: zipfile.ZipFile,
        embedding: EmbeddingMetadata | None = None,
    ) -> None:
        self.file_name = file_name
        self.source_path = source_path
        self.embedding = embedding
        self._zip = zip_file
        self._names = set(zip_file.namelist())
        self._manifest: Manifest | None = None

    @classmethod
    def open(cls, path: Path) -> ArchiveHandle:
        path = path.resolve()
        return cls(path.name, path, zipfile.ZipFile(path))

    @property
    def nested(self) -> bool:
        return self.embedding is not None

    def exists(self, path: str) -> bool:
        return _entry_name(path) in self._names

    def read_bytes(self, path: str) -> bytes:
        name = _entry_name(path)
        if name not in self._names:
            raise FileNotFoundError(f"'{path}' not found in archive '{self.file_name}'")
        return self._zip.read(name)

    def read_text(self, path: str, encoding: str = "utf-8") -> str:
        return self.read_bytes(path).decode(encoding)

    @property
    def manifest(self) -> Manifest:
        """The main manifest attributes (empty when there is no manifest)."""
        if self._manifest is None:
            if self.exists(MANIFEST_PATH):
                text = self.read_bytes(MANIFEST_PATH).decode("utf-8", errors="replace")
                self._manifest = Manifest.parse(text)
            else:
                self._manifest = Manifest()
        return self._manifest

    def open_nested(self, path: str, embedding: EmbeddingMetadata) -> ArchiveHandle:
        """Open the archive stored at *path* inside this one."""
        data = self.read_bytes(path)
        return ArchiveHandle(
            PurePosixPath(path).name,
            self.source_path,
            zipfile.ZipFile(io.BytesIO(data)),
            embedding,
        )

    def close(self) -> None:
        self._zip.close()

    def __enter__(self) -> ArchiveHandle:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __repr__(self) -> str:
        kind = "nested" if self.nested else "top-level"
        return f"ArchiveHandle({self.file_name!r}, {kind}, source={str(self.source_path)!r})"
