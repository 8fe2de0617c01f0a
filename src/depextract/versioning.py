"""Artifact versions and Maven-style version ranges.

Versions are ordered the way Maven's ``ComparableVersion`` orders them.  A
version string is split into numeric and qualifier items at ``.``, ``-`` and
digit/letter transitions; ``-`` opens a nested sub-list.  Trailing zeros and
release qualifiers are dropped, so ``1.0``, ``1.0.0`` and ``1-ga`` are
equal.  Known qualifiers order as::

    alpha < beta < milestone < rc < snapshot < (release) < sp

Unknown qualifiers sort after ``sp``, alphabetically.  ``1.20.1-47.1.0``
therefore sorts after ``1.20.1`` and ``2.0-SNAPSHOT`` before ``2.0``.  Every
string has an ordering; only :data:`INVALID_VERSION` does not, and it is
never contained by any range.

Range syntax follows Maven's ``VersionRange.createFromVersionSpec``:

* ``""`` (or whitespace) - unbounded, contains everything
* ``[1.0,2.0)`` / ``(,1.0]`` / ``[1.0,)`` - bounded sets
* ``[1.2]`` - exactly one version
* ``[1.0,2.0),[3.0,)`` - union of sets
* ``1.0`` - a soft recommendation, which (as in Maven) contains everything
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import total_ordering
from itertools import zip_longest
from typing import Union

_RANGE_CHARS = frozenset("[](),")
_BOUND_REJECT_RE = re.compile(r"[\s,]")

_QUALIFIERS = ("alpha", "beta", "milestone", "rc", "snapshot", "", "sp")
_QUALIFIER_ALIASES = {"ga": "", "final": "", "release": "", "cr": "rc"}
_SHORT_QUALIFIERS = {"a": "alpha", "b": "beta", "m": "milestone"}
_RELEASE_KEY = str(_QUALIFIERS.index(""))

# int for numbers, str for qualifiers, tuple for a "-" sub-list
Item = Union[int, str, tuple]


class InvalidVersionRange(ValueError):
    """Raised when a version range specification cannot be parsed."""


def _qualifier_key(qualifier: str) -> str:
    if qualifier in _QUALIFIERS:
        return str(_QUALIFIERS.index(qualifier))
    return f"{len(_QUALIFIERS)}-{qualifier}"


def _sign(a: object, b: object) -> int:
    return (a > b) - (a < b)  # type: ignore[operator]


def _compare(item: Item, other: Item | None) -> int:
    """Three-way comparison of two items; ``None`` stands for a missing item."""
    if isinstance(item, int):
        if other is None:
            return 0 if item == 0 else 1
        return _sign(item, other) if isinstance(other, int) else 1

    if isinstance(item, str):
        if other is None:
            return _sign(_qualifier_key(item), _RELEASE_KEY)
        if isinstance(other, str):
            return _sign(_qualifier_key(item), _qualifier_key(other))
        return -1

    if other is None:
        return _compare(item[0], None) if item else 0
    if isinstance(other, int):
        return -1
    if isinstance(other, str):
        return 1
    for left, right in zip_longest(item, other):
        if left is None:
            result = -_compare(right, None)
        else:
            result = _compare(left, right)
        if result:
            return result
    return 0


def _is_null(item: Item | list) -> bool:
    if isinstance(item, int):
        return item == 0
    if isinstance(item, str):
        return _qualifier_key(item) == _RELEASE_KEY
    return not item


def _qualifier(text: str, followed_by_digit: bool) -> str:
    if followed_by_digit and len(text) == 1:
        text = _SHORT_QUALIFIERS.get(text, text)
    return _QUALIFIER_ALIASES.get(text, text)


def _token(is_digit: bool, text: str) -> Item:
    return int(text) if is_digit else _qualifier(text, False)


def _normalize(items: list) -> None:
    # Drop trailing zeros, release qualifiers and empty sub-lists
    for i in range(len(items) - 1, -1, -1):
        if _is_null(items[i]):
            del items[i]
        elif not isinstance(items[i], list):
            break


def _freeze(items: list) -> tuple:
    return tuple(_freeze(i) if isinstance(i, list) else i for i in items)


def parse_items(text: str) -> tuple:
    """Split *text* into the normalized item tree used for ordering."""
    text = text.lower()
    root: list = []
    current = root
    stack = [root]

    def open_sublist() -> list:
        child: list = []
        current.append(child)
        stack.append(child)
        return child

    is_digit = False
    start = 0
    for i, char in enumerate(text):
        if char in ".-":
            current.append(0 if i == start else _token(is_digit, text[start:i]))
            start = i + 1
            if char == "-":
                current = open_sublist()
        elif "0" <= char <= "9":
            if not is_digit and i > start:
                current.append(_qualifier(text[start:i], True))
                start = i
                current = open_sublist()
            is_digit = True
        else:
            if is_digit and i > start:
                current.append(_token(True, text[start:i]))
                start = i
                current = open_sublist()
            is_digit = False
    if len(text) > start:
        current.append(_token(is_digit, text[start:]))

    while stack:
        _normalize(stack.pop())
    return _freeze(root)


@total_ordering
class ArtifactVersion:
    """A version string together with its ordering key (if it has one)."""

    __slots__ = ("raw", "key")

    def __init__(self, raw: str, key: tuple | None = None) -> None:
        self.raw = raw
        self.key = key

    @property
    def is_valid(self) -> bool:
        return self.key is not None

    def __str__(self) -> str:
        return self.raw

    def __repr__(self) -> str:
        return f"ArtifactVersion({self.raw!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ArtifactVersion):
            return NotImplemented
        if self.key is None or other.key is None:
            return self.key is None and other.key is None and self.raw == other.raw
        return _compare(self.key, other.key) == 0

    def __lt__(self, other: ArtifactVersion) -> bool:
        if not isinstance(other, ArtifactVersion):
            return NotImplemented
        if self.key is None:
            return other.key is not None or self.raw < other.raw
        if other.key is None:
            return False
        return _compare(self.key, other.key) < 0

    def __hash__(self) -> int:
        return hash(self.key) if self.key is not None else hash(self.raw)


# Stand-in for a version that could not be determined at all (for example a
# ``${file.jarVersion}`` placeholder without an Implementation-Version).
INVALID_VERSION = ArtifactVersion("<invalid>")


def parse_version(text: str) -> ArtifactVersion:
    """Parse *text* into an :class:`ArtifactVersion`.  Never raises.

    Blank text yields :data:`INVALID_VERSION`.
    """
    if not text.strip():
        return INVALID_VERSION
    return ArtifactVersion(text, parse_items(text.strip()))



@dataclass(frozen=True)
class Restriction:
    """One bounded set of a :class:`VersionRange`; ``None`` bounds are open."""

    lower: ArtifactVersion | None = None
    lower_inclusive: bool = False
    upper: ArtifactVersion | None = None
    upper_inclusive: bool = False

    def contains(self, version: ArtifactVersion) -> bool:
        if self.lower is not None:
            if version < self.lower:
                return False
            if version == self.lower and not self.lower_inclusive:
                return False
        if self.upper is not None:
            if version > self.upper:
                return False
            if version == self.upper and not self.upper_inclusive:
                return False
        return True

    def __str__(self) -> str:
        if self.lower is not None and self.lower == self.upper:
            return f"[{self.lower}]"
        return "{}{},{}{}".format(
            "[" if self.lower_inclusive else "(",
            self.lower if self.lower is not None else "",
            self.upper if self.upper is not None else "",
            "]" if self.upper_inclusive else ")",
        )


EVERYTHING = Restriction()


@dataclass(frozen=True)
class VersionRange:
    """A parsed range specification."""

    spec: str
    restrictions: tuple[Restriction, ...]
    recommended: ArtifactVersion | None = None

    @property
    def is_unbounded(self) -> bool:
        return self.recommended is None and self.restrictions == (EVERYTHING,)

    def contains(self, version: ArtifactVersion) -> bool:
        if not version.is_valid:
            return False
        return any(r.contains(version) for r in self.restrictions)

    def __str__(self) -> str:
        return self.spec


UNBOUNDED_RANGE = VersionRange("", (EVERYTHING,))


def _bound(text: str, spec: str) -> ArtifactVersion:
    if not text or _BOUND_REJECT_RE.search(text):
        raise InvalidVersionRange(f"Invalid version {text!r} in range {spec!r}")
    return parse_version(text)


def _parse_restriction(text: str, spec: str) -> Restriction:
    lower_inclusive = text.startswith("[")
    upper_inclusive = text.endswith("]")
    inner = text[1:-1].strip()

    if "," not in inner:
        if not (lower_inclusive and upper_inclusive):
            raise InvalidVersionRange(
                f"Single version must be surrounded by []: {spec!r}"
            )
        version = _bound(inner, spec)
        return Restriction(version, True, version, True)

    parts = [part.strip() for part in inner.split(",")]
    if len(parts) != 2:
        raise InvalidVersionRange(f"Invalid restriction {text!r} in range {spec!r}")
    lower_text, upper_text = parts
    lower = _bound(lower_text, spec) if lower_text else None
    upper = _bound(upper_text, spec) if upper_text else None

    if lower is not None and upper is not None:
        if upper < lower:
            raise InvalidVersionRange(f"Range defies version ordering: {spec!r}")
        if upper == lower and not (lower_inclusive and upper_inclusive):
            raise InvalidVersionRange(
                f"Range cannot have identical boundaries: {spec!r}"
            )

    return Restriction(lower, lower_inclusive, upper, upper_inclusive)


def _closing_index(text: str) -> int:
    indices = [i for i in (text.find(")"), text.find("]")) if i >= 0]
    return min(indices) if indices else -1


def parse_range(spec: str) -> VersionRange:
    """Parse a Maven-style range specification.

    Raises :class:`InvalidVersionRange` for malformed input.
    """
    process = spec.strip()
    if not process:
        return UNBOUNDED_RANGE

    restrictions: list[Restriction] = []
    while process.startswith(("[", "(")):
        close = _closing_index(process)
        if close < 0:
            raise InvalidVersionRange(f"Unbounded range: {spec!r}")

        restriction = _parse_restriction(process[: close + 1], spec)
        if restrictions:
            previous_upper = restrictions[-1].upper
            if (
                previous_upper is None
                or restriction.lower is None
                or restriction.lower < previous_upper
            ):
                raise InvalidVersionRange(f"Ranges overlap: {spec!r}")
        restrictions.append(restriction)

        process = process[close + 1 :].strip()
        if process.startswith(","):
            process = process[1:].strip()

    if process:
        if restrictions:
            raise InvalidVersionRange(
                f"Only fully-qualified sets allowed in multiple set scenario: {spec!r}"
            )
        if _RANGE_CHARS.intersection(process):
            raise InvalidVersionRange(f"Unbalanced range: {spec!r}")
        return VersionRange(spec.strip(), (EVERYTHING,), _bound(process, spec))

    return VersionRange(spec.strip(), tuple(restrictions))
