from __future__ import annotations

import re
from dataclasses import dataclass

_SEMVER_RE = re.compile(
    r"^v?(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*)?$"
)

# Identifier key: numeric identifiers sort before alphanumeric ones.
_Ident = tuple[int, int, str]


@dataclass(frozen=True, slots=True, order=True)
class SemVer:
    major: int
    minor: int
    patch: int
    # (1,) for a release, (0, *identifiers) for a pre-release: 1.0.0-rc.1 < 1.0.0
    pre: tuple[int | _Ident, ...] = (1,)

    @property
    def is_prerelease(self) -> bool:
        return self.pre[0] == 0


def _ident(part: str) -> _Ident:
    if part.isdigit():
        return (0, int(part), "")
    return (1, 0, part)


def parse_version(version: str) -> SemVer | None:
    m = _SEMVER_RE.match(version.strip())
    if m is None:
        return None
    pre: tuple[int | _Ident, ...] = (1,)
    if m.group(4):
        pre = (0, *(_ident(p) for p in m.group(4).split(".")))
    return SemVer(int(m.group(1)), int(m.group(2)), int(m.group(3)), pre)


def version_sort_key(version: str) -> tuple[int, SemVer | None, str]:
    """Ascending sort key; unparseable versions sort below every semver."""
    parsed = parse_version(version)
    if parsed is None:
        return (0, None, version)
    return (1, parsed, version)
