"""Error type for the release run."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Literal

ReleaseErrorKind = Literal[
    "config_invalid",
    "discovery_failed",
    "helm_missing",
    "packaging_failed",
    "pages_branch_missing",
    "git_failed",
    "remote_url_invalid",
    "registry_failed",
    "index_failed",
]


@dataclass(frozen=True, slots=True)
class ReleaseError:
    """Canonical error of a release run.

    ``message`` carries the operation context that produced the failure,
    outermost first (e.g. "create 1.2.3 release: HTTP 422: ...").
    """

    kind: ReleaseErrorKind
    message: str
    hint: str | None = None

    def with_context(self, context: str) -> ReleaseError:
        return replace(self, message=f"{context}: {self.message}")

    def pretty(self) -> str:
        if self.hint:
            return f"{self.message} (hint: {self.hint})"
        return self.message
