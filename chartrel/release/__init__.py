"""Release run: orchestration of packaging, registry, index and git.

Modules:
- errors: canonical ReleaseError
- model: per-chart outcomes and the folded run result
- worktree: scoped pages branch checkout
- orchestrator: the Releaser state machine
"""

from __future__ import annotations

from chartrel.release.errors import ReleaseError, ReleaseErrorKind
from chartrel.release.model import ChartOutcome, RunResult, WorktreeHandle
from chartrel.release.orchestrator import Releaser, pages_branch_instructions, resolve_tag

__all__ = [
    "ChartOutcome",
    "ReleaseError",
    "ReleaseErrorKind",
    "Releaser",
    "RunResult",
    "WorktreeHandle",
    "pages_branch_instructions",
    "resolve_tag",
]
