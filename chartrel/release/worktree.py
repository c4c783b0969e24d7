"""Scoped checkout of the pages branch.

``acquire_worktree`` creates a fresh private directory and checks the pages
branch out into it; ``release_worktree`` tears it down. The orchestrator
registers the release on an ExitStack right after a successful acquire, so
teardown runs on every exit path. Teardown problems are only warnings.
"""

from __future__ import annotations

import shutil
import tempfile
from pathlib import Path
from typing import Protocol

from chartrel.core.result import Err, Ok, Result
from chartrel.git.gateway import GitError
from chartrel.output.console import ConsoleProtocol
from chartrel.release.model import WorktreeHandle

__all__ = ["WorktreeGit", "acquire_worktree", "release_worktree"]


class WorktreeGit(Protocol):
    def add_worktree(self, path: Path, remote: str, branch: str) -> Result[None, GitError]: ...

    def remove_worktree(self, path: Path) -> Result[None, GitError]: ...


def acquire_worktree(
    git: WorktreeGit,
    *,
    remote: str,
    branch: str,
    console: ConsoleProtocol,
) -> Result[WorktreeHandle, GitError]:
    # branch names may contain "/", which mkdtemp would treat as a directory
    prefix = branch.replace("/", "-")
    try:
        path = Path(tempfile.mkdtemp(prefix=f"{prefix}-"))
    except OSError as e:
        return Err(
            GitError(
                command="worktree add",
                message=f"create worktree directory: {e}",
                kind="checkout_failed",
            )
        )
    added = git.add_worktree(path, remote, branch)
    if isinstance(added, Err):
        shutil.rmtree(path, ignore_errors=True)
        return added

    console.info(f"added pages {branch} worktree to {path}")
    return Ok(WorktreeHandle(path=path, remote=remote, branch=branch))


def release_worktree(
    git: WorktreeGit,
    handle: WorktreeHandle,
    *,
    console: ConsoleProtocol,
) -> None:
    removed = git.remove_worktree(handle.path)
    if isinstance(removed, Err):
        console.warning(
            f"remove pages {handle.branch} worktree {handle.path}: {removed.error.message}"
        )
    else:
        console.info(f"removed pages {handle.branch} worktree {handle.path}")

    # git may leave the directory behind when removal fails half way
    shutil.rmtree(handle.path, ignore_errors=True)
