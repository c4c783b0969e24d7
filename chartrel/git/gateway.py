"""Source control gateway.

Thin wrapper over the ``git`` CLI for everything a release run needs from
the repository: remote branch listing, the ephemeral pages worktree, the
index commit and push, and owner/repo discovery from the push url.

Every method blocks until git exits and returns a Result. There is no retry
and no timeout: a git command that started runs to completion.

Usage:
    gateway = GitGateway(console=console)
    match gateway.list_remote_branches("origin"):
        case Ok(branches):
            print("gh-pages" in branches)
        case Err(e):
            print(f"git failed: {e.message}")
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal
from urllib.parse import urlparse

from chartrel.core.result import Err, Ok, Result
from chartrel.output.console import ConsoleProtocol, Style
from chartrel.platform.process import ProcessError
from chartrel.platform.process import run as run_process

__all__ = [
    "GitError",
    "GitErrorKind",
    "GitGateway",
    "parse_owner_and_repo",
    "token_push_url",
]

GitErrorKind = Literal[
    "command_failed",
    "remote_update_failed",
    "checkout_failed",
    "teardown_failed",
    "malformed_remote_url",
]

_HEADS_PREFIX = "refs/heads/"
_TOKEN_MASK = "*****"
_DEFAULT_HOST = "github.com"


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        command: The git sub-command that failed (e.g. "worktree add")
        message: Error message, never containing credentials
        returncode: Process return code
        kind: Failure category used by callers to pick an error context
    """

    command: str
    message: str
    returncode: int = 1
    kind: GitErrorKind = "command_failed"


def parse_owner_and_repo(remote_url: str) -> Result[tuple[str, str], GitError]:
    """Extract (owner, repo) from an ssh or https remote url.

    Accepts ``git@host:<owner>/<repo>.git`` and ``https://host/<owner>/<repo>.git``.
    The url must contain exactly one ':' and at least two '/' separated path
    segments after it.
    """
    column_parts = remote_url.split(":")
    if len(column_parts) != 2:
        return Err(
            GitError(
                command="remote get-url",
                message=f"invalid remote url {remote_url}, no : found",
                kind="malformed_remote_url",
            )
        )

    path_parts = column_parts[1].split("/")
    if len(path_parts) < 2:
        return Err(
            GitError(
                command="remote get-url",
                message=f"invalid remote url {remote_url}, min 2 path parts expected",
                kind="malformed_remote_url",
            )
        )

    owner = path_parts[-2]
    repo = path_parts[-1].removesuffix(".git")
    return Ok((owner, repo))


def _remote_host(remote_url: str) -> str:
    if "://" in remote_url:
        return urlparse(remote_url).hostname or _DEFAULT_HOST
    # scp-like ssh syntax: [user@]host:path
    host = remote_url.split(":", 1)[0]
    return host.rsplit("@", 1)[-1] or _DEFAULT_HOST


def token_push_url(remote_url: str, token: str) -> Result[str, GitError]:
    """Rewrite a remote url into an https url carrying ``token``.

    The returned value is a secret: it must never be logged.
    """
    parsed = parse_owner_and_repo(remote_url)
    if isinstance(parsed, Err):
        return parsed
    owner, repo = parsed.value
    host = _remote_host(remote_url)
    return Ok(f"https://x-access-token:{token}@{host}/{owner}/{repo}.git")


class GitGateway:
    """Runs git commands against one repository on behalf of a release run.

    Attributes:
        repo_root: Directory of the source checkout (where remotes are configured)
    """

    def __init__(self, *, console: ConsoleProtocol, repo_root: Path | None = None) -> None:
        self._console = console
        self.repo_root = repo_root or Path.cwd()

    def list_remote_branches(self, remote: str) -> Result[set[str], GitError]:
        """List head refs on ``remote``.

        Lines that do not split into exactly two fields are ignored.
        """
        result = self._git(["ls-remote", "--heads", remote], cwd=self.repo_root)
        if isinstance(result, Err):
            return Err(self._error("ls-remote", result.error))

        branches: set[str] = set()
        for line in result.value.splitlines():
            columns = line.split()
            if len(columns) != 2:
                continue
            branches.add(columns[1].strip().removeprefix(_HEADS_PREFIX))
        return Ok(branches)

    def add_worktree(self, path: Path, remote: str, branch: str) -> Result[None, GitError]:
        """Check ``remote/branch`` out into ``path`` as a detached worktree.

        The remote is force-refreshed (with pruning) first so the checkout
        reflects the current remote tip.
        """
        update = self._git(["remote", "update", remote, "--prune"], cwd=self.repo_root)
        if isinstance(update, Err):
            return Err(self._error("remote update", update.error, kind="remote_update_failed"))

        add = self._git(
            ["worktree", "add", "--detach", str(path), f"{remote}/{branch}"],
            cwd=self.repo_root,
        )
        if isinstance(add, Err):
            return Err(self._error("worktree add", add.error, kind="checkout_failed"))
        return Ok(None)

    def remove_worktree(self, path: Path) -> Result[None, GitError]:
        result = self._git(["worktree", "remove", str(path), "--force"], cwd=self.repo_root)
        if isinstance(result, Err):
            return Err(self._error("worktree remove", result.error, kind="teardown_failed"))
        return Ok(None)

    def add_and_commit(self, workdir: Path, file: str, message: str) -> Result[None, GitError]:
        """Stage exactly ``file`` and commit it inside ``workdir``.

        git refuses to commit when the file has no changes; callers only
        commit after the index reported a change.
        """
        add = self._git(["add", file], cwd=workdir)
        if isinstance(add, Err):
            return Err(self._error("add", add.error))

        commit = self._git(["commit", "-m", message], cwd=workdir)
        if isinstance(commit, Err):
            return Err(self._error("commit", commit.error))
        return Ok(None)

    def push(self, workdir: Path, remote: str, branch: str, token: str) -> Result[None, GitError]:
        """Push the worktree tip to ``refs/heads/<branch>`` on the remote.

        With a token the push goes to a rewritten https url embedding it;
        that url is never logged nor included in errors.
        """
        push_url = self._push_url(workdir, remote, token)
        if isinstance(push_url, Err):
            return push_url

        refspec = f"HEAD:{_HEADS_PREFIX}{branch}"
        self._console.print(f"git push {remote} {refspec}", Style.DIM)
        result = run_process(["git", "push", push_url.value, refspec], cwd=workdir)
        if isinstance(result, Err):
            e = result.error
            detail = e.detail
            if token:
                detail = detail.replace(token, _TOKEN_MASK)
            return Err(GitError(command="push", message=detail, returncode=e.returncode))
        return Ok(None)

    def get_owner_and_repo(self, workdir: Path, remote: str) -> Result[tuple[str, str], GitError]:
        remote_url = self._remote_push_url(workdir, remote)
        if isinstance(remote_url, Err):
            return remote_url
        return parse_owner_and_repo(remote_url.value)

    def _push_url(self, workdir: Path, remote: str, token: str) -> Result[str, GitError]:
        remote_url = self._remote_push_url(workdir, remote)
        if isinstance(remote_url, Err):
            return remote_url

        if not token:
            self._console.info(f"no token supplied, pushing to {remote_url.value}")
            return remote_url
        return token_push_url(remote_url.value, token)

    def _remote_push_url(self, workdir: Path, remote: str) -> Result[str, GitError]:
        result = self._git(["remote", "get-url", "--push", remote], cwd=workdir)
        if isinstance(result, Err):
            return Err(self._error("remote get-url", result.error))
        return Ok(result.value.strip())

    def _git(self, args: list[str], *, cwd: Path) -> Result[str, ProcessError]:
        self._console.print(f"git {' '.join(args)}", Style.DIM)
        return run_process(["git", *args], cwd=cwd)

    @staticmethod
    def _error(
        command: str,
        error: ProcessError,
        *,
        kind: GitErrorKind = "command_failed",
    ) -> GitError:
        return GitError(
            command=command,
            message=error.detail,
            returncode=error.returncode,
            kind=kind,
        )
