"""Release orchestrator.

One run, strictly sequential:

1. verify the pages branch exists on the remote
2. package every chart (archives are cleaned up when the run ends)
3. check the pages branch out into a private worktree (torn down when the run ends)
4. for each chart: skip if its release exists, skip on dry-run, otherwise
   create the release, upload the archive and add it to index.yaml
5. commit and push index.yaml, only if some chart changed it

Any error aborts the run. Releases already created stay published, but the
index is never pushed by a failed run.
"""

from __future__ import annotations

from contextlib import ExitStack
from pathlib import Path
from typing import Protocol

from chartrel.charts.model import ChartMetadata, PackagedChart, PackagedCharts, PackageError
from chartrel.core.config import RunConfig
from chartrel.core.result import Err, Ok, Result
from chartrel.git.gateway import GitError
from chartrel.index.repo_index import INDEX_FILE_NAME, IndexFileError
from chartrel.output.console import ConsoleProtocol
from chartrel.registry.client import RegistryError, ReleaseDescriptor
from chartrel.release.errors import ReleaseError
from chartrel.release.model import ChartOutcome, RunResult, WorktreeHandle
from chartrel.release.worktree import acquire_worktree, release_worktree

__all__ = [
    "INDEX_COMMIT_MESSAGE",
    "IndexUpdater",
    "Releaser",
    "pages_branch_instructions",
    "resolve_tag",
]

INDEX_COMMIT_MESSAGE = f"update {INDEX_FILE_NAME}"


class SourceControl(Protocol):
    def list_remote_branches(self, remote: str) -> Result[set[str], GitError]: ...

    def add_worktree(self, path: Path, remote: str, branch: str) -> Result[None, GitError]: ...

    def remove_worktree(self, path: Path) -> Result[None, GitError]: ...

    def add_and_commit(self, workdir: Path, file: str, message: str) -> Result[None, GitError]: ...

    def push(
        self, workdir: Path, remote: str, branch: str, token: str
    ) -> Result[None, GitError]: ...

    def get_owner_and_repo(
        self, workdir: Path, remote: str
    ) -> Result[tuple[str, str], GitError]: ...


class Packager(Protocol):
    def package_charts(self, charts_dir: Path) -> Result[PackagedCharts, PackageError]: ...


class Registry(Protocol):
    def release_exists(self, owner: str, repo: str, tag: str) -> Result[bool, RegistryError]: ...

    def create_release(self, descriptor: ReleaseDescriptor) -> Result[str, RegistryError]: ...


class IndexUpdater(Protocol):
    def update_index(
        self,
        index_path: Path,
        archive_path: Path,
        metadata: ChartMetadata,
        download_url: str,
    ) -> Result[bool, IndexFileError]: ...


def resolve_tag(config: RunConfig, metadata: ChartMetadata) -> str:
    """Release tag of a chart: the configured override, else the chart version.

    The override applies to every chart of the run alike.
    """
    if config.tag:
        return config.tag
    return metadata.version


def pages_branch_instructions(branch: str, remote: str) -> str:
    return "\n".join(
        [
            f"git checkout --orphan {branch}",
            "git rm -rf .",
            'git commit -m "initial commit" --allow-empty',
            f"git push -u {remote} {branch}",
        ]
    )


def _from_git(error: GitError) -> ReleaseError:
    kind = "remote_url_invalid" if error.kind == "malformed_remote_url" else "git_failed"
    return ReleaseError(kind=kind, message=f"git {error.command}: {error.message}")


def _from_package(error: PackageError) -> ReleaseError:
    return ReleaseError(kind=error.kind, message=error.message)


class Releaser:
    """Publishes packaged charts and keeps the pages index in sync."""

    def __init__(
        self,
        *,
        config: RunConfig,
        git: SourceControl,
        packager: Packager,
        registry: Registry,
        index: IndexUpdater,
        console: ConsoleProtocol,
    ) -> None:
        self._config = config
        self._git = git
        self._packager = packager
        self._registry = registry
        self._index = index
        self._console = console

    def release(self) -> Result[RunResult, ReleaseError]:
        cfg = self._config

        branch_ok = self._ensure_pages_branch()
        if isinstance(branch_ok, Err):
            return branch_ok
        self._console.info("pages remote branch exists")

        packaged = self._packager.package_charts(cfg.charts_dir)
        if isinstance(packaged, Err):
            return Err(_from_package(packaged.error).with_context("package charts"))
        self._console.info(f"{len(packaged.value.charts)} chart(s) packaged")

        with ExitStack() as cleanup:
            cleanup.callback(self._remove_archives, packaged.value)

            worktree = acquire_worktree(
                self._git, remote=cfg.remote, branch=cfg.pages_branch, console=self._console
            )
            if isinstance(worktree, Err):
                error = _from_git(worktree.error)
                return Err(error.with_context(f"add {cfg.pages_branch} worktree"))
            cleanup.callback(release_worktree, self._git, worktree.value, console=self._console)

            outcomes = self._release_charts(worktree.value, packaged.value.charts)
            if isinstance(outcomes, Err):
                return outcomes

            result = RunResult(outcomes=outcomes.value)
            if not result.index_changed:
                self._console.info("no chart changes")
                return Ok(result)
            self._console.info("released charts and updated index")

            pushed = self._commit_and_push(worktree.value)
            if isinstance(pushed, Err):
                return pushed

            self._console.success("index updated and pushed to pages branch")
            return Ok(RunResult(outcomes=result.outcomes, pushed=True))

    def _ensure_pages_branch(self) -> Result[None, ReleaseError]:
        cfg = self._config
        branches = self._git.list_remote_branches(cfg.remote)
        if isinstance(branches, Err):
            return Err(_from_git(branches.error).with_context("list remote branches"))

        if cfg.pages_branch in branches.value:
            self._console.info(f"found {cfg.pages_branch} pages remote branch")
            return Ok(None)

        instructions = pages_branch_instructions(cfg.pages_branch, cfg.remote)
        self._console.warning(
            f"branch {cfg.pages_branch} does not exist, "
            f"run the following to create pages branch:\n{instructions}"
        )
        return Err(
            ReleaseError(
                kind="pages_branch_missing",
                message=f"pages remote branch {cfg.pages_branch} does not exist",
                hint=f"create it with:\n{instructions}",
            )
        )

    def _release_charts(
        self,
        worktree: WorktreeHandle,
        charts: tuple[PackagedChart, ...],
    ) -> Result[tuple[ChartOutcome, ...], ReleaseError]:
        owner_repo = self._git.get_owner_and_repo(worktree.path, self._config.remote)
        if isinstance(owner_repo, Err):
            return Err(_from_git(owner_repo.error).with_context("get github owner and repo"))
        owner, repo = owner_repo.value

        outcomes: tuple[ChartOutcome, ...] = ()
        for chart in charts:
            outcome = self._release_chart(worktree, owner, repo, chart)
            if isinstance(outcome, Err):
                return outcome
            outcomes = (*outcomes, outcome.value)
        return Ok(outcomes)

    def _release_chart(
        self,
        worktree: WorktreeHandle,
        owner: str,
        repo: str,
        chart: PackagedChart,
    ) -> Result[ChartOutcome, ReleaseError]:
        cfg = self._config
        tag = resolve_tag(cfg, chart.metadata)
        index_path = worktree.file(INDEX_FILE_NAME)

        exists = self._registry.release_exists(owner, repo, tag)
        if isinstance(exists, Err):
            error = ReleaseError(kind="registry_failed", message=exists.error.message)
            return Err(error.with_context(f"{chart.name} release {tag} exists"))
        if exists.value:
            self._console.info(f"{chart.name} release {tag} already exists, skipping")
            return Ok(ChartOutcome(chart=chart, tag=tag, status="exists"))

        if cfg.dry_run:
            self._console.info(f"{chart.name} release {tag} skipping, dry-run set to true")
            self._console.info(f"update {index_path} index skipping, dry-run set to true")
            return Ok(ChartOutcome(chart=chart, tag=tag, status="dry_run"))

        descriptor = ReleaseDescriptor(
            owner=owner,
            repo=repo,
            tag=tag,
            name=f"{chart.name}-{chart.version}",
            description=f"Kubernetes {chart.name} Helm chart",
            asset_path=chart.path,
            pre_release=cfg.pre_release,
        )
        download_url = self._registry.create_release(descriptor)
        if isinstance(download_url, Err):
            error = ReleaseError(kind="registry_failed", message=download_url.error.message)
            return Err(error.with_context(f"create {tag} release"))

        changed = self._index.update_index(
            index_path, chart.path, chart.metadata, download_url.value
        )
        if isinstance(changed, Err):
            error = ReleaseError(kind="index_failed", message=changed.error.message)
            return Err(error.with_context(f"update {index_path} index file"))

        if not changed.value:
            return Ok(ChartOutcome(chart=chart, tag=tag, status="indexed"))
        return Ok(ChartOutcome(chart=chart, tag=tag, status="released", index_changed=True))

    def _commit_and_push(self, worktree: WorktreeHandle) -> Result[None, ReleaseError]:
        cfg = self._config
        committed = self._git.add_and_commit(worktree.path, INDEX_FILE_NAME, INDEX_COMMIT_MESSAGE)
        if isinstance(committed, Err):
            return Err(_from_git(committed.error).with_context("git commit index to pages branch"))

        pushed = self._git.push(worktree.path, cfg.remote, cfg.pages_branch, cfg.token)
        if isinstance(pushed, Err):
            return Err(_from_git(pushed.error).with_context("git push pages branch"))
        return Ok(None)

    def _remove_archives(self, packaged: PackagedCharts) -> None:
        packaged.cleanup()
        for chart in packaged.charts:
            self._console.info(f"removed generated chart {chart.path}")
