from __future__ import annotations

import json
from pathlib import Path
from typing import NoReturn

import typer

from chartrel import __version__
from chartrel.charts.packager import HelmPackager
from chartrel.core.config import (
    DEFAULT_CHARTS_DIR,
    DEFAULT_PAGES_BRANCH,
    DEFAULT_REMOTE,
    RunConfig,
    SigningConfig,
    build_config,
)
from chartrel.core.errors import ErrorCode
from chartrel.core.result import Err
from chartrel.git.gateway import GitGateway
from chartrel.index.repo_index import IndexManager
from chartrel.output.console import ConsoleProtocol, RichConsole
from chartrel.registry.client import ReleaseRegistry
from chartrel.registry.http import RealHttpClient
from chartrel.registry.timeouts import REGISTRY_TIMEOUT_SECONDS
from chartrel.release.errors import ReleaseErrorKind
from chartrel.release.orchestrator import Releaser

_ENV = "CHARTREL_"

app = typer.Typer(add_completion=False, rich_markup_mode="rich")


def release_error_code(kind: ReleaseErrorKind) -> ErrorCode:
    if kind in {"config_invalid", "pages_branch_missing", "remote_url_invalid"}:
        return ErrorCode.USER_ERROR
    if kind in {"helm_missing"}:
        return ErrorCode.ENV_ERROR
    if kind in {"packaging_failed"}:
        return ErrorCode.BUILD_ERROR
    if kind in {"registry_failed"}:
        return ErrorCode.NETWORK_ERROR
    return ErrorCode.IO_ERROR


def build_releaser(config: RunConfig, console: ConsoleProtocol, *, repo_root: Path) -> Releaser:
    return Releaser(
        config=config,
        git=GitGateway(console=console, repo_root=repo_root),
        packager=HelmPackager(console=console, signing=config.signing),
        registry=ReleaseRegistry(
            http=RealHttpClient(
                timeout=REGISTRY_TIMEOUT_SECONDS,
                token=config.token,
                user_agent=f"chartrel/{__version__}",
            ),
            console=console,
        ),
        index=IndexManager(console=console),
        console=console,
    )


def _exit(console: ConsoleProtocol, message: str, *, code: ErrorCode) -> NoReturn:
    console.error(message)
    raise typer.Exit(code=int(code))


@app.command()
def release(
    pages_branch: str = typer.Option(
        DEFAULT_PAGES_BRANCH,
        "--pages-branch",
        envvar=f"{_ENV}PAGES_BRANCH",
        help="The GitHub pages branch",
    ),
    charts_dir: str = typer.Option(
        DEFAULT_CHARTS_DIR,
        "--charts-dir",
        envvar=f"{_ENV}CHARTS_DIR",
        help="The Helm charts location, can be specific chart",
    ),
    helm_sign: bool = typer.Option(
        False,
        "--helm-sign",
        envvar=f"{_ENV}HELM_SIGN",
        help="Use a PGP private key to sign this package",
    ),
    helm_key: str = typer.Option(
        "",
        "--helm-key",
        envvar=f"{_ENV}HELM_KEY",
        help="Name of the key to use when signing. Used if --helm-sign is true",
    ),
    helm_keyring: str = typer.Option(
        "",
        "--helm-keyring",
        envvar=f"{_ENV}HELM_KEYRING",
        help="Location of a public keyring",
    ),
    helm_passphrase_file: str = typer.Option(
        "",
        "--helm-passphrase-file",
        envvar=f"{_ENV}HELM_PASSPHRASE_FILE",
        help="Location of a file which contains the passphrase for the signing key",
    ),
    pre_release: bool = typer.Option(
        False,
        "--pre-release",
        envvar=f"{_ENV}PRE_RELEASE",
        help="Whether the (chart) release should be marked as pre-release",
    ),
    tag: str = typer.Option(
        "",
        "--tag",
        envvar=f"{_ENV}TAG",
        help="Release tag, defaults to chart version",
    ),
    remote: str = typer.Option(
        DEFAULT_REMOTE,
        "--remote",
        envvar=f"{_ENV}REMOTE",
        help="The Git remote for the GitHub Pages branch",
    ),
    token: str = typer.Option(
        "",
        "--token",
        envvar=f"{_ENV}TOKEN",
        help="GitHub Auth Token",
        show_default=False,
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        envvar=f"{_ENV}DRY_RUN",
        help="Whether to skip release and pages index update",
    ),
    version: bool = typer.Option(False, "--version", help="Print version and exit."),
) -> None:
    """Package Helm charts, publish them as GitHub releases and update the pages index."""
    if version:
        typer.echo(__version__)
        raise typer.Exit(code=int(ErrorCode.OK))

    console = RichConsole()
    config = build_config(
        pages_branch=pages_branch,
        charts_dir=charts_dir,
        remote=remote,
        token=token,
        tag=tag,
        pre_release=pre_release,
        dry_run=dry_run,
        signing=SigningConfig(
            sign=helm_sign,
            key=helm_key,
            keyring=helm_keyring,
            passphrase_file=helm_passphrase_file,
        ),
    )
    if isinstance(config, Err):
        _exit(console, config.error.message, code=ErrorCode.USER_ERROR)

    console.info(str(config.value))
    releaser = build_releaser(config.value, console, repo_root=Path.cwd())
    result = releaser.release()
    if isinstance(result, Err):
        e = result.error
        _exit(console, f"release: {e.pretty()}", code=release_error_code(e.kind))

    typer.echo(json.dumps(result.value.summary()))


def main() -> None:
    app()
