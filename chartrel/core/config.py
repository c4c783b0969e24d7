"""Run configuration.

A RunConfig is built once per run from command-line flags and environment
variables (see ``chartrel.cli.app``) and is read-only afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from .result import Err, Ok, Result

__all__ = [
    "DEFAULT_CHARTS_DIR",
    "DEFAULT_PAGES_BRANCH",
    "DEFAULT_REMOTE",
    "ConfigError",
    "RunConfig",
    "SigningConfig",
    "build_config",
]

DEFAULT_PAGES_BRANCH = "gh-pages"
DEFAULT_CHARTS_DIR = "charts"
DEFAULT_REMOTE = "origin"

_MASK = "*****"


def _secret(value: str) -> str:
    return _MASK if value else ""


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when run parameters are invalid."""

    message: str
    option: str | None = None


@dataclass(frozen=True, slots=True)
class SigningConfig:
    """Chart signing parameters handed to ``helm package``.

    Attributes:
        sign: Use a PGP private key to sign each package.
        key: Name of the key to use when signing.
        keyring: Location of a public keyring.
        passphrase_file: Location of a file which contains the passphrase
            for the signing key.
    """

    sign: bool = False
    key: str = ""
    keyring: str = ""
    passphrase_file: str = ""

    def __str__(self) -> str:
        return (
            f"sign: {str(self.sign).lower()}, key: {_secret(self.key)}, "
            f"keyring: {_secret(self.keyring)}, "
            f"passphrase-file: {_secret(self.passphrase_file)}"
        )


@dataclass(frozen=True, slots=True)
class RunConfig:
    """Parameters of one release run."""

    pages_branch: str = DEFAULT_PAGES_BRANCH
    charts_dir: Path = Path(DEFAULT_CHARTS_DIR)
    remote: str = DEFAULT_REMOTE
    token: str = field(default="", repr=False)
    tag: str = ""
    pre_release: bool = False
    dry_run: bool = False
    signing: SigningConfig = field(default_factory=SigningConfig)

    def __str__(self) -> str:
        token = _MASK if self.token else "<empty>"
        return (
            f'pages-branch: "{self.pages_branch}", charts-dir: "{self.charts_dir}", '
            f"pre-release: {str(self.pre_release).lower()}, tag: \"{self.tag}\", "
            f'remote: "{self.remote}", token: "{token}", '
            f"dry-run: {str(self.dry_run).lower()}, {self.signing}"
        )


def build_config(
    *,
    pages_branch: str,
    charts_dir: str,
    remote: str,
    token: str = "",
    tag: str = "",
    pre_release: bool = False,
    dry_run: bool = False,
    signing: SigningConfig | None = None,
) -> Result[RunConfig, ConfigError]:
    """Validate raw parameters and build the immutable RunConfig.

    Returns:
        Ok(RunConfig) on success, Err(ConfigError) naming the bad option.
    """
    if not pages_branch.strip():
        return Err(ConfigError("pages-branch cannot be empty", option="--pages-branch"))
    if not charts_dir.strip():
        return Err(ConfigError("charts-dir cannot be empty", option="--charts-dir"))
    if not remote.strip():
        return Err(ConfigError("remote cannot be empty", option="--remote"))

    signing = signing or SigningConfig()
    if signing.sign and not signing.key.strip():
        return Err(ConfigError("helm-key is required when helm-sign is set", option="--helm-key"))

    return Ok(
        RunConfig(
            pages_branch=pages_branch.strip(),
            charts_dir=Path(charts_dir),
            remote=remote.strip(),
            token=token.strip(),
            tag=tag.strip(),
            pre_release=pre_release,
            dry_run=dry_run,
            signing=signing,
        )
    )
