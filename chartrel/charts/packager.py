"""Chart discovery and packaging.

Packaging itself (archive layout, provenance signing) is delegated to the
``helm package`` command. This module finds chart roots, drives helm, and
reads back the metadata of what was actually packaged.
"""

from __future__ import annotations

import tarfile
import tempfile
from pathlib import Path

import yaml

from chartrel.charts.model import ChartMetadata, PackagedChart, PackagedCharts, PackageError
from chartrel.core.config import SigningConfig
from chartrel.core.result import Err, Ok, Result
from chartrel.core.structured import as_str_dict, get_str
from chartrel.output.console import ConsoleProtocol, Style
from chartrel.platform.process import run as run_process
from chartrel.platform.process import which

__all__ = ["CHART_MARKER", "HelmPackager", "find_chart_dirs", "read_archive_metadata"]

CHART_MARKER = "Chart.yaml"


def find_chart_dirs(charts_dir: Path) -> Result[list[Path], PackageError]:
    """Return every directory under ``charts_dir`` holding a Chart.yaml, sorted."""
    if not charts_dir.is_dir():
        return Err(
            PackageError(
                kind="discovery_failed",
                message=f"charts dir {charts_dir} does not exist",
                chart_dir=charts_dir,
            )
        )
    try:
        found = {p.parent for p in charts_dir.rglob(CHART_MARKER) if p.is_file()}
    except OSError as e:
        return Err(
            PackageError(
                kind="discovery_failed",
                message=f"walk {charts_dir}: {e}",
                chart_dir=charts_dir,
            )
        )
    return Ok(sorted(found))


def read_archive_metadata(archive: Path) -> Result[ChartMetadata, str]:
    """Load ``<chart>/Chart.yaml`` from a packaged chart archive."""
    try:
        with tarfile.open(archive, "r:gz") as tar:
            member = next(
                (
                    m
                    for m in tar.getmembers()
                    if m.isfile()
                    and len(Path(m.name).parts) == 2
                    and Path(m.name).name == CHART_MARKER
                ),
                None,
            )
            if member is None:
                return Err(f"{archive.name}: no {CHART_MARKER} in archive")
            handle = tar.extractfile(member)
            if handle is None:
                return Err(f"{archive.name}: cannot read {member.name}")
            with handle:
                data_obj: object = yaml.safe_load(handle.read())
    except (OSError, tarfile.TarError) as e:
        return Err(f"open {archive.name}: {e}")
    except yaml.YAMLError as e:
        return Err(f"{archive.name}: invalid {CHART_MARKER}: {e}")

    data = as_str_dict(data_obj)
    if data is None:
        return Err(f"{archive.name}: {CHART_MARKER} is not a mapping")
    name = get_str(data, "name")
    version = get_str(data, "version")
    if name is None or version is None:
        return Err(f"{archive.name}: {CHART_MARKER} must set name and version")
    return Ok(ChartMetadata(name=name, version=version, raw=data))


class HelmPackager:
    """Packages every chart under a directory with ``helm package``."""

    def __init__(
        self,
        *,
        console: ConsoleProtocol,
        signing: SigningConfig | None = None,
        helm: str = "helm",
    ) -> None:
        self._console = console
        self._signing = signing or SigningConfig()
        self._helm = helm

    def package_charts(self, charts_dir: Path) -> Result[PackagedCharts, PackageError]:
        """Package all charts found under ``charts_dir``.

        On success the caller owns the archives and must call
        ``PackagedCharts.cleanup()`` when done. On failure nothing is left
        behind.
        """
        chart_dirs = find_chart_dirs(charts_dir)
        if isinstance(chart_dirs, Err):
            return chart_dirs

        if which(self._helm) is None:
            return Err(
                PackageError(
                    kind="helm_missing",
                    message=(
                        f"{self._helm}: missing "
                        "(install it from https://helm.sh/docs/intro/install/)"
                    ),
                )
            )

        out_dir = Path(tempfile.mkdtemp(prefix="chartrel-packages-"))
        packaged: list[PackagedChart] = []
        for index, chart_dir in enumerate(chart_dirs.value):
            result = self.package_chart(chart_dir.resolve(), out_dir / str(index))
            if isinstance(result, Err):
                PackagedCharts(charts=(), out_dir=out_dir).cleanup()
                return result
            packaged.append(result.value)

        return Ok(PackagedCharts(charts=tuple(packaged), out_dir=out_dir))

    def package_chart(
        self, chart_dir: Path, destination: Path
    ) -> Result[PackagedChart, PackageError]:
        """Package one chart into ``destination`` and load its metadata."""
        self._console.info(f"start package {chart_dir} chart")
        destination.mkdir(parents=True, exist_ok=True)

        cmd = [self._helm, "package", str(chart_dir), "--destination", str(destination)]
        cmd += self._sign_args()
        self._console.print(" ".join(cmd[:5]), Style.DIM)

        result = run_process(cmd, cwd=chart_dir)
        if isinstance(result, Err):
            return Err(
                PackageError(
                    kind="packaging_failed",
                    message=f"package chart at {chart_dir} path: {result.error.detail}",
                    chart_dir=chart_dir,
                )
            )

        archives = sorted(destination.glob("*.tgz"))
        if len(archives) != 1:
            return Err(
                PackageError(
                    kind="packaging_failed",
                    message=(
                        f"package chart at {chart_dir} path: "
                        f"expected one archive, found {len(archives)}"
                    ),
                    chart_dir=chart_dir,
                )
            )
        archive = archives[0]

        if self._signing.sign and not archive.with_name(archive.name + ".prov").is_file():
            return Err(
                PackageError(
                    kind="packaging_failed",
                    message=f"sign chart at {chart_dir} path: no provenance file produced",
                    chart_dir=chart_dir,
                )
            )

        metadata = read_archive_metadata(archive)
        if isinstance(metadata, Err):
            return Err(
                PackageError(
                    kind="packaging_failed",
                    message=f"load chart: {metadata.error}",
                    chart_dir=chart_dir,
                )
            )

        self._console.info(f"chart {chart_dir} packaged as {archive}")
        return Ok(PackagedChart(path=archive, metadata=metadata.value))

    def _sign_args(self) -> list[str]:
        s = self._signing
        if not s.sign:
            return []
        args = ["--sign", "--key", s.key]
        if s.keyring:
            args += ["--keyring", s.keyring]
        if s.passphrase_file:
            args += ["--passphrase-file", s.passphrase_file]
        return args
