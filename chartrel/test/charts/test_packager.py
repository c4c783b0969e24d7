"""Tests for charts/packager.py."""

from __future__ import annotations

import io
import tarfile
from pathlib import Path

import pytest

from chartrel.charts import packager as packager_mod
from chartrel.charts.packager import HelmPackager, find_chart_dirs, read_archive_metadata
from chartrel.core.config import SigningConfig
from chartrel.core.result import Err, Ok, Result
from chartrel.output.console import MockConsole
from chartrel.platform.process import ProcessError


def _write_chart(root: Path, name: str, version: str) -> Path:
    chart = root / name
    chart.mkdir(parents=True)
    (chart / "Chart.yaml").write_text(
        f"apiVersion: v2\nname: {name}\nversion: {version}\ndescription: {name} chart\n",
        encoding="utf-8",
    )
    return chart


def _write_archive(path: Path, files: dict[str, str]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with tarfile.open(path, "w:gz") as tar:
        for name, content in files.items():
            data = content.encode("utf-8")
            info = tarfile.TarInfo(name)
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    return path


class FakeHelm:
    """Stands in for run_process: writes a chart archive like ``helm package`` does."""

    def __init__(self, *, sign_output: bool = True, fail_for: str | None = None) -> None:
        self.commands: list[list[str]] = []
        self._sign_output = sign_output
        self._fail_for = fail_for

    def __call__(
        self,
        cmd: list[str],
        cwd: Path,
        env: dict[str, str] | None = None,
        *,
        timeout: float | None = None,
    ) -> Result[str, ProcessError]:
        del env, timeout
        self.commands.append(cmd)
        chart_dir = Path(cmd[2])
        assert cwd == chart_dir
        if self._fail_for and chart_dir.name == self._fail_for:
            stderr = "Error: validation: chart.metadata.name is required"
            return Err(ProcessError(tuple(cmd), 1, "", stderr))

        chart_yaml = (chart_dir / "Chart.yaml").read_text(encoding="utf-8")
        fields = dict(line.split(": ", 1) for line in chart_yaml.splitlines() if ": " in line)
        destination = Path(cmd[4])
        archive = destination / f"{fields['name']}-{fields['version']}.tgz"
        _write_archive(archive, {f"{fields['name']}/Chart.yaml": chart_yaml})
        if "--sign" in cmd and self._sign_output:
            archive.with_name(archive.name + ".prov").write_text("signed", encoding="utf-8")
        return Ok(f"Successfully packaged chart and saved it to: {archive}\n")


@pytest.fixture
def helm_on_path(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(packager_mod, "which", lambda name: f"/usr/bin/{name}")


# =============================================================================
# Discovery
# =============================================================================


class TestFindChartDirs:
    def test_finds_nested_charts_sorted(self, tmp_path: Path) -> None:
        _write_chart(tmp_path, "redis", "2.0.0")
        _write_chart(tmp_path, "apps/nginx", "1.0.0")
        (tmp_path / "docs").mkdir()
        (tmp_path / "docs" / "README.md").write_text("x", encoding="utf-8")

        result = find_chart_dirs(tmp_path)

        assert result == Ok([tmp_path / "apps" / "nginx", tmp_path / "redis"])

    def test_empty_dir_has_no_charts(self, tmp_path: Path) -> None:
        assert find_chart_dirs(tmp_path) == Ok([])

    def test_missing_dir(self, tmp_path: Path) -> None:
        result = find_chart_dirs(tmp_path / "nope")

        assert isinstance(result, Err)
        assert result.error.kind == "discovery_failed"

    def test_file_instead_of_dir(self, tmp_path: Path) -> None:
        path = tmp_path / "charts"
        path.write_text("", encoding="utf-8")

        result = find_chart_dirs(path)

        assert isinstance(result, Err)
        assert result.error.kind == "discovery_failed"


# =============================================================================
# Archive metadata
# =============================================================================


class TestReadArchiveMetadata:
    def test_reads_top_level_chart_yaml(self, tmp_path: Path) -> None:
        archive = _write_archive(
            tmp_path / "nginx-1.0.0.tgz",
            {
                "nginx/charts/sub/Chart.yaml": "name: sub\nversion: 9.9.9\n",
                "nginx/Chart.yaml": (
                    "apiVersion: v2\nname: nginx\nversion: 1.0.0\nappVersion: '1.25'\n"
                ),
            },
        )

        result = read_archive_metadata(archive)

        assert isinstance(result, Ok)
        assert result.value.name == "nginx"
        assert result.value.version == "1.0.0"
        assert result.value.raw["appVersion"] == "1.25"

    def test_numeric_version(self, tmp_path: Path) -> None:
        archive = _write_archive(tmp_path / "a.tgz", {"a/Chart.yaml": "name: a\nversion: 1.0\n"})

        result = read_archive_metadata(archive)

        assert isinstance(result, Ok)
        assert result.value.version == "1.0"

    def test_missing_chart_yaml(self, tmp_path: Path) -> None:
        archive = _write_archive(tmp_path / "a.tgz", {"a/values.yaml": "x: 1\n"})

        result = read_archive_metadata(archive)

        assert isinstance(result, Err)
        assert "no Chart.yaml" in result.error

    def test_missing_version(self, tmp_path: Path) -> None:
        archive = _write_archive(tmp_path / "a.tgz", {"a/Chart.yaml": "name: a\n"})

        result = read_archive_metadata(archive)

        assert isinstance(result, Err)
        assert "name and version" in result.error

    def test_not_an_archive(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.tgz"
        path.write_bytes(b"not gzip")

        result = read_archive_metadata(path)

        assert isinstance(result, Err)
        assert result.error.startswith("open broken.tgz")


# =============================================================================
# HelmPackager - mocked helm
# =============================================================================


class TestHelmPackager:
    def test_packages_each_chart_into_own_dir(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch, helm_on_path: None
    ) -> None:
        charts = tmp_path / "charts"
        _write_chart(charts, "nginx", "1.0.0")
        _write_chart(charts, "redis", "2.0.0")
        fake = FakeHelm()
        monkeypatch.setattr(packager_mod, "run_process", fake)

        result = HelmPackager(console=MockConsole()).package_charts(charts)

        assert isinstance(result, Ok)
        packaged = result.value
        try:
            assert [(c.name, c.version) for c in packaged.charts] == [
                ("nginx", "1.0.0"),
                ("redis", "2.0.0"),
            ]
            assert packaged.charts[0].path.parent != packaged.charts[1].path.parent
            assert all(c.path.is_file() for c in packaged.charts)
            assert fake.commands[0][:2] == ["helm", "package"]
            assert "--sign" not in fake.commands[0]
        finally:
            packaged.cleanup()
        assert not packaged.out_dir.exists()

    def test_no_charts_is_empty_run(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch, helm_on_path: None
    ) -> None:
        monkeypatch.setattr(packager_mod, "run_process", FakeHelm())

        result = HelmPackager(console=MockConsole()).package_charts(tmp_path)

        assert isinstance(result, Ok)
        assert result.value.charts == ()
        result.value.cleanup()

    def test_helm_missing(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        _write_chart(tmp_path, "nginx", "1.0.0")
        monkeypatch.setattr(packager_mod, "which", lambda _name: None)

        result = HelmPackager(console=MockConsole()).package_charts(tmp_path)

        assert isinstance(result, Err)
        assert result.error.kind == "helm_missing"

    def test_packaging_failure_cleans_output(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch, helm_on_path: None
    ) -> None:
        _write_chart(tmp_path, "nginx", "1.0.0")
        _write_chart(tmp_path, "redis", "2.0.0")
        monkeypatch.setattr(packager_mod, "run_process", FakeHelm(fail_for="redis"))
        created: list[str] = []
        real_mkdtemp = packager_mod.tempfile.mkdtemp

        def tracking_mkdtemp(prefix: str) -> str:
            path = real_mkdtemp(prefix=prefix, dir=str(tmp_path))
            created.append(path)
            return path

        monkeypatch.setattr(packager_mod.tempfile, "mkdtemp", tracking_mkdtemp)

        result = HelmPackager(console=MockConsole()).package_charts(tmp_path)

        assert isinstance(result, Err)
        assert result.error.kind == "packaging_failed"
        assert result.error.chart_dir == (tmp_path / "redis").resolve()
        assert "chart.metadata.name is required" in result.error.message
        assert created and not Path(created[0]).exists()

    def test_sign_arguments(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        chart = _write_chart(tmp_path, "nginx", "1.0.0")
        fake = FakeHelm()
        monkeypatch.setattr(packager_mod, "run_process", fake)
        signing = SigningConfig(sign=True, key="k", keyring="/ring", passphrase_file="/pass")

        result = HelmPackager(console=MockConsole(), signing=signing).package_chart(
            chart, tmp_path / "out"
        )

        assert isinstance(result, Ok)
        assert fake.commands[0][5:] == [
            "--sign",
            "--key",
            "k",
            "--keyring",
            "/ring",
            "--passphrase-file",
            "/pass",
        ]

    def test_sign_without_provenance_fails(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        chart = _write_chart(tmp_path, "nginx", "1.0.0")
        monkeypatch.setattr(packager_mod, "run_process", FakeHelm(sign_output=False))
        signing = SigningConfig(sign=True, key="k")

        result = HelmPackager(console=MockConsole(), signing=signing).package_chart(
            chart, tmp_path / "out"
        )

        assert isinstance(result, Err)
        assert "no provenance file" in result.error.message

    def test_secrets_not_logged(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        chart = _write_chart(tmp_path, "nginx", "1.0.0")
        monkeypatch.setattr(packager_mod, "run_process", FakeHelm())
        console = MockConsole()
        signing = SigningConfig(sign=True, key="secret-key", passphrase_file="/secret/pass")

        HelmPackager(console=console, signing=signing).package_chart(chart, tmp_path / "out")

        assert "secret-key" not in console.text
        assert "/secret/pass" not in console.text
