from __future__ import annotations

import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from chartrel.core.structured import StrDict

PackageErrorKind = Literal["discovery_failed", "helm_missing", "packaging_failed"]


@dataclass(frozen=True, slots=True)
class PackageError:
    kind: PackageErrorKind
    message: str
    chart_dir: Path | None = None


@dataclass(frozen=True, slots=True)
class ChartMetadata:
    """Parsed ``Chart.yaml`` of a packaged chart."""

    name: str
    version: str
    raw: StrDict = field(default_factory=dict, compare=False, repr=False)


@dataclass(frozen=True, slots=True)
class PackagedChart:
    """A chart archive produced for this run."""

    path: Path
    metadata: ChartMetadata

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def version(self) -> str:
        return self.metadata.version


@dataclass(frozen=True, slots=True)
class PackagedCharts:
    """All archives of a run, living under one temporary output directory."""

    charts: tuple[PackagedChart, ...]
    out_dir: Path

    def cleanup(self) -> None:
        """Delete every archive (and signature) produced for this run."""
        shutil.rmtree(self.out_dir, ignore_errors=True)
