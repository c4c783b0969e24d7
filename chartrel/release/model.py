from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from chartrel.charts.model import PackagedChart

# "indexed": the release was published by this run but index.yaml already
# listed the chart version, so nothing was added to the index.
ChartStatus = Literal["released", "indexed", "exists", "dry_run"]


@dataclass(frozen=True, slots=True)
class WorktreeHandle:
    """Private checkout of the pages branch, owned by one run."""

    path: Path
    remote: str
    branch: str

    def file(self, name: str) -> Path:
        return self.path / name


@dataclass(frozen=True, slots=True)
class ChartOutcome:
    """What the release loop did with one packaged chart."""

    chart: PackagedChart
    tag: str
    status: ChartStatus
    index_changed: bool = False

    def summary(self) -> dict[str, str]:
        return {"chart": self.chart.name, "version": self.chart.version, "tag": self.tag}


@dataclass(frozen=True, slots=True)
class RunResult:
    """Outcome of a whole run, folded from the per-chart outcomes."""

    outcomes: tuple[ChartOutcome, ...] = ()
    pushed: bool = False

    @property
    def index_changed(self) -> bool:
        return any(o.index_changed for o in self.outcomes)

    @property
    def released(self) -> tuple[ChartOutcome, ...]:
        return tuple(o for o in self.outcomes if o.status == "released")

    def summary(self) -> list[dict[str, str]]:
        """One record per chart released by this run."""
        return [o.summary() for o in self.released]
