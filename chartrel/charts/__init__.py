"""Chart discovery and packaging."""

from chartrel.charts.model import (
    ChartMetadata,
    PackagedChart,
    PackagedCharts,
    PackageError,
)
from chartrel.charts.packager import HelmPackager, find_chart_dirs, read_archive_metadata

__all__ = [
    "ChartMetadata",
    "HelmPackager",
    "PackageError",
    "PackagedChart",
    "PackagedCharts",
    "find_chart_dirs",
    "read_archive_metadata",
]
