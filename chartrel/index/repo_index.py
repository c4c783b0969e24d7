"""Chart repository index (``index.yaml``).

The index is the catalogue downstream clients read to discover charts. It
is append-only: an entry per (chart name, version) is written once and never
replaced. Every change rewrites the whole document with one atomic write.

Document shape:

    apiVersion: v1
    entries:
      <chart name>:
      - apiVersion: v2
        name: <chart name>
        version: 1.2.3
        created: "2026-01-01T00:00:00.000000Z"
        digest: <sha256 hex of the archive>
        urls:
        - https://.../<chart name>-1.2.3.tgz
        ...  # the rest of Chart.yaml
    generated: "2026-01-01T00:00:00.000000Z"
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

import yaml

from chartrel.charts.model import ChartMetadata
from chartrel.core.result import Err, Ok, Result
from chartrel.core.structured import StrDict, as_obj_list, as_str_dict, get_str, get_table
from chartrel.index.semver import version_sort_key
from chartrel.output.console import ConsoleProtocol
from chartrel.platform.files import atomic_write_text, sha256_file

__all__ = [
    "INDEX_API_VERSION",
    "INDEX_FILE_NAME",
    "IndexDocument",
    "IndexFileError",
    "IndexManager",
    "load_index",
    "utc_timestamp",
]

INDEX_FILE_NAME = "index.yaml"
INDEX_API_VERSION = "v1"


@dataclass(frozen=True, slots=True)
class IndexFileError:
    message: str
    path: Path | None = None


def utc_timestamp() -> str:
    return datetime.now(UTC).isoformat(timespec="microseconds").replace("+00:00", "Z")


def _url_join(base_url: str, filename: str) -> str:
    if not base_url:
        return filename
    return f"{base_url.rstrip('/')}/{filename}"


@dataclass
class IndexDocument:
    """In-memory index; mutated only by the release loop of a single run."""

    generated: str
    api_version: str = INDEX_API_VERSION
    entries: dict[str, list[StrDict]] = field(default_factory=dict)

    @classmethod
    def empty(cls, *, generated: str) -> IndexDocument:
        return cls(generated=generated)

    @classmethod
    def from_dict(cls, data: StrDict) -> Result[IndexDocument, str]:
        entries: dict[str, list[StrDict]] = {}
        for name, versions_obj in (get_table(data, "entries") or {}).items():
            versions = as_obj_list(versions_obj)
            if versions is None:
                return Err(f"entries.{name} must be a list")
            parsed: list[StrDict] = []
            for item in versions:
                entry = as_str_dict(item)
                if entry is None:
                    return Err(f"entries.{name} must contain mappings")
                parsed.append(entry)
            entries[name] = parsed

        return Ok(
            cls(
                generated=get_str(data, "generated") or "",
                api_version=get_str(data, "apiVersion") or INDEX_API_VERSION,
                entries=entries,
            )
        )

    def has(self, name: str, version: str) -> bool:
        return any(get_str(e, "version") == version for e in self.entries.get(name, []))

    def add(
        self,
        metadata: ChartMetadata,
        *,
        filename: str,
        base_url: str,
        digest: str,
        created: str,
    ) -> None:
        entry: StrDict = dict(metadata.raw)
        entry["name"] = metadata.name
        entry["version"] = metadata.version
        entry.setdefault("apiVersion", INDEX_API_VERSION)
        entry["urls"] = [_url_join(base_url, filename)]
        entry["digest"] = digest
        entry["created"] = created
        self.entries.setdefault(metadata.name, []).append(entry)

    def sort_entries(self) -> None:
        """Order every chart's entries by version, newest first."""
        for versions in self.entries.values():
            versions.sort(key=lambda e: version_sort_key(get_str(e, "version") or ""), reverse=True)

    def to_dict(self) -> StrDict:
        return {
            "apiVersion": self.api_version,
            "entries": {name: self.entries[name] for name in sorted(self.entries)},
            "generated": self.generated,
        }

    def to_yaml(self) -> str:
        return yaml.safe_dump(self.to_dict(), sort_keys=True, default_flow_style=False)


def load_index(path: Path) -> Result[IndexDocument | None, IndexFileError]:
    """Load ``path``; Ok(None) when the file does not exist yet."""
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return Ok(None)
    except (OSError, UnicodeDecodeError) as e:
        return Err(IndexFileError(f"read index file {path}: {e}", path=path))

    try:
        data_obj: object = yaml.safe_load(text)
    except yaml.YAMLError as e:
        return Err(IndexFileError(f"load index file {path}: {e}", path=path))

    if data_obj is None:
        data_obj = {}
    data = as_str_dict(data_obj)
    if data is None:
        return Err(IndexFileError(f"load index file {path}: root must be a mapping", path=path))

    doc = IndexDocument.from_dict(data)
    if isinstance(doc, Err):
        return Err(IndexFileError(f"load index file {path}: {doc.error}", path=path))
    return Ok(doc.value)


class IndexManager:
    """Idempotent inserts into ``index.yaml``."""

    def __init__(
        self,
        *,
        console: ConsoleProtocol,
        clock: Callable[[], str] = utc_timestamp,
    ) -> None:
        self._console = console
        self._clock = clock

    def update_index(
        self,
        index_path: Path,
        archive_path: Path,
        metadata: ChartMetadata,
        download_url: str,
    ) -> Result[bool, IndexFileError]:
        """Add the chart to the index at ``index_path``.

        Returns:
            Ok(True) if the index was rewritten, Ok(False) if the
            (name, version) entry already existed and nothing was touched.
        """
        loaded = load_index(index_path)
        if isinstance(loaded, Err):
            return loaded

        doc = loaded.value
        if doc is None:
            self._console.info(f"creating new index file, {index_path} does not exist")
            doc = IndexDocument.empty(generated=self._clock())
        else:
            self._console.info(f"loaded {index_path} index file")

        if doc.has(metadata.name, metadata.version):
            self._console.info(
                f"chart {metadata.name} {metadata.version} already exists in the helm index"
            )
            return Ok(False)

        try:
            digest = sha256_file(archive_path)
        except OSError as e:
            return Err(IndexFileError(f"calculate chart sha256 digest: {e}", path=archive_path))

        filename = archive_path.name
        base_url = download_url.removesuffix(filename)
        now = self._clock()
        doc.add(metadata, filename=filename, base_url=base_url, digest=digest, created=now)
        doc.sort_entries()
        doc.generated = now

        try:
            content = doc.to_yaml()
        except yaml.YAMLError as e:
            return Err(IndexFileError(f"serialize index file {index_path}: {e}", path=index_path))

        try:
            atomic_write_text(index_path, content)
        except OSError as e:
            return Err(IndexFileError(f"write index file {index_path}: {e}", path=index_path))

        self._console.info(f"added {metadata.name} {metadata.version} to {index_path}")
        return Ok(True)
