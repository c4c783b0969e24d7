"""Chart repository index management."""

from chartrel.index.repo_index import (
    INDEX_FILE_NAME,
    IndexDocument,
    IndexFileError,
    IndexManager,
    load_index,
)
from chartrel.index.semver import SemVer, parse_version, version_sort_key

__all__ = [
    "INDEX_FILE_NAME",
    "IndexDocument",
    "IndexFileError",
    "IndexManager",
    "SemVer",
    "load_index",
    "parse_version",
    "version_sort_key",
]
