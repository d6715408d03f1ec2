"""Resource discovery — locate source files for an ingestion run."""

from __future__ import annotations

import glob
from dataclasses import dataclass
from pathlib import Path
from typing import IO


@dataclass(frozen=True)
class Resource:
    """A discovered source file.

    Attributes
    ----------
    path:
        Location of the file on disk.
    """

    path: Path

    @property
    def filename(self) -> str:
        return self.path.name

    @property
    def uri(self) -> str:
        return self.path.resolve().as_uri()

    @property
    def extension(self) -> str:
        """Lower-cased extension without the dot (``""`` when absent)."""
        return self.path.suffix[1:].lower()

    @property
    def category(self) -> str:
        """Name of the directory that directly contains the file."""
        return self.path.parent.name

    @property
    def source_id(self) -> str:
        """Stable identity used by the ingestion ledger: ``category/filename``."""
        return f"{self.category}/{self.filename}"

    def open_text(self, encoding: str = "utf-8") -> IO[str]:
        # newline="" lets the csv module handle quoted line breaks.
        return self.path.open("r", encoding=encoding, newline="")

    def open_binary(self) -> IO[bytes]:
        return self.path.open("rb")


def discover_resources(pattern: str | Path) -> list[Resource]:
    """Return every file matching the glob *pattern*, sorted by path.

    Parameters
    ----------
    pattern:
        A glob such as ``"data/simv/**/*.pdf"``; ``**`` matches nested
        directories.

    Returns
    -------
    list[Resource]
        Matching regular files (directories are ignored).
    """
    matches = sorted(glob.glob(str(pattern), recursive=True))
    return [Resource(Path(m)) for m in matches if Path(m).is_file()]
