"""
Read-only index over the archive directory.

Only renamed (archived) artifacts are ever listed or opened; the receiver's
staging files live outside the archive and are never touched here.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional


@dataclass(frozen=True)
class ArchiveIndex:
    archive_dir: Path
    catalog_subdir: str = "xml_archive"
    max_listing: int = 500

    @property
    def catalog_dir(self) -> Path:
        return self.archive_dir / self.catalog_subdir

    def images(self) -> List[Dict[str, object]]:
        """Archived images, newest first."""
        if not self.archive_dir.is_dir():
            return []
        files = [p for p in self.archive_dir.iterdir() if p.is_file()]
        return [_describe(p) for p in _newest_first(files)[: self.max_listing]]

    def catalogs(self) -> List[Dict[str, object]]:
        """Archived catalogs, newest first (names sort by timestamp)."""
        if not self.catalog_dir.is_dir():
            return []
        files = sorted(self.catalog_dir.glob("imageindex_*.xml"), reverse=True)
        return [_describe(p) for p in files[: self.max_listing]]

    def latest_catalog(self) -> Optional[Path]:
        files = sorted(self.catalog_dir.glob("imageindex_*.xml")) if self.catalog_dir.is_dir() else []
        return files[-1] if files else None

    @staticmethod
    def catalog_entries(path: Path) -> List[Dict[str, object]]:
        """
        Flatten each catalog entry into {"tag": ..., "fields": {child: text}}.

        Raises:
            ET.ParseError: if the file is not well-formed XML.
        """
        root = ET.parse(path).getroot()
        entries: List[Dict[str, object]] = []
        for el in root:
            fields = {child.tag: (child.text or "").strip() for child in el}
            entries.append({"tag": el.tag, "text": (el.text or "").strip(), "fields": fields})
        return entries


# === Helpers ===


def _newest_first(paths: List[Path]) -> List[Path]:
    return sorted(paths, key=lambda p: p.stat().st_mtime, reverse=True)


def _describe(p: Path) -> Dict[str, object]:
    st = p.stat()
    return {"name": p.name, "size": st.st_size, "mtime": st.st_mtime}
