"""
XML catalog writer.

The live catalog is kept well-formed at every rest point: the closing root
element is always on disk and the write cursor waits just in front of it.
Each entry is written together with a fresh copy of the closing tag, then
the cursor steps back over it. A reader opening the file between two
appends always sees a complete document:

    <?xml version="1.0" encoding="ASCII" standalone="yes"?>
    <CATALOG>

    <ROEIMAGE>...</ROEIMAGE>
    </CATALOG>
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import BinaryIO, Optional

from ..dto import ArtifactKind
from ..errors import FatalIOError, PartialWriteError
from ..utils import get_logger
from .archive import ArchiveStore

XML_HEADER = b'<?xml version="1.0" encoding="ASCII" standalone="yes"?>\n<CATALOG>\n\n'
XML_FOOTER = b"</CATALOG>\n"


class CatalogWriter:
    """
    Appends catalog fragments between a fixed header and footer.

    Attributes:
        path: Fixed location of the live catalog.
        entry_count: Entries appended since the catalog was created.
        sequence_number: Number of catalogs archived by this writer.
    """

    def __init__(self, store: ArchiveStore, logger: Optional[logging.Logger] = None) -> None:
        self.store = store
        self.logger = get_logger(logger)
        self.path: Path = store.staging_path(ArtifactKind.CATALOG)
        self.entry_count = 0
        self.sequence_number = 0
        self._fh: Optional[BinaryIO] = None

    @property
    def is_open(self) -> bool:
        return self._fh is not None and not self._fh.closed

    def has_round(self) -> bool:
        """True if a catalog from an earlier round is sitting at the live path."""
        return self.is_open or self.path.exists()

    def open_or_create(self) -> None:
        """Create a fresh catalog skeleton and park the cursor before the footer."""
        fh = self.store.open_staging(ArtifactKind.CATALOG)
        self._fh = fh
        self.entry_count = 0
        self._write(XML_HEADER + XML_FOOTER)
        self._seek_before_footer(os.SEEK_END)
        self.logger.info("Created catalog %s", self.path)

    def append_entry(self, fragment: bytes) -> None:
        """Write one fragment + newline at the cursor, keeping the footer after it."""
        if not self.is_open:
            self.open_or_create()
        self._write(fragment + b"\n" + XML_FOOTER)
        self._seek_before_footer(os.SEEK_CUR)
        self.entry_count += 1

    def close_and_finalize(self) -> None:
        """Write the closing root element as the final bytes and close the file."""
        if not self.is_open:
            return
        assert self._fh is not None
        self._write(XML_FOOTER)
        try:
            self._fh.truncate()
            self._fh.flush()
        except OSError as e:
            raise FatalIOError.from_os_error("flush", self.path, e) from e
        finally:
            self._fh.close()
            self._fh = None
        self.logger.info("Closed catalog %s (%d entries)", self.path, self.entry_count)

    def rotate(self) -> Optional[Path]:
        """
        Finish the previous catalog round (if any) and archive it, then
        create a fresh catalog. Returns the archival path of the old round.
        """
        archived: Optional[Path] = None
        if self.has_round():
            self.close_and_finalize()
            archived = self.store.archive(ArtifactKind.CATALOG)
            self.sequence_number += 1
        self.open_or_create()
        return archived

    def close(self) -> None:
        """Release the handle without finalizing; the file is already valid at rest."""
        if self.is_open:
            assert self._fh is not None
            self._fh.close()
        self._fh = None

    # --- helpers ---

    def _write(self, data: bytes) -> None:
        assert self._fh is not None
        try:
            count = self._fh.write(data)
            self._fh.flush()
        except OSError as e:
            raise FatalIOError.from_os_error("fwrite", self.path, e) from e
        if count != len(data):
            raise PartialWriteError(self.path, len(data), count or 0)

    def _seek_before_footer(self, whence: int) -> None:
        assert self._fh is not None
        self._fh.seek(-len(XML_FOOTER), whence)
