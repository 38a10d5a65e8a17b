"""
Archive store: on-disk lifecycle of the two live artifacts.

Layout
------
  <image_staging_path>                              in-progress image
  <catalog_path>                                    live XML catalog
  <archive_dir>/<sender-name>                       archived images
  <archive_dir>/image_<ts>[_<n>].bin                images with no usable name
  <archive_dir>/xml_archive/imageindex_<ts>.xml     archived catalogs

Archiving is flush -> close -> os.replace -> recreate, so at most one
artifact is ever in flight and an interruption can only cost the artifact
being written, never one that was already archived.

Catalog names use second-resolution UTC timestamps; two catalogs archived
within the same second share a name and the later one replaces the earlier.
"""

from __future__ import annotations

import logging
import os
import time
from pathlib import Path
from typing import BinaryIO, Callable, Optional

from ..config import ReceiverConfig
from ..dto import ArtifactKind
from ..errors import FatalIOError, PartialWriteError
from ..utils import ensure_dirs, get_logger, utc_stamp


class ArchiveStore:
    """
    Owns the fixed staging paths and the rename-to-archive step.

    Parameters
    ----------
    cfg : ReceiverConfig
        Supplies staging and archive locations.
    clock : Callable[[], float]
        Wall-clock source for catalog timestamps (epoch seconds).
    """

    def __init__(
        self,
        cfg: ReceiverConfig,
        *,
        clock: Callable[[], float] = time.time,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.cfg = cfg
        self._clock = clock
        self.logger = get_logger(logger)
        ensure_dirs(
            cfg.archive_dir,
            cfg.catalog_archive_dir,
            Path(cfg.image_staging_path).parent,
            Path(cfg.catalog_path).parent,
        )

    # --- paths ---

    def staging_path(self, kind: ArtifactKind) -> Path:
        if kind is ArtifactKind.IMAGE:
            return Path(self.cfg.image_staging_path)
        return Path(self.cfg.catalog_path)

    def archival_path(self, kind: ArtifactKind, name: Optional[str] = None) -> Path:
        """
        Where an artifact of `kind` is archived.

        Images keep the sender's name unless it is missing, collides with the
        catalog subdirectory, or names an existing directory; those get a
        generated `image_<ts>[_<n>].bin` that never replaces an archive.
        """
        if kind is ArtifactKind.IMAGE:
            if name and name != self.cfg.catalog_archive_subdir:
                dest = self.cfg.archive_dir / name
                if not dest.is_dir():
                    return dest
            if name:
                self.logger.warning("Image name %r is a directory in the archive; renaming", name)
            return self._generated_image_path()
        return self.cfg.catalog_archive_dir / f"imageindex_{utc_stamp(self._clock())}.xml"

    def _generated_image_path(self) -> Path:
        stem = f"image_{utc_stamp(self._clock())}"
        dest = self.cfg.archive_dir / f"{stem}.bin"
        n = 0
        while dest.exists():
            n += 1
            dest = self.cfg.archive_dir / f"{stem}_{n}.bin"
        return dest

    # --- lifecycle ---

    def open_staging(self, kind: ArtifactKind) -> BinaryIO:
        """Create (or truncate) the live file for `kind` and return a binary handle."""
        path = self.staging_path(kind)
        try:
            return open(path, "wb")
        except OSError as e:
            raise FatalIOError.from_os_error("fopen", path, e) from e

    def archive(
        self,
        kind: ArtifactKind,
        handle: Optional[BinaryIO] = None,
        name: Optional[str] = None,
    ) -> Path:
        """
        Move the live artifact into the archive.

        The handle (if any) is flushed and closed first. For images an empty
        staging file is recreated immediately; the catalog staging file is
        recreated by the catalog writer, which must write a valid skeleton.

        Returns the archival path.
        """
        src = self.staging_path(kind)
        dest = self.archival_path(kind, name)

        if handle is not None and not handle.closed:
            try:
                handle.flush()
                handle.close()
            except OSError as e:
                raise FatalIOError.from_os_error("flush", src, e) from e

        try:
            os.replace(src, dest)
        except OSError as e:
            raise FatalIOError.from_os_error("rename", src, e) from e

        if kind is ArtifactKind.IMAGE:
            self.open_staging(kind).close()

        self.logger.info("Archived %s %s -> %s", kind.value, src, dest)
        return dest

    def recover_existing(self, kind: ArtifactKind) -> Optional[Path]:
        """
        Archive a live file left behind by a previous run.

        Only the catalog is recovered: the image staging file is truncated at
        startup. Returns the archival path, or None if nothing was found.
        """
        if kind is not ArtifactKind.CATALOG:
            return None
        src = self.staging_path(kind)
        if not src.exists():
            return None
        self.logger.info("Found catalog from a previous run at %s", src)
        return self.archive(kind)


class ImageBuffer:
    """
    The single in-progress image.

    Every append is flushed before returning so a crash loses at most the
    fragment being written.
    """

    def __init__(self, store: ArchiveStore) -> None:
        self.store = store
        self.path = store.staging_path(ArtifactKind.IMAGE)
        self.bytes_written = 0
        self.fragment_count = 0
        self._fh: Optional[BinaryIO] = None

    @property
    def is_open(self) -> bool:
        return self._fh is not None and not self._fh.closed

    def open(self) -> None:
        self._fh = self.store.open_staging(ArtifactKind.IMAGE)
        self.bytes_written = 0
        self.fragment_count = 0

    def append(self, data: bytes) -> int:
        if not self.is_open:
            self.open()
        assert self._fh is not None
        try:
            count = self._fh.write(data)
            self._fh.flush()
        except OSError as e:
            raise FatalIOError.from_os_error("fwrite", self.path, e) from e
        if count != len(data):
            raise PartialWriteError(self.path, len(data), count or 0)
        self.bytes_written += count
        self.fragment_count += 1
        return count

    def rotate(self, name: Optional[str]) -> Path:
        """Archive the current image as `name` (generated when None) and start a fresh one."""
        dest = self.store.archive(ArtifactKind.IMAGE, self._fh, name=name)
        self.open()
        return dest

    def close(self) -> None:
        if self.is_open:
            assert self._fh is not None
            try:
                self._fh.flush()
            finally:
                self._fh.close()
        self._fh = None
