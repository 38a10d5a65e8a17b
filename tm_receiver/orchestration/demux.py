"""
Demultiplexer: the receive-side state machine.

States
------
AWAITING_FIRST_PACKET / WRITING_IMAGE
    Committed to the image stream. Fragments append to the image buffer.
AWAITING_CATALOG_OR_IMAGE
    Entered after every image terminator. The next fragment's content
    decides: a `<ROEIMAGE>` prefix starts a catalog round, anything else
    starts the next image.
WRITING_CATALOG
    Fragments append to the XML catalog until a catalog terminator.

After a catalog terminator the simple variant waits in
AWAITING_CATALOG_OR_IMAGE; the recovery variant (default) goes back to
WRITING_IMAGE. In both, the closed catalog is archived when the next
catalog round starts, or by startup recovery on the next run.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable, Optional

from ..config import ReceiverConfig
from ..dto import ArtifactKind, DemuxState, Packet, PacketKind, RunCounters
from ..intake.classifier import classify, image_name_from_terminator
from ..pipeline.observer import NullObserver
from ..ports import ObserverPort
from ..store.archive import ArchiveStore, ImageBuffer
from ..store.catalog import CatalogWriter
from ..utils import get_logger


class Demultiplexer:
    """
    Dispatches classified packets to the image buffer and catalog writer.

    Parameters
    ----------
    cfg : ReceiverConfig
        Marker lengths, paths, and the recovery_mode switch.
    store : ArchiveStore, optional
        Built from `cfg` if not given.
    observer : ObserverPort, optional
        Told about every archived artifact.
    counters : RunCounters, optional
        Shared with the health monitor; a fresh instance if not given.
    """

    def __init__(
        self,
        cfg: ReceiverConfig,
        *,
        store: Optional[ArchiveStore] = None,
        observer: Optional[ObserverPort] = None,
        counters: Optional[RunCounters] = None,
        clock: Callable[[], float] = time.time,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.cfg = cfg
        self.logger = get_logger(logger)
        self.store = store or ArchiveStore(cfg, clock=clock, logger=self.logger)
        self.observer: ObserverPort = observer or NullObserver()
        self.counters = counters if counters is not None else RunCounters()
        self.image = ImageBuffer(self.store)
        self.catalog = CatalogWriter(self.store, logger=self.logger)
        self.state = (
            DemuxState.WRITING_IMAGE if cfg.recovery_mode else DemuxState.AWAITING_FIRST_PACKET
        )

    # --- lifecycle ---

    def start(self) -> Optional[Path]:
        """
        Prepare the live files: archive a catalog left by a previous run and
        truncate the image staging file. Returns the recovered catalog path.
        """
        recovered = self.store.recover_existing(ArtifactKind.CATALOG)
        if recovered is not None:
            self.catalog.sequence_number += 1
            self.counters.catalogs_archived += 1
            self.observer.on_archived(ArtifactKind.CATALOG, recovered)
        self.image.open()
        return recovered

    def close(self) -> None:
        """Release both live files; everything on disk is already flushed."""
        try:
            self.image.close()
        finally:
            self.catalog.close()

    # --- dispatch ---

    def feed(self, packet: Packet) -> PacketKind:
        """Classify one packet, act on it, and return its kind."""
        kind = classify(packet.payload, packet.length, self.state, self.cfg)
        self.counters.packets_received += 1
        self.counters.bytes_received += packet.length

        if kind is PacketKind.IMAGE_FRAGMENT:
            self._on_image_fragment(packet)
        elif kind is PacketKind.CATALOG_FRAGMENT:
            self._on_catalog_fragment(packet)
        elif kind is PacketKind.IMAGE_TERMINATOR:
            self._on_image_terminator(packet)
        else:
            self._on_catalog_terminator()
        return kind

    def _on_image_fragment(self, packet: Packet) -> None:
        data = packet.data
        self.image.append(data)
        self.counters.record_fragment(len(data))
        self.state = DemuxState.WRITING_IMAGE
        self.logger.debug(
            "received %d bytes       %d", packet.length, self.counters.packet_index_in_current_artifact
        )

    def _on_catalog_fragment(self, packet: Packet) -> None:
        if self.state is not DemuxState.WRITING_CATALOG:
            archived = self.catalog.rotate()
            if archived is not None:
                self.counters.catalogs_archived += 1
                self.observer.on_archived(ArtifactKind.CATALOG, archived)
            self.counters.reset_artifact()
            self.state = DemuxState.WRITING_CATALOG
        data = packet.data
        self.catalog.append_entry(data)
        self.counters.record_fragment(len(data))

    def _on_image_terminator(self, packet: Packet) -> None:
        if self.state is DemuxState.WRITING_CATALOG:
            self.logger.warning("Image terminator while writing catalog; closing catalog first")
            self.catalog.close_and_finalize()

        name = image_name_from_terminator(packet.payload, packet.length)
        nbytes = self.image.bytes_written
        dest = self.image.rotate(name)
        self.counters.images_archived += 1
        self.logger.info("Finished image %s (%d bytes)", dest.name, nbytes)
        self.counters.reset_artifact()
        self.state = DemuxState.AWAITING_CATALOG_OR_IMAGE
        self.observer.on_archived(ArtifactKind.IMAGE, dest)

    def _on_catalog_terminator(self) -> None:
        if self.state is not DemuxState.WRITING_CATALOG:
            self.logger.warning("Catalog terminator with no catalog open; ignored")
            self.counters.reset_artifact()
            return
        self.catalog.close_and_finalize()
        self.counters.reset_artifact()
        self.state = (
            DemuxState.WRITING_IMAGE if self.cfg.recovery_mode else DemuxState.AWAITING_CATALOG_OR_IMAGE
        )
