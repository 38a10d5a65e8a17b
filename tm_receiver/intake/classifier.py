"""
Packet classifier: decides what a single link frame means.

- Frame length is checked first. The two terminator lengths are reserved
  markers and always win, whatever the payload looks like.
- Content is sniffed ONLY while the stream is ambiguous (right after an
  image terminator). Once committed to a stream, fragments are not
  inspected, so image bytes that happen to start with the catalog prefix
  stay image bytes.
"""

from __future__ import annotations

import os
from typing import Optional

from ..config import ReceiverConfig
from ..dto import DemuxState, PacketKind

CATALOG_PREFIX = b"<ROEIMAGE>"
IMAGE_TERMINATOR_LEN = 16
CATALOG_TERMINATOR_LEN = 14

_UNUSABLE_NAMES = (b"", b".", b"..")
_SEPARATORS = (b"/", b"\\")


def classify(
    payload: bytes,
    length: int,
    state: DemuxState,
    cfg: Optional[ReceiverConfig] = None,
) -> PacketKind:
    """
    Classify one frame.

    Parameters
    ----------
    payload : bytes
        Frame bytes as received.
    length : int
        Byte count reported by the link for this frame.
    state : DemuxState
        Current demultiplexer state; decides whether content is sniffed.
    cfg : ReceiverConfig, optional
        Supplies marker lengths and the catalog prefix; module defaults otherwise.
    """
    image_term_len = cfg.image_terminator_len if cfg is not None else IMAGE_TERMINATOR_LEN
    catalog_term_len = cfg.catalog_terminator_len if cfg is not None else CATALOG_TERMINATOR_LEN
    prefix = cfg.catalog_prefix if cfg is not None else CATALOG_PREFIX

    # Length markers take priority over any content sniffing
    if length == image_term_len:
        return PacketKind.IMAGE_TERMINATOR
    if length == catalog_term_len:
        return PacketKind.CATALOG_TERMINATOR

    if state is DemuxState.AWAITING_CATALOG_OR_IMAGE:
        if payload[: len(prefix)] == prefix:
            return PacketKind.CATALOG_FRAGMENT
        return PacketKind.IMAGE_FRAGMENT

    if state is DemuxState.WRITING_CATALOG:
        return PacketKind.CATALOG_FRAGMENT

    # AWAITING_FIRST_PACKET / WRITING_IMAGE are committed to the image stream
    return PacketKind.IMAGE_FRAGMENT


def image_name_from_terminator(payload: bytes, length: int) -> Optional[str]:
    """
    Extract the archival filename the sender put in an image terminator.

    The name runs up to the first NUL byte or the frame length and is kept
    byte-for-byte. Returns None when it is not a single path component
    (empty, `.`/`..`, or containing a separator); the archive store then
    picks a timestamped name.
    """
    raw = payload[:length].split(b"\x00", 1)[0]
    if raw in _UNUSABLE_NAMES or any(sep in raw for sep in _SEPARATORS):
        return None
    return os.fsdecode(raw)
