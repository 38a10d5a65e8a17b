"""
Data Transfer Objects (DTOs) used across the receiver.

These are intentionally small and independent of any device or file I/O.
Only `RunCounters` is mutable; everything else is a value.
"""

from __future__ import annotations

import enum
from dataclasses import asdict, dataclass, field
from typing import Dict


# === Classification ===
class PacketKind(enum.Enum):
    """What a single link frame means to the demultiplexer."""

    IMAGE_TERMINATOR = "image_terminator"
    CATALOG_TERMINATOR = "catalog_terminator"
    CATALOG_FRAGMENT = "catalog_fragment"
    IMAGE_FRAGMENT = "image_fragment"

    @property
    def is_terminator(self) -> bool:
        return self in (PacketKind.IMAGE_TERMINATOR, PacketKind.CATALOG_TERMINATOR)


class DemuxState(enum.Enum):
    """Finite state of the demultiplexer loop."""

    AWAITING_FIRST_PACKET = "awaiting_first_packet"
    WRITING_IMAGE = "writing_image"
    AWAITING_CATALOG_OR_IMAGE = "awaiting_catalog_or_image"  # next fragment's content decides
    WRITING_CATALOG = "writing_catalog"


class ArtifactKind(enum.Enum):
    """The two live artifacts the archive store manages."""

    IMAGE = "image"
    CATALOG = "catalog"


# === Intake ===
@dataclass(frozen=True)
class Packet:
    """One link-layer frame as returned by a single receive call."""
    payload: bytes
    length: int              # byte count reported by the link

    @classmethod
    def from_frame(cls, frame: bytes) -> "Packet":
        return cls(payload=bytes(frame), length=len(frame))

    @property
    def data(self) -> bytes:
        """Payload bytes bounded by the declared length."""
        return self.payload[: self.length]


# === Run bookkeeping (mutable, one per process) ===
@dataclass
class RunCounters:
    """Link and artifact counters threaded through the demultiplexer."""
    start_time: float = 0.0
    last_crc_value: int = 0                      # uint32 as reported by the link
    total_bytes_in_current_artifact: int = 0
    packet_index_in_current_artifact: int = 0

    # Monotonic for the process lifetime
    packets_received: int = 0
    bytes_received: int = 0
    images_archived: int = 0
    catalogs_archived: int = 0
    crc_errors: int = 0

    def record_fragment(self, nbytes: int) -> None:
        self.total_bytes_in_current_artifact += nbytes
        self.packet_index_in_current_artifact += 1

    def reset_artifact(self) -> None:
        """Clear the per-artifact fields; called on every terminator."""
        self.total_bytes_in_current_artifact = 0
        self.packet_index_in_current_artifact = 0

    def snapshot(self) -> Dict[str, float]:
        return dict(asdict(self))


# === Final outcome of one receive session ===
@dataclass(frozen=True)
class SessionResult:
    exit_code: int                 # 0 on clean shutdown, errno or 1 otherwise
    reason: str                    # human-readable cause of loop exit
    elapsed_s: float
    counters: Dict[str, float] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.exit_code == 0
