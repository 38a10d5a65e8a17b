"""
tm_receiver: demultiplexes a synchronous-link telemetry stream into
archived images and a rolling XML catalog.

Public API (stable):
- ReceiverConfig           (configuration)
- run_session              (drives one receive session)
- Demultiplexer            (packet -> artifact state machine)
- classify                 (packet classifier)
- LinkPort, ObserverPort   (adapter interfaces)
- SyncLinkDevice           (character-device link)
- DTOs: Packet, PacketKind, DemuxState, ArtifactKind, RunCounters, SessionResult
"""

from __future__ import annotations

# Configuration
from .config import ReceiverConfig

# Orchestration
from .orchestration.demux import Demultiplexer
from .orchestration.runner import run_session

# Classification
from .intake.classifier import classify

# Ports
from .ports import LinkPort, ObserverPort

# Adapters
from .intake.synclink import SyncLinkDevice

# DTOs
from .dto import (
    ArtifactKind,
    DemuxState,
    Packet,
    PacketKind,
    RunCounters,
    SessionResult,
)

__all__ = [
    "ReceiverConfig",
    "run_session",
    "Demultiplexer",
    "classify",
    "LinkPort",
    "ObserverPort",
    "SyncLinkDevice",
    "ArtifactKind",
    "DemuxState",
    "Packet",
    "PacketKind",
    "RunCounters",
    "SessionResult",
]
