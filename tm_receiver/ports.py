"""
Hexagonal interfaces (Ports) for the receiver.

These define the boundary between the demultiplexer core and the device /
process adapters. Keep them small so they're easy to fake in tests.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from .dto import ArtifactKind


class LinkPort(Protocol):
    """
    One synchronous serial session delivering complete frames.
    Implementations guarantee a single receive never returns a partial or
    coalesced frame, and that frames with bad CRC were already discarded.
    """

    def receive(self) -> bytes:
        """
        Block until one frame arrives and return it.
        An empty result means the link is misconfigured. Link faults raise
        OSError; a user interrupt propagates as KeyboardInterrupt.
        """
        ...

    def crc_error_count(self) -> int:
        """Monotonic uint32 count of frames dropped for CRC mismatch."""
        ...

    def assert_control_lines(self) -> None:
        """Raise RTS/DTR for the session."""
        ...

    def deassert_control_lines(self) -> None:
        """Drop RTS/DTR at teardown."""
        ...

    def close(self) -> None:
        ...


class ObserverPort(Protocol):
    """
    Receives paths of artifacts that were just archived (renamed).
    One-way: nothing an observer does feeds back into the loop, and it is
    never handed a staging path.
    """

    def on_archived(self, kind: ArtifactKind, path: Path) -> None:
        ...

    def close(self) -> None:
        """Called once after the session; must not wait on spawned work."""
        ...
