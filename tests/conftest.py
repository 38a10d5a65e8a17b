from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Union

import pytest

from tm_receiver.config import ReceiverConfig

FIXED_TS = 1_400_000_000.0  # 2014-05-13 16:53:20 UTC
CATALOG_TERMINATOR = b"END_OF_CATALOG"  # 14 bytes


def image_terminator(name: str, length: int = 16) -> bytes:
    return name.encode("ascii").ljust(length, b"\x00")


def catalog_entry(name: str) -> bytes:
    return f"<ROEIMAGE><NAME>{name}</NAME><SIZE>150</SIZE></ROEIMAGE>".encode("ascii")


class ScriptedLink:
    """
    In-memory LinkPort. Frames are returned in order; an exception instance in
    the script is raised instead. When the script runs out the link raises
    KeyboardInterrupt, like a user pressing Ctrl-C on an idle line.
    """

    def __init__(
        self,
        frames: Iterable[Union[bytes, BaseException]],
        crc_counts: Optional[Sequence[int]] = None,
    ) -> None:
        self._frames: List[Union[bytes, BaseException]] = list(frames)
        self._crc: List[int] = list(crc_counts or [])
        self._last_crc = 0
        self.asserted = False
        self.deasserted = False
        self.closed = False
        self.reads = 0

    def receive(self) -> bytes:
        self.reads += 1
        if not self._frames:
            raise KeyboardInterrupt
        item = self._frames.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    def crc_error_count(self) -> int:
        if self._crc:
            self._last_crc = self._crc.pop(0)
        return self._last_crc

    def assert_control_lines(self) -> None:
        self.asserted = True

    def deassert_control_lines(self) -> None:
        self.deasserted = True

    def close(self) -> None:
        self.closed = True


def make_config(root: Path, **overrides) -> ReceiverConfig:
    values = dict(
        archive_dir=root / "images",
        image_staging_path=root / "image.staging",
        catalog_path=root / "imageindex.xml",
        log_file=None,
    )
    values.update(overrides)
    return ReceiverConfig(**values)


@pytest.fixture
def cfg(tmp_path: Path) -> ReceiverConfig:
    return make_config(tmp_path)


@pytest.fixture
def simple_cfg(tmp_path: Path) -> ReceiverConfig:
    return make_config(tmp_path, recovery_mode=False)


@pytest.fixture
def clock():
    return lambda: FIXED_TS
