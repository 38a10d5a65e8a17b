from __future__ import annotations

import errno
import os
import struct

import pytest

from tm_receiver.errors import LinkError
from tm_receiver.intake.synclink import (
    MGSL_IOCGSTATS,
    MGSL_IOCRXENABLE,
    SyncLinkDevice,
    rxcrc_from_icount,
)


def test_ioctl_numbers_match_driver_header():
    assert MGSL_IOCRXENABLE == 0x6D05
    assert MGSL_IOCGSTATS == 0x6D07


def test_rxcrc_is_twentieth_counter():
    fields = list(range(100, 123))
    raw = struct.pack("=23I", *fields)
    assert rxcrc_from_icount(raw) == 119


def test_open_missing_device_carries_errno(tmp_path):
    with pytest.raises(LinkError) as exc:
        SyncLinkDevice.open(str(tmp_path / "ttyNOPE"))
    assert exc.value.exit_code == errno.ENOENT


def test_receive_reads_one_chunk_per_call():
    r, w = os.pipe()
    try:
        dev = SyncLinkDevice(r, device="pipe", max_frame_size=64)
        os.write(w, b"frame-one")
        assert dev.receive() == b"frame-one"
        os.close(w)
        w = -1
        assert dev.receive() == b""
        dev.close()
        dev.close()  # idempotent
    finally:
        if w >= 0:
            os.close(w)
