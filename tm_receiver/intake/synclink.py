"""
SyncLink character-device adapter (LinkPort implementation).

Wraps a Microgate SyncLink USB/PCI adapter running the N_HDLC line
discipline, where each read() returns exactly one CRC-checked HDLC frame.

Setup performed here:
  1. open the device non-blocking (so DCD is ignored during setup)
  2. install the N_HDLC line discipline
  3. enable the receiver
  4. switch the descriptor back to blocking reads

Clock source, encoding, and CRC polynomial are NOT programmed here; run the
vendor utility (e.g. `mgslutil rs422`) beforehand, as on the flight bench.
"""

from __future__ import annotations

import fcntl
import logging
import os
import struct
import termios
from typing import Optional

from ..errors import LinkError
from ..utils import get_logger

N_HDLC = 13

# linux/synclink.h: _IO('m', n)
_MGSL_MAGIC_IOC = ord("m")
MGSL_IOCRXENABLE = (_MGSL_MAGIC_IOC << 8) | 5
MGSL_IOCGSTATS = (_MGSL_MAGIC_IOC << 8) | 7

# struct mgsl_icount: 23 x __u32; rxcrc is the 20th field
_ICOUNT_FMT = "=23I"
_ICOUNT_RXCRC = 19

_RX_ENABLE_HUNT = 2  # enable receiver and force hunt mode

TIOCSETD = getattr(termios, "TIOCSETD", 0x5423)
TIOCMBIS = getattr(termios, "TIOCMBIS", 0x5416)
TIOCMBIC = getattr(termios, "TIOCMBIC", 0x5417)
TIOCM_DTR = getattr(termios, "TIOCM_DTR", 0x002)
TIOCM_RTS = getattr(termios, "TIOCM_RTS", 0x004)


def rxcrc_from_icount(raw: bytes) -> int:
    """Pull the receive-CRC-error counter out of a packed mgsl_icount."""
    fields = struct.unpack(_ICOUNT_FMT, bytes(raw[: struct.calcsize(_ICOUNT_FMT)]))
    return fields[_ICOUNT_RXCRC]


class SyncLinkDevice:
    """
    Blocking frame reader over a SyncLink tty.

    Use `SyncLinkDevice.open(...)`; the constructor takes an already
    configured descriptor (handy for tests with a pipe).
    """

    def __init__(
        self,
        fd: int,
        *,
        device: str,
        max_frame_size: int = 4194300,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._fd = fd
        self.device = device
        self.max_frame_size = int(max_frame_size)
        self.logger = get_logger(logger)

    @classmethod
    def open(
        cls,
        device: str,
        *,
        max_frame_size: int = 4194300,
        logger: Optional[logging.Logger] = None,
    ) -> "SyncLinkDevice":
        """
        Open and prepare the device for frame reception.

        Raises:
            LinkError: if the device cannot be opened or an ioctl fails.
                The exit code carries the OS errno.
        """
        log = get_logger(logger)
        try:
            fd = os.open(device, os.O_RDWR | os.O_NONBLOCK)
        except OSError as e:
            raise LinkError.from_os_error(f"open {device}", e) from e
        log.info("%s port opened", device)

        try:
            fcntl.ioctl(fd, TIOCSETD, struct.pack("i", N_HDLC))
            fcntl.ioctl(fd, MGSL_IOCRXENABLE, _RX_ENABLE_HUNT)
            flags = fcntl.fcntl(fd, fcntl.F_GETFL)
            fcntl.fcntl(fd, fcntl.F_SETFL, flags & ~os.O_NONBLOCK)
        except OSError as e:
            os.close(fd)
            raise LinkError.from_os_error(f"configure {device}", e) from e

        return cls(fd, device=device, max_frame_size=max_frame_size, logger=log)

    # --- LinkPort ---

    def receive(self) -> bytes:
        return os.read(self._fd, self.max_frame_size)

    def crc_error_count(self) -> int:
        buf = bytearray(struct.calcsize(_ICOUNT_FMT))
        fcntl.ioctl(self._fd, MGSL_IOCGSTATS, buf, True)
        return rxcrc_from_icount(buf)

    def assert_control_lines(self) -> None:
        self.logger.info("Turn on RTS and DTR serial outputs")
        self._modem_lines(TIOCMBIS, "assert")

    def deassert_control_lines(self) -> None:
        self.logger.info("Turn off RTS and DTR serial outputs")
        self._modem_lines(TIOCMBIC, "negate")

    def close(self) -> None:
        if self._fd >= 0:
            os.close(self._fd)
            self._fd = -1

    # --- helpers ---

    def _modem_lines(self, request: int, verb: str) -> None:
        try:
            fcntl.ioctl(self._fd, request, struct.pack("i", TIOCM_RTS | TIOCM_DTR))
        except OSError as e:
            raise LinkError.from_os_error(f"{verb} DTR/RTS", e) from e
