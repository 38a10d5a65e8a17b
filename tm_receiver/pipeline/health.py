"""
Link health monitor.

Polls the link's CRC-error counter once per loop iteration and keeps the
session clock. A changed counter means the hardware dropped a frame; that is
logged and counted, never fatal.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from ..dto import RunCounters
from ..ports import LinkPort
from ..utils import get_logger

_UINT32 = 0xFFFFFFFF


class LinkHealthMonitor:
    """
    Usage:
        mon = LinkHealthMonitor(link, counters)
        mon.start()
        delta = mon.sample()      # each iteration
        mon.elapsed()             # on exit
    """

    def __init__(
        self,
        link: LinkPort,
        counters: RunCounters,
        *,
        clock: Callable[[], float] = time.monotonic,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._link = link
        self._counters = counters
        self._clock = clock
        self.logger = get_logger(logger)
        self._t0: Optional[float] = None

    def start(self) -> None:
        """Take the CRC baseline and start the session clock."""
        self._t0 = self._clock()
        self._counters.start_time = time.time()
        self._counters.last_crc_value = int(self._link.crc_error_count()) & _UINT32

    def sample(self) -> int:
        """Return CRC errors seen since the previous sample (uint32 wraparound safe)."""
        current = int(self._link.crc_error_count()) & _UINT32
        delta = (current - self._counters.last_crc_value) & _UINT32
        if delta:
            self._counters.crc_errors += delta
            self.logger.warning(
                "CRC Failed! %d frame(s) dropped (link counter %d)", delta, current
            )
        self._counters.last_crc_value = current
        return delta

    def elapsed(self) -> float:
        """Seconds since start(); 0.0 if the monitor never started."""
        if self._t0 is None:
            return 0.0
        return max(0.0, self._clock() - self._t0)
