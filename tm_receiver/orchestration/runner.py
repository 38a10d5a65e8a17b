"""
Receive loop driver: one blocking receive -> classify -> dispatch per iteration.

Exit conditions
---------------
- KeyboardInterrupt (user interrupt) during a receive: clean shutdown, exit 0.
- zero-length receive: link misconfigured, exit non-zero, no retry.
- OSError from the link: fatal, exit with its errno.
- ReceiverError from the store / catalog writer (short write, failed
  flush or rename): fatal, exit with its code.

Every exit goes through the same teardown: close the live files, drop the
control lines, close the link, and log how long the session ran.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..config import ReceiverConfig
from ..dto import Packet, RunCounters, SessionResult
from ..errors import LinkError, LinkMisconfigured, ReceiverError
from ..pipeline.health import LinkHealthMonitor
from ..ports import LinkPort, ObserverPort
from ..utils import get_logger
from .demux import Demultiplexer


def run_session(
    *,
    link: LinkPort,
    cfg: ReceiverConfig,
    observer: Optional[ObserverPort] = None,
    demux: Optional[Demultiplexer] = None,
    monitor: Optional[LinkHealthMonitor] = None,
    max_packets: Optional[int] = None,
    logger: Optional[logging.Logger] = None,
) -> SessionResult:
    """
    Run the receive loop until the link fails, a write fails, or the user
    interrupts.

    Parameters
    ----------
    link : LinkPort
        An opened link session.
    cfg : ReceiverConfig
        Session configuration.
    observer : ObserverPort, optional
        Notified of archived artifacts (ignored if `demux` is given).
    demux, monitor : optional
        Pre-built collaborators (tests); built from `cfg` otherwise.
    max_packets : int, optional
        Stop cleanly after this many packets. None runs until an exit condition.

    Returns
    -------
    SessionResult
        Exit code, reason, elapsed seconds, and a counters snapshot.
    """
    log = get_logger(logger)
    counters = demux.counters if demux is not None else RunCounters()
    demux = demux or Demultiplexer(cfg, observer=observer, counters=counters, logger=log)
    monitor = monitor or LinkHealthMonitor(link, counters, logger=log)

    exit_code = 0
    reason = "stopped"

    try:
        monitor.start()
        link.assert_control_lines()
        demux.start()
        log.info("Receiving on %s (state=%s)", cfg.device, demux.state.value)

        seen = 0
        while max_packets is None or seen < max_packets:
            monitor.sample()
            try:
                frame = link.receive()
            except OSError as e:
                raise LinkError.from_os_error("read", e) from e
            if not frame:
                raise LinkMisconfigured()
            demux.feed(Packet.from_frame(frame))
            seen += 1
        reason = f"processed {seen} packets"

    except KeyboardInterrupt:
        reason = "interrupted by user"
        log.info("Interrupted by user; shutting down")
    except ReceiverError as e:
        exit_code = e.exit_code or 1
        reason = str(e)
        log.error("%s", e)
        log.error("program ran for %-3.2f seconds before failing", monitor.elapsed())
    except OSError as e:
        # link diagnostics (CRC counter ioctl) failing outside a receive
        exit_code = e.errno or 1
        reason = f"link error={exit_code} {e.strerror or e}"
        log.error("%s", reason)
    finally:
        _teardown(link, demux, log)

    elapsed = monitor.elapsed()
    log.info(
        "Session ended after %.2f s: %s (images=%d catalogs=%d crc_errors=%d)",
        elapsed,
        reason,
        counters.images_archived,
        counters.catalogs_archived,
        counters.crc_errors,
    )
    return SessionResult(
        exit_code=exit_code,
        reason=reason,
        elapsed_s=elapsed,
        counters=counters.snapshot(),
    )


def _teardown(link: LinkPort, demux: Demultiplexer, log: logging.Logger) -> None:
    try:
        demux.close()
    except OSError as e:
        log.error("closing live files failed: %s", e)
    try:
        link.deassert_control_lines()
    except (OSError, ReceiverError) as e:
        log.error("%s", e)
    finally:
        link.close()
