"""
Command-line entry point: open the link, run the receive loop, exit with
its status.

    tm-receiver [/dev/ttyUSB0] [--archive-dir images] [--no-recovery] ...

Exit status is 0 on a clean shutdown (Ctrl-C included), the OS errno when
opening or configuring the device fails, and non-zero on any fatal loop
condition.
"""

from __future__ import annotations

import argparse
import signal
import sys
from typing import Callable, Optional, Sequence

from pydantic import ValidationError

from .config import ReceiverConfig
from .errors import LinkError
from .intake.synclink import SyncLinkDevice
from .orchestration.runner import run_session
from .pipeline.observer import make_observer
from .ports import LinkPort
from .utils import init_logging

LinkFactory = Callable[[ReceiverConfig], LinkPort]


def _open_synclink(cfg: ReceiverConfig) -> LinkPort:
    return SyncLinkDevice.open(cfg.device, max_frame_size=cfg.max_frame_size)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="tm-receiver",
        description="Receive HDLC telemetry frames and archive images plus their XML catalog.",
    )
    ap.add_argument("device", nargs="?", default=None, help="Link device (default /dev/ttyUSB0).")
    ap.add_argument("--archive-dir", default=None, help="Directory for archived images.")
    ap.add_argument("--image-staging", default=None, help="Path of the in-progress image.")
    ap.add_argument("--catalog", default=None, help="Path of the live XML catalog.")
    ap.add_argument(
        "--no-recovery",
        action="store_true",
        help="Wait for the first packet instead of assuming image data; stay ambiguous after catalogs.",
    )
    ap.add_argument("--viewer-command", default=None, help="Command run for each archived image.")
    ap.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING, ...")
    ap.add_argument("--log-file", default=None, help="Rotating log file path.")
    return ap


def config_from_args(args: argparse.Namespace) -> ReceiverConfig:
    return ReceiverConfig.from_env(
        device=args.device,
        archive_dir=args.archive_dir,
        image_staging_path=args.image_staging,
        catalog_path=args.catalog,
        recovery_mode=False if args.no_recovery else None,
        viewer_command=args.viewer_command,
        log_level=args.log_level,
        log_file=args.log_file,
    )


def _raise_interrupt(signum, _frame) -> None:
    raise KeyboardInterrupt(signal.Signals(signum).name)


def main(argv: Optional[Sequence[str]] = None, *, link_factory: LinkFactory = _open_synclink) -> int:
    args = build_parser().parse_args(argv)
    try:
        cfg = config_from_args(args)
    except ValidationError as e:
        print(f"configuration error: {e}", file=sys.stderr)
        return 2

    logger = init_logging(cfg)
    logger.info("receive HDLC data on %s", cfg.device)

    try:
        link = link_factory(cfg)
    except LinkError as e:
        logger.error("%s", e)
        return e.exit_code

    # SIGTERM takes the same orderly path as Ctrl-C
    previous = signal.signal(signal.SIGTERM, _raise_interrupt)
    logger.info("Press Ctrl-C to stop program.")

    observer = make_observer(cfg.viewer_command, logger=logger)
    try:
        result = run_session(link=link, cfg=cfg, observer=observer, logger=logger)
    finally:
        signal.signal(signal.SIGTERM, previous)
        observer.close()
    return result.exit_code


if __name__ == "__main__":
    sys.exit(main())
