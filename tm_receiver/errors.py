"""
Exception types raised by the receiver core.

Everything here is fatal to the receive loop. CRC mismatches are diagnostics
and never raised; a user interrupt surfaces as KeyboardInterrupt.
"""

from __future__ import annotations

import errno
import os
from typing import Optional


class ReceiverError(Exception):
    """Base class for fatal receiver conditions."""

    exit_code: int = 1

    def __init__(self, message: str, *, code: Optional[int] = None) -> None:
        super().__init__(message)
        if code is not None:
            self.exit_code = code


class FatalIOError(ReceiverError):
    """A local file write, flush, or rename failed."""

    @classmethod
    def from_os_error(cls, action: str, path: object, err: OSError) -> "FatalIOError":
        code = err.errno or 1
        reason = err.strerror or str(err)
        return cls(f"{action} {path} failed: error={code} {reason}", code=code)


class PartialWriteError(FatalIOError):
    """Fewer bytes reached the file than were requested."""

    def __init__(self, path: object, requested: int, written: int) -> None:
        super().__init__(
            f"short write to {path}: {written} of {requested} bytes",
            code=errno.EIO,
        )
        self.requested = requested
        self.written = written


class LinkError(ReceiverError):
    """The link reported a condition the loop cannot continue past."""

    @classmethod
    def from_os_error(cls, action: str, err: OSError) -> "LinkError":
        code = err.errno or 1
        return cls(f"{action} error={code} {err.strerror or os.strerror(code)}", code=code)


class LinkMisconfigured(LinkError):
    """A receive returned zero bytes; the device is not delivering frames."""

    def __init__(self) -> None:
        super().__init__("read returned with no data (link misconfigured?)")
