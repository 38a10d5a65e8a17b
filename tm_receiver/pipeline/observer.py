"""
Observers notified after an artifact has been archived.

The receiver can hand each archived image to an external viewer process.
This is fire-and-forget: the child gets the archived path on its command
line, its output is discarded, and it never talks back to the loop.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from pathlib import Path
from typing import List, Optional

from ..dto import ArtifactKind
from ..ports import ObserverPort
from ..utils import get_logger


class NullObserver(ObserverPort):
    """Default observer: does nothing."""

    def on_archived(self, kind: ArtifactKind, path: Path) -> None:
        return

    def close(self) -> None:
        return


class CommandObserver(ObserverPort):
    """
    Spawn `command` for every archived artifact of the watched kind.

    `{path}` in the command template is replaced by the archived path; if the
    template has no placeholder the path is appended as the last argument.
    """

    def __init__(
        self,
        command: str,
        *,
        kinds: tuple[ArtifactKind, ...] = (ArtifactKind.IMAGE,),
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if not command.strip():
            raise ValueError("observer command must not be empty")
        self.command = command
        self.kinds = kinds
        self.logger = get_logger(logger)
        self._children: List[subprocess.Popen] = []

    def build_argv(self, path: Path) -> List[str]:
        argv = shlex.split(self.command)
        if any("{path}" in a for a in argv):
            return [a.replace("{path}", str(path)) for a in argv]
        return argv + [str(path)]

    def on_archived(self, kind: ArtifactKind, path: Path) -> None:
        if kind not in self.kinds:
            return
        self._reap()
        argv = self.build_argv(path)
        try:
            child = subprocess.Popen(
                argv,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except OSError as e:
            # Viewer trouble must not stop reception
            self.logger.warning("Could not start observer %r: %s", argv[0], e)
            return
        self._children.append(child)
        self.logger.debug("Started observer pid=%d for %s", child.pid, path)

    def close(self) -> None:
        self._reap()
        if self._children:
            self.logger.info("Leaving %d observer process(es) running", len(self._children))
        self._children = []

    @property
    def running(self) -> int:
        self._reap()
        return len(self._children)

    def _reap(self) -> None:
        self._children = [c for c in self._children if c.poll() is None]


def make_observer(command: Optional[str], logger: Optional[logging.Logger] = None) -> ObserverPort:
    if command:
        return CommandObserver(command, logger=logger)
    return NullObserver()
