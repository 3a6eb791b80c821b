"""Spawned child process transport.

The child's stdin and stdout are pipes; stderr is inherited unless the
caller asks otherwise (``stderr=subprocess.STDOUT`` merges it into the
stream the tube reads).
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
from typing import Optional, Sequence, Union

from .. import config
from .base import Transport, read_descriptor, write_descriptor

logger = logging.getLogger(__name__)


class ProcessTransport(Transport):
    """Talk to a child process through its standard input and output."""

    kind = "process"

    def __init__(
        self,
        args: Union[str, Sequence[str]],
        stderr=None,
        env: Optional[dict] = None,
        cwd: Optional[str] = None,
    ):
        if isinstance(args, str):
            args = shlex.split(args)

        self.args = list(args)
        self.process = subprocess.Popen(
            self.args,
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            stderr=stderr,
            env=env,
            cwd=cwd,
            bufsize=0,
        )

        self._stdin = self.process.stdin
        self._stdout = self.process.stdout
        self._stdin_fd = self._stdin.fileno()
        self._stdout_fd = self._stdout.fileno()
        os.set_blocking(self._stdin_fd, False)
        os.set_blocking(self._stdout_fd, False)

        self._closed = False
        logger.debug("spawned %s as pid %d", self.args, self.process.pid)

    def __repr__(self) -> str:
        state = "open" if self.is_open else "closed"
        return f"<ProcessTransport pid={self.pid} {self.args[0]!r} {state}>"

    @property
    def pid(self) -> int:
        return self.process.pid

    def poll(self) -> Optional[int]:
        """Return the exit status, or None while the child is running."""
        return self.process.poll()

    def wait(self, timeout: Optional[float] = None) -> int:
        return self.process.wait(timeout)

    def fileno(self) -> int:
        return self._stdout_fd

    def write_fileno(self) -> int:
        return self._stdin_fd

    def read_some(self, size: int) -> Optional[bytes]:
        return read_descriptor(self._stdout_fd, size)

    def write_some(self, data: bytes) -> int:
        if self._stdin.closed:
            raise BrokenPipeError("process stdin is closed")
        return write_descriptor(self._stdin_fd, data)

    def close_write(self) -> None:
        if not self._stdin.closed:
            self._stdin.close()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True

        for pipe in (self._stdin, self._stdout):
            try:
                pipe.close()
            except OSError:
                pass

        self._reap()
        logger.debug("closed pid %d, exit status %s", self.pid, self.process.returncode)

    def _reap(self) -> None:
        # Closing stdin is usually enough for a well-behaved child. Escalate
        # to SIGTERM, then SIGKILL, each after close_timeout seconds.

        try:
            self.process.wait(config.close_timeout)
            return
        except subprocess.TimeoutExpired:
            pass

        self.process.terminate()
        try:
            self.process.wait(config.close_timeout)
            return
        except subprocess.TimeoutExpired:
            pass

        self.process.kill()
        self.process.wait()

    @property
    def is_open(self) -> bool:
        return not self._closed

    @property
    def write_closed(self) -> bool:
        return self._stdin.closed
