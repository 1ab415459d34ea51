"""Compiler subprocess driver.

``cargo`` is run as a blocking child process.  Its stderr is read line by
line while it runs and handed to a callback, so diagnostics appear as the
compiler produces them.  stdout is discarded.  There is no timeout; if the
caller is interrupted the child is terminated and reaped before the
exception propagates.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from collections.abc import Callable, Sequence
from pathlib import Path

from layered_crate.domain.errors import CompilerSpawnError

logger = logging.getLogger(__name__)

DEFAULT_CARGO_ARGS: tuple[str, ...] = ("check", "--lib", "--color=always")

# Seconds to wait for a terminated child before killing it.
_TERMINATE_GRACE = 5.0


class CompilerRunner:
    """Runs one compiler program with a fixed argument list."""

    def __init__(self, program: str = "cargo", args: Sequence[str] = DEFAULT_CARGO_ARGS) -> None:
        self.program = program
        self.args = tuple(args)

    def executable(self) -> str:
        """Absolute path of the compiler binary.

        Raises:
            CompilerSpawnError: the program is not on ``PATH``.
        """
        found = shutil.which(self.program)
        if found is None:
            msg = f"`{self.program}` not found on PATH; cannot build the crate"
            raise CompilerSpawnError(msg)
        return found

    def run(self, cwd: Path, on_line: Callable[[str], None]) -> int:
        """Run the compiler in *cwd*, feeding each stderr line to *on_line*.

        Returns the exit code.

        Raises:
            CompilerSpawnError: the process could not be started.
        """
        command = [self.executable(), *self.args]
        logger.debug("running %s in %s", command, cwd)
        try:
            proc = subprocess.Popen(
                command,
                cwd=cwd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
                bufsize=1,
            )
        except OSError as exc:
            msg = f"failed to start `{self.program}`: {exc}"
            raise CompilerSpawnError(msg) from exc

        assert proc.stderr is not None
        try:
            for line in proc.stderr:
                on_line(line.rstrip("\r\n"))
            code = proc.wait()
        except BaseException:
            _terminate(proc)
            raise
        finally:
            proc.stderr.close()
        logger.debug("%s exited with %d", self.program, code)
        return code


def _terminate(proc: subprocess.Popen[str]) -> None:
    if proc.poll() is not None:
        return
    logger.debug("terminating compiler process %d", proc.pid)
    proc.terminate()
    try:
        proc.wait(timeout=_TERMINATE_GRACE)
    except subprocess.TimeoutExpired:
        proc.kill()
        proc.wait()


def format_if_possible(path: Path, *, edition: str | None = None) -> None:
    """Format *path* with rustfmt if it is installed.  Failures only warn."""
    rustfmt = shutil.which("rustfmt")
    if rustfmt is None:
        return
    logger.debug("formatting '%s'", path)
    command = [rustfmt, str(path)]
    if edition:
        command[1:1] = ["--edition", edition]
    try:
        result = subprocess.run(
            command,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            check=False,
        )
    except OSError as exc:
        logger.warning("failed to run rustfmt on '%s': %s", path, exc)
        return
    if result.returncode != 0:
        logger.warning("rustfmt failed for '%s'", path)
