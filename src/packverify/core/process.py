"""External command execution in an explicit working directory.

Commands are argv lists (never shell strings) and always receive their
directory as a parameter; the process-wide working directory is never
changed. A non-zero exit raises ``CommandError``; running past the
deadline kills the child and raises ``DeadlineExceeded``.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from packverify.core.deadline import Deadline
from packverify.exceptions import CommandError, DeadlineExceeded

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """Captured outcome of a finished command."""

    argv: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @property
    def output(self) -> str:
        """stderr followed by stdout, the way npm interleaves its notices."""
        return self.stderr + self.stdout


class CommandRunner:
    """Runs commands as asyncio subprocesses."""

    async def run(
        self,
        argv: Sequence[str],
        cwd: Path,
        *,
        deadline: Deadline | None = None,
    ) -> CommandResult:
        """Run ``argv`` in ``cwd`` and capture its output.

        Args:
            argv: Executable followed by its arguments.
            cwd: Directory to run in.
            deadline: Bound on how long the command may run.

        Returns:
            CommandResult for a zero exit status.

        Raises:
            CommandError: Non-zero exit, or the executable was not found.
            DeadlineExceeded: The deadline expired before the command ended.
        """
        argv = [str(a) for a in argv]
        deadline = deadline or Deadline.unbounded()
        command = " ".join(argv)
        deadline.check(f"starting '{command}'")
        logger.debug("Running %s in %s", command, cwd)

        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                cwd=str(cwd),
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except (FileNotFoundError, PermissionError) as exc:
            raise CommandError(argv, 127, stderr=str(exc)) from exc

        try:
            out, err = await asyncio.wait_for(
                proc.communicate(), timeout=deadline.remaining()
            )
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            raise DeadlineExceeded(f"Deadline exceeded while running '{command}'")

        stdout = out.decode("utf-8", errors="replace")
        stderr = err.decode("utf-8", errors="replace")
        returncode = proc.returncode if proc.returncode is not None else -1
        if returncode != 0:
            raise CommandError(argv, returncode, stdout=stdout, stderr=stderr)
        return CommandResult(tuple(argv), returncode, stdout, stderr)
