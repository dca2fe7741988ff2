"""packverify exception hierarchy.

All public exceptions inherit from PackVerifyError, giving callers a single
base class to catch when they want to handle any verification failure
without swallowing unrelated errors. Pipeline stages convert these into a
step status plus reason; none of them escape a stage.
"""

from __future__ import annotations


class PackVerifyError(Exception):
    """Base exception for all packverify errors."""


class ResolutionError(PackVerifyError):
    """Raised when a package or version cannot be resolved in the registry.

    Covers registry lookup failures, versions that match neither a
    dist-tag nor a published version, and missing version metadata.
    """


class RepositoryError(PackVerifyError):
    """Raised when a version's repository reference is unusable.

    Covers a missing ``repository`` field, non-git repository types,
    and a missing repository URL.
    """


class FetchError(PackVerifyError):
    """Raised when a shallow checkout cannot be produced.

    The message names the sub-step that broke (temp directory, remote,
    commit fetch, tag fetch, checkout).
    """


class BuildError(PackVerifyError):
    """Raised when packaging fails, including after a dependency install."""


class ParseError(PackVerifyError):
    """Raised when expected structure is absent from tool output or an archive.

    Covers a shasum that cannot be found in ``npm pack`` output and
    archive streams that are not readable tar data.
    """


class CompareError(PackVerifyError):
    """Raised when two packages are not content-identical."""


class CommandError(PackVerifyError):
    """Raised when an external command exits with a non-zero status.

    Attributes:
        argv: The command that was run.
        returncode: Process exit status.
        stdout: Captured standard output.
        stderr: Captured standard error.
    """

    def __init__(
        self,
        argv: list[str],
        returncode: int,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        self.argv = list(argv)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        detail = stderr.strip() or stdout.strip()
        message = f"'{' '.join(argv)}' exited with status {returncode}"
        if detail:
            message = f"{message}: {detail.splitlines()[-1]}"
        super().__init__(message)


class HttpError(PackVerifyError):
    """Raised on unrecoverable HTTP failures (status, transport, bad JSON)."""


class DeadlineExceeded(PackVerifyError):
    """Raised when the run's deadline expires during a blocking call."""
