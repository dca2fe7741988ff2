"""Temporary working directories owned by a single pipeline run."""

from __future__ import annotations

import logging
import shutil
import tempfile
from pathlib import Path

from packverify.config import WORKDIR_PREFIX

logger = logging.getLogger(__name__)


class Workspace:
    """Creates uniquely-named temp directories and removes them on cleanup.

    Usage::

        workspace = Workspace()
        try:
            checkout_dir = workspace.create()
            ...
        finally:
            workspace.cleanup()
    """

    def __init__(self, prefix: str = WORKDIR_PREFIX, *, keep: bool = False) -> None:
        self._prefix = prefix
        self._keep = keep
        self._created: list[Path] = []

    @property
    def directories(self) -> list[Path]:
        """Directories created so far and not yet removed."""
        return list(self._created)

    def create(self) -> Path:
        """Create an empty directory under the system temp root.

        Raises:
            OSError: The directory could not be created.
        """
        path = Path(tempfile.mkdtemp(prefix=self._prefix))
        self._created.append(path)
        logger.debug("Created working directory %s", path)
        return path

    def cleanup(self) -> None:
        """Remove every directory this workspace created (unless kept)."""
        while self._created:
            path = self._created.pop()
            if self._keep:
                logger.info("Keeping working directory %s", path)
                continue
            shutil.rmtree(path, ignore_errors=True)
            logger.debug("Removed working directory %s", path)
