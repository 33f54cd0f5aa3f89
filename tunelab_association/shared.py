"""Shared helpers for the platform file association backends."""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from pathlib import Path
from typing import Callable, Protocol, Sequence

from tunelab_association.domain.types import AssociationConfig, IconPaths

LOGGER = logging.getLogger(__name__)


class AssociationBackend(Protocol):
    def register(self, config: AssociationConfig, icon_paths: IconPaths, executable_path: Path) -> None:
        """Publish the association for one platform; raises on unrecoverable I/O errors."""


def data_home() -> Path:
    xdg_data_home = os.environ.get("XDG_DATA_HOME")
    return Path(xdg_data_home) if xdg_data_home else Path.home() / ".local" / "share"


def run_tool(args: Sequence[str | Path], *, timeout: float) -> bool:
    """Run an external tool without input or output, bounded by ``timeout`` seconds.

    Returns True only when the tool exists and exits with status 0. A missing tool, a
    non-zero status, or an elapsed timeout (the child is killed) all yield False.
    """
    program = str(args[0])
    resolved = shutil.which(program)
    if resolved is None:
        LOGGER.debug("%s not found; step skipped.", program)
        return False

    try:
        result = subprocess.run(
            [resolved, *(str(arg) for arg in args[1:])],
            check=False,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        LOGGER.debug("%s did not finish within %s seconds.", program, timeout)
        return False
    except OSError as exc:
        LOGGER.debug("%s could not be started: %s", program, exc)
        return False

    if result.returncode != 0:
        LOGGER.debug("%s exited with status %s.", program, result.returncode)
        return False
    return True


def attempt(label: str, func: Callable[..., object], *args: object, **kwargs: object) -> bool:
    """Run one independent registration step, logging instead of raising on failure."""
    try:
        func(*args, **kwargs)
    except Exception:
        LOGGER.exception("%s failed.", label)
        return False
    return True
