"""Register the TuneLab project file type with the current platform."""

from __future__ import annotations

import os
import platform
import sys
from pathlib import Path
from typing import Callable, Mapping, Optional

from tunelab_association.config import load_association_config
from tunelab_association.domain.types import AssociationConfig, IconPaths
from tunelab_association.linux import LinuxBackend
from tunelab_association.macos import MacBackend
from tunelab_association.shared import LOGGER, AssociationBackend, attempt
from tunelab_association.windows import WindowsBackend

ExecutableResolver = Callable[[], Optional[Path]]
SCRIPT_SUFFIXES = {".py", ".pyw", ".pyc"}


def resolve_executable_path() -> Path | None:
    """Return the absolute path of the running program, or None when it cannot be determined."""
    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve()
    if sys.argv and sys.argv[0]:
        candidate = Path(sys.argv[0]).resolve()
        # Source files are not launchable programs.
        if candidate.suffix.lower() in SCRIPT_SUFFIXES:
            return None
        if candidate.is_file() and os.access(candidate, os.X_OK):
            return candidate
    return None


def default_backends() -> dict[str, AssociationBackend]:
    return {
        "Windows": WindowsBackend(),
        "Linux": LinuxBackend(),
        "Darwin": MacBackend(),
    }


class FileAssociationRegistrar:
    """Dispatch registration to the backend for the running platform.

    ``register`` never raises: every failure ends in a log record.
    """

    def __init__(
        self,
        config: AssociationConfig | None = None,
        *,
        icon_paths: IconPaths | None = None,
        backends: Mapping[str, AssociationBackend] | None = None,
        system: Callable[[], str] | None = None,
        executable_resolver: ExecutableResolver | None = None,
    ) -> None:
        self._config = config
        self._icon_paths = icon_paths
        self._backends = backends
        self._system = system
        self._executable_resolver = executable_resolver or resolve_executable_path

    def register(self) -> bool:
        try:
            return self._register()
        except Exception:
            LOGGER.exception("Failed to register file association.")
            return False

    def _register(self) -> bool:
        executable_path = self._executable_resolver()
        if executable_path is None:
            LOGGER.error("Failed to get executable path for file association.")
            return False

        system = self._system() if self._system is not None else platform.system()
        backends = self._backends if self._backends is not None else default_backends()
        backend = backends.get(system)
        if backend is None:
            LOGGER.info("File association registration is not supported on %s.", system)
            return False

        config = self._config if self._config is not None else load_association_config()
        icon_paths = self._icon_paths
        if icon_paths is None:
            assets_dir = config.assets_dir or executable_path.parent / "Assets"
            icon_paths = IconPaths.for_platform(assets_dir, system)

        registered = attempt(
            f"Registering {system} file association",
            backend.register,
            config,
            icon_paths,
            executable_path,
        )
        if not registered:
            return False
        LOGGER.info("File association registered for %s.", config.descriptor.extension)
        return True


def register_file_association(config: AssociationConfig | None = None, *, icon_paths: IconPaths | None = None) -> bool:
    """Best-effort registration of the project file type; safe to call on every startup."""
    return FileAssociationRegistrar(config, icon_paths=icon_paths).register()
