"""Windows file association registration."""

from __future__ import annotations

import ctypes
import os
from pathlib import Path
from types import ModuleType

from tunelab_association.domain.types import AssociationConfig, IconPaths
from tunelab_association.icons import write_ico
from tunelab_association.shared import LOGGER

CLASSES_ROOT = r"Software\Classes"
SHCNE_ASSOCCHANGED = 0x08000000
SHCNF_IDLIST = 0x0000


class WindowsBackend:
    """Register the file type by writing HKCU\\Software\\Classes registry keys.

    Side effects: creates or overwrites the per-user extension, type, icon and open
    command keys, then asks the shell to refresh its association cache. The first failing
    key aborts the remaining writes of this call.
    """

    def register(self, config: AssociationConfig, icon_paths: IconPaths, executable_path: Path) -> None:
        import winreg

        descriptor = config.descriptor
        type_key = rf"{CLASSES_ROOT}\{descriptor.type_identifier}"

        _set_default_value(winreg, rf"{CLASSES_ROOT}\{descriptor.extension}", descriptor.type_identifier)
        _set_default_value(winreg, type_key, descriptor.english_description)

        icon_path = _registry_icon_path(config, icon_paths.file_icon_path)
        if icon_path is not None:
            _set_default_value(winreg, rf"{type_key}\DefaultIcon", f'"{icon_path}",0')

        _set_default_value(winreg, rf"{type_key}\shell\open\command", f'"{executable_path}" "%1"')
        notify_shell()


def _set_default_value(winreg: ModuleType, sub_key: str, value: str) -> None:
    with winreg.CreateKey(winreg.HKEY_CURRENT_USER, sub_key) as key:
        winreg.SetValueEx(key, "", 0, winreg.REG_SZ, value)


def local_app_data_dir(app_name: str) -> Path:
    local_app_data = os.environ.get("LOCALAPPDATA")
    base = Path(local_app_data) if local_app_data else Path.home() / "AppData" / "Local"
    return base / app_name


def _registry_icon_path(config: AssociationConfig, file_icon_path: Path) -> Path | None:
    """Return an .ico usable as DefaultIcon, converting other raster formats when needed."""
    if not file_icon_path.exists():
        return None
    if file_icon_path.suffix.lower() == ".ico":
        return file_icon_path

    application = config.application
    converted = local_app_data_dir(application.name) / f"{application.file_icon_name}.ico"
    if write_ico(file_icon_path, converted):
        return converted
    return file_icon_path


def notify_shell() -> None:
    """Tell Explorer that file associations changed so icons refresh without a logoff."""
    try:
        ctypes.windll.shell32.SHChangeNotify(SHCNE_ASSOCCHANGED, SHCNF_IDLIST, None, None)
    except (AttributeError, OSError) as exc:
        LOGGER.debug("Shell change notification failed: %s", exc)
