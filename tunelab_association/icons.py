"""Icon conversion helpers for the platform backends."""

from __future__ import annotations

import shutil
import tempfile
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from tunelab_association.domain.types import iconset_entries
from tunelab_association.shared import LOGGER, run_tool

ICO_SIZES = [(256, 256), (128, 128), (64, 64), (48, 48), (32, 32), (16, 16)]
THEME_ICON_SIZE = 256


def convert_to_icns(source_icon: Path, icns_path: Path, *, timeout: float, resize_timeout: float) -> bool:
    """Build a multi-resolution .icns from a square raster using sips and iconutil.

    Each resize is attempted independently; sizes that fail are simply missing from the
    iconset. The temporary iconset directory is removed whether or not packing succeeds.
    """
    with tempfile.TemporaryDirectory() as tmp_dir:
        iconset_dir = Path(tmp_dir) / f"{icns_path.stem}.iconset"
        iconset_dir.mkdir(parents=True, exist_ok=True)
        for entry in iconset_entries():
            run_tool(
                [
                    "sips",
                    "-z",
                    str(entry.pixels),
                    str(entry.pixels),
                    source_icon,
                    "--out",
                    iconset_dir / entry.file_name,
                ],
                timeout=resize_timeout,
            )
        packed = run_tool(["iconutil", "-c", "icns", iconset_dir, "-o", icns_path], timeout=timeout)

    return packed and icns_path.exists() and icns_path.stat().st_size > 0


def install_bundle_icon(
    source_icon: Path,
    resources_dir: Path,
    stem: str,
    *,
    timeout: float,
    resize_timeout: float,
) -> str | None:
    """Place an icon for ``stem`` in the bundle resources and return its file name.

    Falls back to a plain copy of the source when no native icon can be produced.
    """
    if not source_icon.exists():
        return None

    icns_path = resources_dir / f"{stem}.icns"
    try:
        if convert_to_icns(source_icon, icns_path, timeout=timeout, resize_timeout=resize_timeout):
            return icns_path.name
    except OSError as exc:
        LOGGER.debug("Native icon conversion for %s failed: %s", source_icon, exc)

    fallback_path = resources_dir / f"{stem}{source_icon.suffix}"
    shutil.copyfile(source_icon, fallback_path)
    return fallback_path.name


def write_ico(source_icon: Path, ico_path: Path) -> bool:
    """Convert a raster image to a multi-size Windows .ico with Pillow."""
    try:
        with Image.open(source_icon) as image:
            ico_path.parent.mkdir(parents=True, exist_ok=True)
            image.save(ico_path, format="ICO", sizes=ICO_SIZES)
    except (OSError, UnidentifiedImageError, ValueError) as exc:
        LOGGER.debug("Could not convert %s to ICO: %s", source_icon, exc)
        return False
    return True


def write_theme_icon(source_icon: Path, target_path: Path, size: int = THEME_ICON_SIZE) -> None:
    """Install a PNG icon sized for a fixed-size icon theme directory.

    Images already at the target size, or ones Pillow cannot read, are copied unchanged.
    """
    try:
        with Image.open(source_icon) as image:
            if image.size == (size, size) and image.format == "PNG":
                resized = None
            else:
                resized = image.convert("RGBA").resize((size, size), Image.Resampling.LANCZOS)
    except (OSError, UnidentifiedImageError) as exc:
        LOGGER.debug("Could not read %s with Pillow; copying as-is: %s", source_icon, exc)
        resized = None

    if resized is None:
        shutil.copyfile(source_icon, target_path)
        return
    resized.save(target_path, format="PNG")
