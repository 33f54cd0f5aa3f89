"""Locate the enclosing macOS application bundle and read its identifier."""

from __future__ import annotations

import plistlib
import re
from pathlib import Path

BUNDLE_SUFFIX = ".app"

_IDENTIFIER_PATTERN = re.compile(
    r"<key>\s*CFBundleIdentifier\s*</key>\s*<string>(.*?)</string>",
    re.DOTALL,
)


def find_bundle_dir(executable_path: Path) -> Path | None:
    """Return the nearest ancestor directory named ``*.app``, or None at the filesystem root."""
    for parent in executable_path.parents:
        if parent.suffix == BUNDLE_SUFFIX:
            return parent
    return None


def extract_bundle_identifier(manifest_text: str) -> str | None:
    """Return CFBundleIdentifier from Info.plist text, or None when it cannot be found."""
    try:
        manifest = plistlib.loads(manifest_text.encode("utf-8"))
    except Exception:
        # plistlib surfaces malformed input as several unrelated exception types.
        manifest = None

    if isinstance(manifest, dict):
        identifier = manifest.get("CFBundleIdentifier")
        if isinstance(identifier, str) and identifier.strip():
            return identifier.strip()
        return None

    # Fragments and hand-edited manifests that plistlib rejects.
    match = _IDENTIFIER_PATTERN.search(manifest_text)
    if match is None:
        return None
    identifier = match.group(1).strip()
    return identifier or None


def read_bundle_identifier(bundle_dir: Path) -> str | None:
    info_plist = bundle_dir / "Contents" / "Info.plist"
    try:
        manifest_text = info_plist.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return None
    return extract_bundle_identifier(manifest_text)
