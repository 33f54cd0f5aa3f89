"""macOS file association registration."""

from __future__ import annotations

import plistlib
import shutil
from pathlib import Path

from tunelab_association.bundle import find_bundle_dir, read_bundle_identifier
from tunelab_association.domain.types import AssociationConfig, BundleDescriptor, IconPaths
from tunelab_association.icons import install_bundle_icon
from tunelab_association.shared import LOGGER, attempt, run_tool

LSREGISTER = Path(
    "/System/Library/Frameworks/CoreServices.framework/Frameworks/LaunchServices.framework/Support/lsregister"
)
APP_ICON_STEM = "AppIcon"


class MacBackend:
    """Register the file type through the enclosing app bundle and LaunchServices.

    Side effects: merges the document type into <bundle>/Contents/Info.plist, writes icons
    into Contents/Resources, re-registers the bundle with lsregister and, when duti is
    installed, claims the extension for every role. The bundle steps and the duti step are
    independent of each other.
    """

    def register(self, config: AssociationConfig, icon_paths: IconPaths, executable_path: Path) -> None:
        bundle_identifier = config.application.default_bundle_identifier
        bundle_dir = find_bundle_dir(executable_path)
        if bundle_dir is None:
            LOGGER.info("%s is not inside an application bundle; Info.plist left untouched.", executable_path)
        else:
            bundle = describe_bundle(bundle_dir, executable_path, config)
            bundle_identifier = bundle.bundle_identifier
            if attempt("Writing Info.plist", write_info_plist, bundle, config, icon_paths):
                refresh_launch_services(bundle_dir, timeout=config.tool_timeout)

        attempt("Setting default handler with duti", set_default_handler, bundle_identifier, config)


def describe_bundle(bundle_dir: Path, executable_path: Path, config: AssociationConfig) -> BundleDescriptor:
    bundle_identifier = read_bundle_identifier(bundle_dir) or config.application.default_bundle_identifier
    return BundleDescriptor(
        bundle_dir=bundle_dir,
        bundle_identifier=bundle_identifier,
        executable_name=executable_path.name,
    )


def _load_manifest(info_plist: Path) -> dict:
    if not info_plist.exists():
        return {}
    try:
        with info_plist.open("rb") as handle:
            manifest = plistlib.load(handle)
    except Exception as exc:
        LOGGER.warning("Existing %s is unreadable and will be replaced: %s", info_plist, exc)
        return {}
    return manifest if isinstance(manifest, dict) else {}


def _install_icon(source_icon: Path, bundle: BundleDescriptor, stem: str, config: AssociationConfig) -> str | None:
    try:
        return install_bundle_icon(
            source_icon,
            bundle.resources_dir,
            stem,
            timeout=config.tool_timeout,
            resize_timeout=config.resize_timeout,
        )
    except OSError:
        LOGGER.exception("Installing bundle icon %s failed.", source_icon)
        return None


def build_document_type(config: AssociationConfig, icon_file: str | None) -> dict:
    document_type = {
        "CFBundleTypeName": config.descriptor.english_description,
        "CFBundleTypeExtensions": [config.descriptor.bare_extension],
        "CFBundleTypeRole": "Editor",
        "LSHandlerRank": "Owner",
    }
    if icon_file:
        document_type["CFBundleTypeIconFile"] = icon_file
    return document_type


def _declared_extensions(entry: dict) -> list[str]:
    value = entry.get("CFBundleTypeExtensions")
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value]
    return []


def write_info_plist(bundle: BundleDescriptor, config: AssociationConfig, icon_paths: IconPaths) -> Path:
    application = config.application
    bundle.resources_dir.mkdir(parents=True, exist_ok=True)

    app_icon = _install_icon(icon_paths.application_icon_path, bundle, APP_ICON_STEM, config)
    document_icon = _install_icon(icon_paths.file_icon_path, bundle, application.file_icon_name, config)

    manifest = _load_manifest(bundle.info_plist)
    manifest.update(
        {
            "CFBundleIdentifier": bundle.bundle_identifier,
            "CFBundleName": application.name,
            "CFBundleDisplayName": application.name,
            "CFBundleExecutable": bundle.executable_name,
            "CFBundleVersion": application.version,
            "CFBundleShortVersionString": application.version,
            "CFBundlePackageType": "APPL",
        }
    )
    if app_icon:
        manifest["CFBundleIconFile"] = app_icon

    extension = config.descriptor.bare_extension
    existing_types = manifest.get("CFBundleDocumentTypes")
    other_types = [
        entry
        for entry in (existing_types if isinstance(existing_types, list) else [])
        if not (isinstance(entry, dict) and extension in _declared_extensions(entry))
    ]
    manifest["CFBundleDocumentTypes"] = [*other_types, build_document_type(config, document_icon)]

    with bundle.info_plist.open("wb") as handle:
        plistlib.dump(manifest, handle)
    return bundle.info_plist


def refresh_launch_services(bundle_dir: Path, *, timeout: float) -> bool:
    if not LSREGISTER.exists():
        LOGGER.info("LaunchServices registry tool not found; bundle not re-registered.")
        return False
    return run_tool([LSREGISTER, "-f", bundle_dir], timeout=timeout)


def set_default_handler(bundle_identifier: str, config: AssociationConfig) -> bool:
    if shutil.which("duti") is None:
        LOGGER.debug("duti not found; default handler not set.")
        return False
    return run_tool(
        ["duti", "-s", bundle_identifier, config.descriptor.extension, "all"],
        timeout=config.tool_timeout,
    )
