"""Linux file association registration."""

from __future__ import annotations

import textwrap
from pathlib import Path
from xml.etree import ElementTree

from tunelab_association.domain.types import AssociationConfig, IconPaths
from tunelab_association.icons import write_theme_icon
from tunelab_association.shared import attempt, data_home, run_tool

MIME_NAMESPACE = "http://www.freedesktop.org/standards/shared-mime-info"
XML_LANG = "{http://www.w3.org/XML/1998/namespace}lang"
EXEC_RESERVED = frozenset('"`$\\')


class LinuxBackend:
    """Register the file type with a desktop entry and a shared-mime-info package.

    Side effects: writes ~/.local/share/applications/<app>.desktop and
    ~/.local/share/mime/packages/<app>.xml (or under XDG_DATA_HOME), installs the file icon
    into the hicolor theme, and refreshes the MIME, desktop and icon caches. Every group is
    attempted even when an earlier one failed.
    """

    def register(self, config: AssociationConfig, icon_paths: IconPaths, executable_path: Path) -> None:
        root = data_home()
        attempt(
            "Writing desktop entry",
            write_desktop_entry,
            root / "applications",
            config,
            icon_paths,
            executable_path,
        )
        attempt("Writing MIME package", write_mime_package, root / "mime" / "packages", config)
        if icon_paths.file_icon_path.exists():
            attempt("Installing file icon", install_file_icon, root, config, icon_paths.file_icon_path)
        refresh_databases(root, timeout=config.tool_timeout)


def quote_exec_argument(value: str | Path) -> str:
    """Quote a path for a desktop entry Exec key.

    Reserved characters are backslash-escaped inside the quotes and `%` is doubled. The
    key-file string escape is applied on top, so each backslash is written twice.
    """
    escaped = "".join(f"\\{char}" if char in EXEC_RESERVED else char for char in str(value))
    escaped = escaped.replace("%", "%%").replace("\\", "\\\\")
    return f'"{escaped}"'


def write_desktop_entry(
    applications_dir: Path,
    config: AssociationConfig,
    icon_paths: IconPaths,
    executable_path: Path,
) -> Path:
    application = config.application
    applications_dir.mkdir(parents=True, exist_ok=True)

    app_icon = icon_paths.application_icon_path
    icon_value = str(app_icon) if app_icon.exists() else application.slug

    desktop_file = applications_dir / f"{application.slug}.desktop"
    desktop_file.write_text(
        textwrap.dedent(
            f"""\
            [Desktop Entry]
            Type=Application
            Name={application.name}
            Comment={config.descriptor.english_description}
            Exec={quote_exec_argument(executable_path)} %f
            Icon={icon_value}
            MimeType={application.mime_type};
            Categories={application.categories}
            Terminal=false
            """
        ),
        encoding="utf-8",
    )
    return desktop_file


def build_mime_package(config: AssociationConfig) -> ElementTree.ElementTree:
    descriptor = config.descriptor
    application = config.application

    root = ElementTree.Element("mime-info", {"xmlns": MIME_NAMESPACE})
    mime_type = ElementTree.SubElement(root, "mime-type", {"type": application.mime_type})
    comment = ElementTree.SubElement(mime_type, "comment")
    comment.text = descriptor.english_description
    localized = ElementTree.SubElement(
        mime_type,
        "comment",
        {XML_LANG: descriptor.localized_language},
    )
    localized.text = descriptor.localized_description
    ElementTree.SubElement(mime_type, "glob", {"pattern": descriptor.glob_pattern})
    ElementTree.SubElement(mime_type, "icon", {"name": application.file_icon_name})

    tree = ElementTree.ElementTree(root)
    ElementTree.indent(tree, space="    ")
    return tree


def write_mime_package(packages_dir: Path, config: AssociationConfig) -> Path:
    packages_dir.mkdir(parents=True, exist_ok=True)
    mime_file = packages_dir / f"{config.application.slug}.xml"
    build_mime_package(config).write(mime_file, encoding="utf-8", xml_declaration=True)
    return mime_file


def install_file_icon(data_root: Path, config: AssociationConfig, source_icon: Path) -> Path:
    icon_dir = data_root / "icons" / "hicolor" / "256x256" / "mimetypes"
    icon_dir.mkdir(parents=True, exist_ok=True)
    icon_path = icon_dir / f"{config.application.file_icon_name}.png"
    write_theme_icon(source_icon, icon_path)
    return icon_path


def refresh_databases(data_root: Path, *, timeout: float) -> None:
    """Refresh the per-user caches; tools that are missing or fail are ignored."""
    run_tool(["update-mime-database", data_root / "mime"], timeout=timeout)
    run_tool(["update-desktop-database", data_root / "applications"], timeout=timeout)
    run_tool(["gtk-update-icon-cache", "-f", "-t", data_root / "icons" / "hicolor"], timeout=timeout)
