from __future__ import annotations

import configparser
import logging
import os
from pathlib import Path

from tunelab_association.domain.types import ApplicationIdentity, AssociationConfig, FileTypeDescriptor

DEFAULT_CONFIG_PATHS = [
    Path("~/.config/tunelab/association").expanduser(),
    Path("~/.tunelab/association").expanduser(),
]


def _load_config_parser(config_path: Path) -> configparser.ConfigParser:
    """Load the INI config file from disk."""
    parser = configparser.ConfigParser(strict=False, inline_comment_prefixes=("#", ";"), interpolation=None)
    parser.read(config_path, encoding="utf-8")
    return parser


def _get_string_value(
    section: configparser.SectionProxy | dict,
    key: str,
    default: str,
    config_path: Path,
) -> str:
    if key not in section:
        return default
    value = str(section.get(key, "")).strip()
    if not value:
        logging.getLogger(__name__).warning(
            "Config value for %s is blank in %s; using default %s.",
            key,
            config_path,
            default,
        )
        return default
    return value


def _get_int_value(
    section: configparser.SectionProxy | dict,
    key: str,
    default: int,
    config_path: Path,
    *,
    min_value: int | None = None,
    max_value: int | None = None,
) -> int:
    if key not in section:
        return default
    raw_value = str(section.get(key, "")).strip()
    try:
        parsed = int(raw_value)
    except ValueError:
        logging.getLogger(__name__).warning(
            "Config value for %s (%s) in %s is invalid; using default %s.",
            key,
            raw_value,
            config_path,
            default,
        )
        return default
    if (min_value is not None and parsed < min_value) or (max_value is not None and parsed > max_value):
        logging.getLogger(__name__).warning(
            "Config value for %s (%s) in %s is outside %s..%s; using default %s.",
            key,
            parsed,
            config_path,
            min_value,
            max_value,
            default,
        )
        return default
    return parsed


def _resolve_config_path(config_path: Path | None) -> Path | None:
    if config_path is not None:
        return config_path
    env_override = os.getenv("TUNELAB_ASSOCIATION_CONFIG", "").strip()
    if env_override:
        return Path(env_override).expanduser()
    return next((path for path in DEFAULT_CONFIG_PATHS if path.exists()), None)


def _load_descriptor(section: configparser.SectionProxy | dict, config_path: Path) -> FileTypeDescriptor:
    defaults = FileTypeDescriptor()
    try:
        return FileTypeDescriptor(
            extension=_get_string_value(section, "extension", defaults.extension, config_path),
            type_identifier=_get_string_value(section, "type_identifier", defaults.type_identifier, config_path),
            english_description=_get_string_value(
                section,
                "english_description",
                defaults.english_description,
                config_path,
            ),
            localized_description=_get_string_value(
                section,
                "localized_description",
                defaults.localized_description,
                config_path,
            ),
            localized_language=_get_string_value(
                section,
                "localized_language",
                defaults.localized_language,
                config_path,
            ),
        )
    except ValueError as exc:
        logging.getLogger(__name__).warning("Invalid [association] in %s (%s); using defaults.", config_path, exc)
        return defaults


def _load_application(section: configparser.SectionProxy | dict, config_path: Path) -> ApplicationIdentity:
    defaults = ApplicationIdentity()
    return ApplicationIdentity(
        name=_get_string_value(section, "name", defaults.name, config_path),
        slug=_get_string_value(section, "slug", defaults.slug, config_path),
        mime_type=_get_string_value(section, "mime_type", defaults.mime_type, config_path),
        file_icon_name=_get_string_value(section, "file_icon_name", defaults.file_icon_name, config_path),
        categories=_get_string_value(section, "categories", defaults.categories, config_path),
        default_bundle_identifier=_get_string_value(
            section,
            "bundle_identifier",
            defaults.default_bundle_identifier,
            config_path,
        ),
        version=_get_string_value(section, "version", defaults.version, config_path),
    )


def load_association_config(config_path: Path | None = None) -> AssociationConfig:
    """Load association settings, falling back to the built-in TuneLab values.

    Search order: explicit path, $TUNELAB_ASSOCIATION_CONFIG, then DEFAULT_CONFIG_PATHS.
    A missing file is not an error; nothing is created on disk.
    """
    config_path = _resolve_config_path(config_path)
    if config_path is None or not config_path.exists():
        return AssociationConfig()

    try:
        parser = _load_config_parser(config_path)
    except (configparser.Error, UnicodeDecodeError, OSError) as exc:
        logging.getLogger(__name__).warning("Unreadable config file %s (%s); using defaults.", config_path, exc)
        return AssociationConfig()

    association = parser["association"] if parser.has_section("association") else {}
    application = parser["application"] if parser.has_section("application") else {}
    tools = parser["tools"] if parser.has_section("tools") else {}

    assets_value = str(application.get("assets_dir", "")).strip()
    defaults = AssociationConfig()

    return AssociationConfig(
        descriptor=_load_descriptor(association, config_path),
        application=_load_application(application, config_path),
        tool_timeout=_get_int_value(
            tools,
            "timeout_seconds",
            int(defaults.tool_timeout),
            config_path,
            min_value=1,
            max_value=60,
        ),
        resize_timeout=_get_int_value(
            tools,
            "resize_timeout_seconds",
            int(defaults.resize_timeout),
            config_path,
            min_value=1,
            max_value=60,
        ),
        assets_dir=Path(assets_value).expanduser() if assets_value else None,
    )
