"""Value types shared by the registrar and the platform backends."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

ICONSET_SIZES = (16, 32, 128, 256, 512)
ICONSET_SCALES = (1, 2)


@dataclass(frozen=True)
class FileTypeDescriptor:
    """The project file type the application claims."""

    extension: str = ".tlp"
    type_identifier: str = "TuneLab.Project"
    english_description: str = "TuneLab Project"
    localized_description: str = "TuneLab 工程文件"
    localized_language: str = "zh_CN"

    def __post_init__(self) -> None:
        if not self.extension.startswith(".") or len(self.extension) < 2:
            raise ValueError(f"Extension must start with a dot: {self.extension!r}")
        if "/" in self.extension or "\\" in self.extension:
            raise ValueError(f"Extension must not contain path separators: {self.extension!r}")

    @property
    def bare_extension(self) -> str:
        return self.extension[1:]

    @property
    def glob_pattern(self) -> str:
        return f"*{self.extension}"


@dataclass(frozen=True)
class ApplicationIdentity:
    """Names under which the application is published to the desktop."""

    name: str = "TuneLab"
    slug: str = "tunelab"
    mime_type: str = "application/x-tunelab-project"
    file_icon_name: str = "tunelab-file"
    categories: str = "AudioVideo;Audio;"
    default_bundle_identifier: str = "com.tunelab.app"
    version: str = "1.0"


@dataclass(frozen=True)
class AssociationConfig:
    descriptor: FileTypeDescriptor = field(default_factory=FileTypeDescriptor)
    application: ApplicationIdentity = field(default_factory=ApplicationIdentity)
    tool_timeout: float = 5.0
    resize_timeout: float = 2.0
    assets_dir: Path | None = None


@dataclass(frozen=True)
class IconPaths:
    """Source icon assets; either path may be missing on disk."""

    application_icon_path: Path
    file_icon_path: Path

    @classmethod
    def for_platform(cls, assets_dir: Path, system: str) -> "IconPaths":
        suffix = ".ico" if system == "Windows" else ".png"
        return cls(
            application_icon_path=assets_dir / f"app{suffix}",
            file_icon_path=assets_dir / f"file{suffix}",
        )


@dataclass(frozen=True)
class BundleDescriptor:
    bundle_dir: Path
    bundle_identifier: str
    executable_name: str

    @property
    def contents_dir(self) -> Path:
        return self.bundle_dir / "Contents"

    @property
    def resources_dir(self) -> Path:
        return self.contents_dir / "Resources"

    @property
    def info_plist(self) -> Path:
        return self.contents_dir / "Info.plist"


@dataclass(frozen=True)
class IconSetEntry:
    size: int
    scale: int

    @property
    def pixels(self) -> int:
        return self.size * self.scale

    @property
    def file_name(self) -> str:
        suffix = "@2x" if self.scale == 2 else ""
        return f"icon_{self.size}x{self.size}{suffix}.png"


def iconset_entries() -> list[IconSetEntry]:
    """Return the canonical iconset members in packing order."""
    return [IconSetEntry(size=size, scale=scale) for size in ICONSET_SIZES for scale in ICONSET_SCALES]
