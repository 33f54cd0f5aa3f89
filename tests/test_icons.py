import tempfile
import unittest
from pathlib import Path
from unittest import mock

from PIL import Image

from tunelab_association.domain.types import iconset_entries
from tunelab_association.icons import convert_to_icns, install_bundle_icon, write_ico, write_theme_icon


def _write_png(path: Path, size: int = 64) -> Path:
    Image.new("RGBA", (size, size), (40, 120, 200, 255)).save(path, format="PNG")
    return path


class FakeMacTools:
    """Stand-in for sips and iconutil that writes the files the real tools would."""

    def __init__(self, *, pack_succeeds: bool = True) -> None:
        self.pack_succeeds = pack_succeeds
        self.commands: list[list[str]] = []
        self.iconset_dirs: list[Path] = []
        self.timeouts: list[tuple[str, float]] = []

    def __call__(self, args, *, timeout):
        command = [str(arg) for arg in args]
        self.commands.append(command)
        self.timeouts.append((command[0], timeout))
        if command[0] == "sips":
            Path(command[-1]).write_bytes(b"png")
            return True
        if command[0] == "iconutil":
            self.iconset_dirs.append(Path(command[3]))
            if self.pack_succeeds:
                Path(command[-1]).write_bytes(b"icns" * 16)
            return self.pack_succeeds
        return False


class IconSetTests(unittest.TestCase):
    def test_iconset_has_ten_named_entries(self) -> None:
        names = [entry.file_name for entry in iconset_entries()]

        self.assertEqual(len(names), 10)
        self.assertEqual(names[0], "icon_16x16.png")
        self.assertEqual(names[1], "icon_16x16@2x.png")
        self.assertIn("icon_512x512@2x.png", names)
        self.assertEqual(iconset_entries()[-1].pixels, 1024)


class ConvertToIcnsTests(unittest.TestCase):
    def test_builds_icns_and_removes_iconset(self) -> None:
        tools = FakeMacTools()
        with tempfile.TemporaryDirectory() as temp_dir:
            source = _write_png(Path(temp_dir) / "file.png")
            target = Path(temp_dir) / "tunelab-file.icns"

            with mock.patch("tunelab_association.icons.run_tool", side_effect=tools):
                self.assertTrue(convert_to_icns(source, target, timeout=5, resize_timeout=2))

            self.assertGreater(target.stat().st_size, 0)

        resize_commands = [command for command in tools.commands if command[0] == "sips"]
        self.assertEqual(len(resize_commands), 10)
        self.assertIn(["-z", "1024", "1024"], [command[1:4] for command in resize_commands])
        self.assertEqual({timeout for tool, timeout in tools.timeouts if tool == "sips"}, {2})
        self.assertEqual([timeout for tool, timeout in tools.timeouts if tool == "iconutil"], [5])
        self.assertEqual(len(tools.iconset_dirs), 1)
        self.assertFalse(tools.iconset_dirs[0].exists())

    def test_failed_resizes_do_not_stop_packing(self) -> None:
        calls = []

        def run_tool(args, *, timeout):
            calls.append(str(args[0]))
            return False

        with tempfile.TemporaryDirectory() as temp_dir:
            source = _write_png(Path(temp_dir) / "file.png")
            target = Path(temp_dir) / "tunelab-file.icns"

            with mock.patch("tunelab_association.icons.run_tool", side_effect=run_tool):
                self.assertFalse(convert_to_icns(source, target, timeout=5, resize_timeout=2))

            self.assertFalse(target.exists())
        self.assertEqual(calls.count("sips"), 10)
        self.assertEqual(calls[-1], "iconutil")


class InstallBundleIconTests(unittest.TestCase):
    def test_returns_icns_name_when_conversion_works(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            source = _write_png(Path(temp_dir) / "file.png")
            resources = Path(temp_dir) / "Resources"
            resources.mkdir()

            with mock.patch("tunelab_association.icons.run_tool", side_effect=FakeMacTools()):
                name = install_bundle_icon(source, resources, "tunelab-file", timeout=5, resize_timeout=2)

            self.assertEqual(name, "tunelab-file.icns")
            self.assertTrue((resources / "tunelab-file.icns").exists())

    def test_copies_source_when_no_tool_is_usable(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            source = _write_png(Path(temp_dir) / "file.png")
            resources = Path(temp_dir) / "Resources"
            resources.mkdir()

            with mock.patch("tunelab_association.shared.shutil.which", return_value=None):
                name = install_bundle_icon(source, resources, "tunelab-file", timeout=5, resize_timeout=2)

            self.assertEqual(name, "tunelab-file.png")
            self.assertEqual((resources / "tunelab-file.png").read_bytes(), source.read_bytes())
            self.assertFalse((resources / "tunelab-file.icns").exists())

    def test_missing_source_returns_none(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            resources = Path(temp_dir)

            name = install_bundle_icon(resources / "missing.png", resources, "AppIcon", timeout=5, resize_timeout=2)

            self.assertIsNone(name)
            self.assertEqual(list(resources.iterdir()), [])


class PillowConversionTests(unittest.TestCase):
    def test_write_ico_produces_windows_icon(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            source = _write_png(Path(temp_dir) / "file.png", size=256)
            target = Path(temp_dir) / "nested" / "tunelab-file.ico"

            self.assertTrue(write_ico(source, target))

            with Image.open(target) as image:
                self.assertEqual(image.format, "ICO")

    def test_write_ico_rejects_non_image(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            source = Path(temp_dir) / "file.png"
            source.write_bytes(b"not an image")

            self.assertFalse(write_ico(source, Path(temp_dir) / "file.ico"))

    def test_write_theme_icon_resizes_to_theme_size(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            source = _write_png(Path(temp_dir) / "file.png", size=64)
            target = Path(temp_dir) / "tunelab-file.png"

            write_theme_icon(source, target)

            with Image.open(target) as image:
                self.assertEqual(image.size, (256, 256))

    def test_write_theme_icon_copies_unreadable_source(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            source = Path(temp_dir) / "file.png"
            source.write_bytes(b"opaque bytes")
            target = Path(temp_dir) / "tunelab-file.png"

            write_theme_icon(source, target)

            self.assertEqual(target.read_bytes(), b"opaque bytes")


if __name__ == "__main__":
    unittest.main()
