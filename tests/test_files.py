"""Tests for file planning and cleanup."""

from unittest.mock import patch

from conftest_tools import write_cue
from romcomp.conversion.files import (
    FilePlanner,
    FileRole,
    ManagedFile,
    cleanup,
    first_with_role,
    size_on_disk,
)
from romcomp.formats.capability import RomCapability

RAW = RomCapability.BIN | RomCapability.PSX


class TestPlanRawImages:
    """Test planning for .bin/.cue images."""

    def test_bin_and_cue(self, tmp_path):
        """The image and its sheet are both inputs."""
        image = tmp_path / "game.bin"
        image.write_bytes(b"data")
        cue = write_cue(tmp_path / "game.cue", "game.bin")

        files = FilePlanner(tmp_path / "scratch").plan(image, RAW)

        assert files == [
            ManagedFile(image, FileRole.INPUT),
            ManagedFile(cue, FileRole.INPUT),
        ]

    def test_renamed_cue_copied(self, tmp_path):
        """A .cue.txt sheet is copied to a temporary .cue."""
        image = tmp_path / "game.bin"
        image.write_bytes(b"data")
        sheet = write_cue(tmp_path / "game.cue.txt", "game.bin")

        files = FilePlanner(tmp_path / "scratch").plan(image, RAW)

        canonical = tmp_path / "game.cue"
        assert ManagedFile(sheet, FileRole.INPUT) in files
        assert ManagedFile(canonical, FileRole.TEMPORARY) in files
        assert canonical.read_text() == sheet.read_text()

    def test_all_tracks_registered(self, tmp_path):
        """Every track of the sheet is an input, listed once."""
        first = tmp_path / "Game (Track 1).bin"
        second = tmp_path / "Game (Track 2).bin"
        first.write_bytes(b"1")
        second.write_bytes(b"2")
        cue = write_cue(tmp_path / "Game.cue", first.name, second.name)

        files = FilePlanner(tmp_path / "scratch").plan(first, RAW)

        assert files == [
            ManagedFile(first, FileRole.INPUT),
            ManagedFile(cue, FileRole.INPUT),
            ManagedFile(second, FileRole.INPUT),
        ]

    def test_tracks_not_registered_without_verification(self, tmp_path):
        """Without track verification only the image and sheet are planned."""
        image = tmp_path / "game.bin"
        image.write_bytes(b"1")
        write_cue(tmp_path / "game.cue", "game.bin", "other.bin")

        files = FilePlanner(tmp_path / "scratch", verify_tracks=False).plan(image, RAW)

        assert [f.path.name for f in files] == ["game.bin", "game.cue"]


class TestPlanCartridges:
    """Test planning for cartridge images."""

    def test_n64_conversion_target_is_temporary(self, tmp_path):
        """The z64 produced by the conversion is thrown away after packaging."""
        rom = tmp_path / "game.v64"
        rom.write_bytes(b"rom")

        files = FilePlanner(tmp_path / "scratch").plan(
            rom,
            RomCapability.V64 | RomCapability.NINTENDO_64,
        )

        assert files == [
            ManagedFile(rom, FileRole.INPUT),
            ManagedFile(tmp_path / "game.z64", FileRole.TEMPORARY),
        ]

    def test_z64_alone(self, tmp_path):
        """A canonical N64 image is the only file."""
        rom = tmp_path / "game.z64"
        rom.write_bytes(b"rom")

        files = FilePlanner(tmp_path / "scratch").plan(
            rom,
            RomCapability.Z64 | RomCapability.NINTENDO_64,
        )

        assert files == [ManagedFile(rom, FileRole.INPUT)]

    def test_nds_staged_in_scratch(self, tmp_path):
        """NDS images are copied to the scratch directory under their own name."""
        scratch = tmp_path / "scratch"
        rom = tmp_path / "game.nds"
        rom.write_bytes(b"nds rom")

        files = FilePlanner(scratch).plan(rom, RomCapability.NDS | RomCapability.NINTENDO_DS)

        staged = first_with_role(files, FileRole.TEMPORARY)
        assert files[0] == ManagedFile(rom, FileRole.INPUT)
        assert staged.name == "game.nds"
        assert staged.is_relative_to(scratch)
        assert staged.read_bytes() == b"nds rom"

    def test_nds_same_name_different_directories(self, tmp_path):
        """Two images with the same name are staged apart."""
        planner = FilePlanner(tmp_path / "scratch")
        capability = RomCapability.NDS | RomCapability.NINTENDO_DS
        (tmp_path / "a").mkdir()
        (tmp_path / "b").mkdir()
        (tmp_path / "a" / "game.nds").write_bytes(b"a")
        (tmp_path / "b" / "game.nds").write_bytes(b"b")

        staged_a = first_with_role(planner.plan(tmp_path / "a" / "game.nds", capability), FileRole.TEMPORARY)
        staged_b = first_with_role(planner.plan(tmp_path / "b" / "game.nds", capability), FileRole.TEMPORARY)

        assert staged_a != staged_b
        assert staged_a.read_bytes() == b"a"
        assert staged_b.read_bytes() == b"b"

    def test_copy_failure_is_not_fatal(self, tmp_path):
        """A failed staging copy is logged and the plan still returned."""
        rom = tmp_path / "game.nds"
        rom.write_bytes(b"rom")

        with patch("romcomp.conversion.files.shutil.copyfile", side_effect=OSError("disk full")):
            files = FilePlanner(tmp_path / "scratch").plan(
                rom,
                RomCapability.NDS | RomCapability.NINTENDO_DS,
            )

        staged = first_with_role(files, FileRole.TEMPORARY)
        assert staged is not None
        assert not staged.exists()

    def test_plain_image(self, tmp_path):
        """Everything else is just the input."""
        iso = tmp_path / "game.iso"
        iso.write_bytes(b"iso")

        files = FilePlanner(tmp_path / "scratch").plan(iso, RomCapability.ISO | RomCapability.PSP)

        assert files == [ManagedFile(iso, FileRole.INPUT)]


class TestCleanup:
    """Test role-based cleanup."""

    def _files(self, tmp_path):
        paths = {}
        for name in ("input", "temp", "output"):
            paths[name] = tmp_path / name
            paths[name].write_bytes(b"x")
        files = [
            ManagedFile(paths["input"], FileRole.INPUT),
            ManagedFile(paths["temp"], FileRole.TEMPORARY),
            ManagedFile(paths["output"], FileRole.OUTPUT),
        ]
        return paths, files

    def test_success_keeps_inputs(self, tmp_path):
        """Only temporaries are removed after success without removal."""
        paths, files = self._files(tmp_path)

        cleanup(files, remove_inputs=False, interrupted=False)

        assert paths["input"].exists()
        assert not paths["temp"].exists()
        assert paths["output"].exists()

    def test_success_with_removal(self, tmp_path):
        """Inputs go too when removal is enabled."""
        paths, files = self._files(tmp_path)

        cleanup(files, remove_inputs=True, interrupted=False)

        assert not paths["input"].exists()
        assert not paths["temp"].exists()
        assert paths["output"].exists()

    def test_interrupted(self, tmp_path):
        """An interrupted conversion loses its output and keeps its inputs."""
        paths, files = self._files(tmp_path)

        cleanup(files, remove_inputs=True, interrupted=True)

        assert paths["input"].exists()
        assert not paths["temp"].exists()
        assert not paths["output"].exists()

    def test_missing_files_ignored(self, tmp_path):
        """Files that were never created are skipped silently."""
        files = [
            ManagedFile(tmp_path / "never", FileRole.TEMPORARY),
            ManagedFile(tmp_path / "gone", FileRole.OUTPUT),
        ]

        cleanup(files, remove_inputs=True, interrupted=True)


class TestSizeOnDisk:
    """Test on-disk size measurement."""

    def test_missing_file(self, tmp_path):
        """Unreadable files measure 0."""
        assert size_on_disk(tmp_path / "missing") == 0

    def test_existing_file(self, tmp_path):
        """Existing files measure their allocated size."""
        path = tmp_path / "file"
        path.write_bytes(b"x" * 10000)

        assert size_on_disk(path) >= 0
        assert size_on_disk(path) == size_on_disk(path)
