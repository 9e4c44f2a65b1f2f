"""Files taking part in one conversion, and their cleanup."""

import hashlib
import logging
import os
import shutil
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from ..formats.capability import RomCapability
from ..formats.cue import (
    CueSheetError,
    canonical_cue_path,
    locate_cue_sheet,
    parse_track_files,
)

logger = logging.getLogger(__name__)


class FileRole(Enum):
    """What a file is to the conversion, which decides its cleanup."""

    INPUT = "input"  # not created by romcomp
    TEMPORARY = "temporary"  # created by romcomp, always removed
    OUTPUT = "output"  # the conversion target


@dataclass(frozen=True)
class ManagedFile:
    path: Path
    role: FileRole


def size_on_disk(path: Path) -> int:
    """Allocated size of a file in bytes, 0 if it can't be read."""
    try:
        stat = path.stat()
    except OSError:
        return 0
    blocks = getattr(stat, "st_blocks", None)
    if blocks is None:
        return stat.st_size
    return blocks * 512


def first_with_role(files: list[ManagedFile], role: FileRole) -> Path | None:
    return next((f.path for f in files if f.role == role), None)


class FilePlanner:
    """Works out which files a conversion reads, creates and throws away.

    Staging copies are made while planning. A failed copy is logged and
    the plan is returned anyway; the tool run on the missing copy then fails.
    """

    def __init__(self, scratch_dir: Path, *, verify_tracks: bool = True):
        self.scratch_dir = scratch_dir
        self.verify_tracks = verify_tracks

    def plan(self, path: Path, capability: RomCapability) -> list[ManagedFile]:
        """Return the managed files for converting ``path``."""
        if RomCapability.BIN in capability:
            return self._plan_raw_image(path)

        if RomCapability.NINTENDO_64 in capability and RomCapability.Z64 not in capability:
            return [
                ManagedFile(path, FileRole.INPUT),
                ManagedFile(path.with_suffix(".z64"), FileRole.TEMPORARY),
            ]

        if RomCapability.NINTENDO_DS in capability:
            staged = self._staging_path(path)
            self._copy(path, staged)
            return [
                ManagedFile(path, FileRole.INPUT),
                ManagedFile(staged, FileRole.TEMPORARY),
            ]

        return [ManagedFile(path, FileRole.INPUT)]

    def _plan_raw_image(self, image: Path) -> list[ManagedFile]:
        cue = locate_cue_sheet(image, search_directory=self.verify_tracks)
        if cue is None:
            msg = f"No cue sheet found for {image}"
            raise ValueError(msg)

        files = [ManagedFile(image, FileRole.INPUT), ManagedFile(cue, FileRole.INPUT)]

        canonical = canonical_cue_path(cue)
        if canonical != cue:
            self._copy(cue, canonical)
            files.append(ManagedFile(canonical, FileRole.TEMPORARY))

        if self.verify_tracks:
            try:
                tracks = parse_track_files(cue)
            except CueSheetError as e:
                logger.warning(str(e))
                tracks = []
            known = {f.path for f in files}
            for name in tracks:
                track = cue.parent / name
                if track not in known:
                    files.append(ManagedFile(track, FileRole.INPUT))
                    known.add(track)

        return files

    def _staging_path(self, path: Path) -> Path:
        # One directory per source path keeps the original file name for the archive entry
        digest = hashlib.sha1(str(path.resolve()).encode()).hexdigest()[:16]
        return self.scratch_dir / digest / path.name

    def _copy(self, source: Path, target: Path) -> None:
        logger.debug(f"Copy {source} to {target} temporarily")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, target)
        except OSError as e:
            logger.warning(f"Failed to copy {source} to {target}: {e}")


def cleanup(files: list[ManagedFile], *, remove_inputs: bool, interrupted: bool) -> None:
    """Delete what a finished conversion leaves behind.

    Temporary files always go, inputs only after a successful conversion
    with ``remove_inputs``, the output only when the conversion was interrupted.
    """
    for managed in files:
        if managed.role == FileRole.TEMPORARY:
            logger.debug(f"Deleting temporary file {managed.path}")
        elif managed.role == FileRole.INPUT and remove_inputs and not interrupted:
            logger.debug(f"Deleting input file {managed.path}")
        elif managed.role == FileRole.OUTPUT and interrupted:
            logger.debug(f"Deleting incomplete output file {managed.path}")
        else:
            continue

        try:
            os.remove(managed.path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to delete {managed.path}: {e}")
