"""Cue sheet reading for raw binary disc images."""

import logging
import re
from pathlib import Path

logger = logging.getLogger(__name__)

CUE_SUFFIX = ".cue"
RENAMED_CUE_SUFFIX = ".cue.txt"
BIN_SUFFIX = ".bin"

# FILE "Game (Track 1).bin" BINARY, quotes optional when the name has no spaces
_FILE_PATTERN = re.compile(
    r'^\s*FILE\s+(?:"([^"]+)"|(\S+))\s+\S+\s*$',
    re.IGNORECASE | re.MULTILINE,
)


class CueSheetError(ValueError):
    """The cue sheet could not be read or lists no files."""


def is_cue_sheet(path: Path) -> bool:
    name = path.name.lower()
    return name.endswith(CUE_SUFFIX) or name.endswith(RENAMED_CUE_SUFFIX)


def canonical_cue_path(cue: Path) -> Path:
    """Return the ``.cue`` path for a renamed ``.cue.txt`` sheet (unchanged otherwise)."""
    if cue.name.lower().endswith(RENAMED_CUE_SUFFIX):
        return cue.with_name(cue.name[: -len(".txt")])
    return cue


def parse_track_files(cue: Path) -> list[str]:
    """Return the file names referenced by the cue sheet's FILE entries, in order."""
    try:
        data = cue.read_bytes()
    except OSError as e:
        msg = f"Failed to read cue sheet {cue}: {e}"
        raise CueSheetError(msg) from e

    # Sheets from older rippers are often cp1252; latin-1 keeps every byte of the names
    try:
        content = data.decode("utf-8-sig")
    except UnicodeDecodeError:
        content = data.decode("latin-1")

    files = [quoted or bare for quoted, bare in _FILE_PATTERN.findall(content)]
    if not files:
        msg = f"Cue sheet {cue} references no files"
        raise CueSheetError(msg)
    return files


def tracks_present(cue: Path) -> bool:
    """True when every referenced track is an existing ``.bin`` beside the cue sheet."""
    try:
        tracks = parse_track_files(cue)
    except CueSheetError as e:
        logger.debug(str(e))
        return False

    return all(
        name.lower().endswith(BIN_SUFFIX) and (cue.parent / name).is_file()
        for name in tracks
    )


def _sibling_sheet(image: Path) -> Path | None:
    """Same-stem sheet beside the image, '.cue' before '.cue.txt', in any letter case."""
    stem = image.name[: -len(image.suffix)] if image.suffix else image.name
    entries: list[Path] | None = None

    for suffix in (CUE_SUFFIX, RENAMED_CUE_SUFFIX):
        exact = image.with_name(stem + suffix)
        if exact.is_file():
            return exact

        if entries is None:
            try:
                entries = sorted(p for p in image.parent.iterdir() if p.is_file())
            except OSError:
                entries = []
        wanted = exact.name.lower()
        for entry in entries:
            if entry.name.lower() == wanted:
                return entry

    return None


def locate_cue_sheet(image: Path, *, search_directory: bool = True) -> Path | None:
    """Find the cue sheet describing a raw binary image.

    A sibling with the same base name wins, ``.cue`` before ``.cue.txt``.
    With ``search_directory``, a cue sheet in the same directory whose first
    FILE entry is this image is accepted too (multi-track sets, where only
    the first track is treated as the entry point).
    """
    sibling = _sibling_sheet(image)
    if sibling is not None:
        return sibling

    if not search_directory:
        return None

    try:
        siblings = sorted(p for p in image.parent.iterdir() if is_cue_sheet(p) and p.is_file())
    except OSError:
        return None

    for sheet in siblings:
        try:
            tracks = parse_track_files(sheet)
        except CueSheetError:
            continue
        if tracks[0] == image.name:
            return sheet

    return None
