"""Guess the capability of a file from its name and, for raw images, its cue sheet."""

from pathlib import Path

from .capability import RomCapability
from .cue import BIN_SUFFIX, locate_cue_sheet, tracks_present

EXTENSION_CAPABILITIES: dict[str, RomCapability] = {
    ".iso": (
        RomCapability.ISO
        | RomCapability.PSX
        | RomCapability.PS2
        | RomCapability.PSP
        | RomCapability.WII
    ),
    ".n64": RomCapability.N64 | RomCapability.NINTENDO_64,
    ".v64": RomCapability.V64 | RomCapability.NINTENDO_64,
    ".z64": RomCapability.Z64 | RomCapability.NINTENDO_64,
    ".nds": RomCapability.NDS | RomCapability.NINTENDO_DS,
}

RAW_IMAGE_CAPABILITY = RomCapability.BIN | RomCapability.PSX | RomCapability.PS2


def classify(path: Path, *, verify_tracks: bool = True) -> RomCapability | None:
    """Return the capability bit-set of ``path``, or None if it isn't a recognized ROM.

    A ``.bin`` image is only recognized together with its cue sheet. With
    ``verify_tracks`` every track named by the cue sheet must be a ``.bin``
    file next to it, otherwise the image is left unrecognized.
    """
    if not path.is_file():
        return None

    suffix = path.suffix.lower()

    if suffix == BIN_SUFFIX:
        cue = locate_cue_sheet(path, search_directory=verify_tracks)
        if cue is None:
            return None
        if verify_tracks and not tracks_present(cue):
            return None
        return RAW_IMAGE_CAPABILITY

    return EXTENSION_CAPABILITIES.get(suffix)
