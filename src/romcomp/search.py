"""Find convertible ROMs below a location."""

import logging
from collections.abc import Iterator
from pathlib import Path

from .formats.capability import RomCapability
from .formats.classifier import classify

logger = logging.getLogger(__name__)


def discover(
    location: Path,
    target: RomCapability,
    *,
    verify_tracks: bool = True,
) -> Iterator[tuple[Path, RomCapability]]:
    """Yield ``(path, capability)`` for every ROM of the target platform.

    The capability is narrowed to ``target``. The file list is taken up
    front; each file is classified only when reached, so files removed by
    earlier conversions drop out.
    """
    if location.is_file():
        candidates = [location]
    else:
        candidates = sorted(p for p in location.rglob("*") if p.is_file())
        logger.debug(f"Found {len(candidates)} files below {location}")

    for path in candidates:
        capability = classify(path, verify_tracks=verify_tracks)
        if capability is not None and target in capability:
            yield path, capability.narrow(target)
