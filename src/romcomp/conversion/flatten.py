"""Collapse directories that only exist to hold a single converted file."""

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)


def _is_singleton(directory: Path) -> bool:
    try:
        with os.scandir(directory) as entries:
            return sum(1 for _ in entries) == 1
    except OSError:
        return False


def flatten_directories(output: Path, root: Path) -> Path:
    """Move ``output`` up past every ancestor that holds nothing else.

    Walks up from the output's parent while the directory is below ``root``
    and contains exactly one entry, moves the file to the first directory
    failing either test and removes the emptied directories innermost
    first. Nothing outside ``root`` is touched. An I/O error stops the walk
    where it is. Returns the file's final location.
    """
    parent = output.parent
    target = parent

    while target != root and target.is_relative_to(root) and _is_singleton(target):
        if target.parent == target:
            break
        target = target.parent

    if target == parent:
        return output

    destination = target / output.name
    if destination.exists():
        logger.debug(f"Not flattening {output}: {destination} already exists")
        return output

    logger.debug(f"Moving {output} to {destination}")
    try:
        os.rename(output, destination)
    except OSError as e:
        logger.debug(f"Error moving file: {e}")
        return output

    current = parent
    while current != target:
        logger.debug(f"Removing empty directory {current}")
        try:
            os.rmdir(current)
        except OSError as e:
            logger.debug(f"Error removing directory: {e}")
            break
        current = current.parent

    return destination
