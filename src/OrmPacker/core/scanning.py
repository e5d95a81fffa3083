"""Recursive texture file enumeration."""

import logging
import os
from typing import List

logger = logging.getLogger("orm_packer")


def list_texture_files(root: str, extension: str) -> List[str]:
    """Return every file under ``root`` whose extension matches, case-insensitively.

    Directories and files are walked in sorted order so discovery order (and
    therefore first-match role lookups) is stable between runs.
    """
    suffix = "." + extension.lstrip(".").lower()
    found = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        for fname in sorted(filenames):
            if fname.lower().endswith(suffix):
                found.append(os.path.join(dirpath, fname))
    logger.info(f"Files found: {len(found)} (*{suffix} under {root})")
    return found
