"""Find the real executable inside an extracted release archive."""

import logging
import os
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)

# Release binaries are tens of MB; READMEs, licenses and completions are not.
MIN_BINARY_SIZE = 1024 * 1024


def locate(
    root_dir: Union[str, Path],
    name_substring: str,
    excluded_suffix: Optional[str] = None,
    min_size: int = MIN_BINARY_SIZE,
) -> Optional[Path]:
    """Depth-first search for a regular file whose name contains name_substring.

    A match must be larger than min_size bytes and must not end with excluded_suffix.
    Entries are visited in sorted name order so the first match is deterministic.
    Returns None when root_dir does not exist or nothing matches.
    """
    root = Path(root_dir)
    if not root.is_dir():
        return None
    try:
        entries = sorted(os.scandir(root), key=lambda e: e.name)
    except OSError as e:
        logger.warning("Cannot list %s: %s", root, e)
        return None
    for entry in entries:
        if entry.is_dir(follow_symlinks=False):
            found = locate(entry.path, name_substring, excluded_suffix, min_size)
            if found is not None:
                return found
            continue
        if not entry.is_file(follow_symlinks=False):
            continue
        if name_substring not in entry.name:
            continue
        if excluded_suffix and entry.name.endswith(excluded_suffix):
            continue
        if entry.stat(follow_symlinks=False).st_size > min_size:
            return Path(entry.path)
    return None
