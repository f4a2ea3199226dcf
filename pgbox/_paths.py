"""Permission helpers for the data directory tree."""

from __future__ import annotations

import os
import stat
import sys
from pathlib import Path

_GROUP_OTHER_BITS = stat.S_IRWXG | stat.S_IRWXO


def strip_group_other(path: Path) -> None:
    """Clear the group and other permission bits on *path* (no-op on Windows)."""
    if sys.platform == "win32":
        return
    mode = stat.S_IMODE(path.lstat().st_mode)
    path.chmod(mode & ~_GROUP_OTHER_BITS)


def restrict_tree(root: Path) -> None:
    """Apply :func:`strip_group_other` to *root* and everything below it.

    Symlinks are left alone; ``chmod`` would follow them out of the tree.
    """
    strip_group_other(root)
    for dirpath, dirnames, filenames in os.walk(root):
        for name in (*dirnames, *filenames):
            entry = Path(dirpath) / name
            if entry.is_symlink():
                continue
            strip_group_other(entry)
