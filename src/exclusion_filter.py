"""
File selection over local directory trees.

A selector decides which files a walk includes and which directories it
descends into. The exclusion filter is a selector used destructively to prune
libraries from a temporary copy of a plugin folder before it is staged.
"""

import logging
import os
from pathlib import Path
from typing import List, Optional, Protocol, Union

from constants import LIBRARY_EXTENSION

logger = logging.getLogger(__name__)


class FileSelector(Protocol):
    def include_file(self, path: Path) -> bool:
        """Whether the file at `path` is selected."""
        ...

    def traverse_descendants(self, path: Path) -> bool:
        """Whether the walk descends into the directory at `path`."""
        ...


class ExtensionSelector:
    """Selects every file with the given extension, or every file when None."""

    def __init__(self, extension: Optional[str] = None) -> None:
        self.extension = extension

    def include_file(self, path: Path) -> bool:
        return self.extension is None or _extension(path) == self.extension

    def traverse_descendants(self, path: Path) -> bool:
        return True


class ExcludedLibrarySelector:
    """Selects libraries whose file name starts with one of the excluded prefixes."""

    def __init__(self, exclude_prefixes: str) -> None:
        self.prefixes = parse_prefixes(exclude_prefixes)

    def include_file(self, path: Path) -> bool:
        if _extension(path) != LIBRARY_EXTENSION:
            return False
        return any(path.name.startswith(prefix) for prefix in self.prefixes)

    def traverse_descendants(self, path: Path) -> bool:
        return True


def _extension(path: Path) -> str:
    # Extension without the dot, as it appears after the last "."
    return path.suffix[1:] if path.suffix else ""


def parse_prefixes(exclude_prefixes: Optional[str]) -> List[str]:
    """Split a comma-separated prefix list, dropping blank entries."""
    if not exclude_prefixes:
        return []
    return [prefix.strip() for prefix in exclude_prefixes.split(",") if prefix.strip()]


def find_files(root: Union[str, Path], selector: FileSelector) -> List[Path]:
    """
    Recursively collect the files under `root` accepted by `selector`.

    Returns:
        Selected files, in sorted walk order
    """
    root = Path(root)
    found: List[Path] = []
    for dirpath, dirnames, filenames in os.walk(root):
        current = Path(dirpath)
        dirnames[:] = sorted(
            name for name in dirnames if selector.traverse_descendants(current / name)
        )
        for name in sorted(filenames):
            path = current / name
            if selector.include_file(path):
                found.append(path)
    return found


def find_files_with_extension(root: Union[str, Path], extension: Optional[str] = None) -> List[str]:
    """Absolute paths of all files under `root` with `extension` (all files if None)."""
    return [str(path.resolve()) for path in find_files(root, ExtensionSelector(extension))]


def delete_files(root: Union[str, Path], selector: FileSelector) -> List[Path]:
    """Delete every file under `root` accepted by `selector` and return what was deleted."""
    deleted = find_files(root, selector)
    for path in deleted:
        path.unlink()
    return deleted


def remove_excluded_files(folder: Union[str, Path], exclude_prefixes: str) -> List[Path]:
    """
    Delete libraries whose names start with an excluded prefix, recursively.

    Only library files are considered; every other file is left untouched.
    This is destructive and is meant for temporary copies only.

    Args:
        folder: Directory to prune
        exclude_prefixes: Comma-separated file name prefixes, e.g. "foo,bar"

    Returns:
        The deleted files
    """
    selector = ExcludedLibrarySelector(exclude_prefixes)
    if not selector.prefixes:
        return []

    deleted = delete_files(folder, selector)
    if deleted:
        logger.debug(f"Excluded {len(deleted)} libraries from {folder}")
    return deleted
