"""
Zip archive extraction into fresh local directories.

The destination of an extraction must not exist beforehand. If extraction fails
partway, the partially written destination is removed before the error is
raised, so callers never observe a half-extracted directory.
"""

import logging
import shutil
import tempfile
import uuid
import zipfile
import zlib
from pathlib import Path
from typing import Optional, Union

from constants import DEFAULT_BUFFER_SIZE
from exceptions import (
    CleanupFailedError,
    ExtractionFailedError,
    InvalidArgumentError,
    MissingArgumentError,
)

logger = logging.getLogger(__name__)

_EXTRACTION_ERRORS = (
    OSError,
    EOFError,
    ValueError,
    NotImplementedError,
    zipfile.BadZipFile,
    zlib.error,
)


def _safe_member_path(target_dir: Path, name: str) -> Path:
    target_dir_resolved = target_dir.resolve()
    member_path = (target_dir / name).resolve()
    if not member_path.is_relative_to(target_dir_resolved):
        raise ValueError(f"unsafe zip member path: {name}")
    return member_path


def delete_directory(path: Union[str, Path]) -> bool:
    """
    Delete a directory and all of its contents.

    Returns:
        True if the directory no longer exists
    """
    path = Path(path)
    if path.exists():
        shutil.rmtree(path)
    return not path.exists()


def extract(archive: Union[str, Path], destination: Union[str, Path]) -> Path:
    """Extract a zip archive into a directory.

    Args:
        archive: Zip archive to extract
        destination: Directory to create and extract into. Must not exist.

    Returns:
        The directory the archive was extracted into

    Raises:
        InvalidArgumentError: If the archive does not exist or the destination does
        ExtractionFailedError: If extraction failed and the destination was removed
        CleanupFailedError: If extraction failed and the destination could not be removed
    """
    archive = Path(archive)
    destination = Path(destination)

    if not archive.exists():
        raise InvalidArgumentError(f"archive does not exist: {archive}")
    if destination.exists():
        raise InvalidArgumentError(f"destination already exists: {destination}")

    destination.mkdir(parents=True)

    try:
        with zipfile.ZipFile(archive) as zf:
            for info in zf.infolist():
                entry = _safe_member_path(destination, info.filename)
                entry.parent.mkdir(parents=True, exist_ok=True)
                if info.is_dir():
                    entry.mkdir(parents=True, exist_ok=True)
                    continue

                with zf.open(info) as source, open(entry, "wb") as target:
                    shutil.copyfileobj(source, target, DEFAULT_BUFFER_SIZE)
    except _EXTRACTION_ERRORS as e:
        # Try to clean up the destination and all files
        try:
            removed = delete_directory(destination)
        except OSError as cleanup_error:
            logger.error(f"Failed to remove {destination}: {cleanup_error}")
            removed = False

        if not removed:
            raise CleanupFailedError(
                f"could not clean up {destination} after error extracting {archive}"
            ) from e
        raise ExtractionFailedError(f"error extracting archive {archive}: {e}") from e

    logger.debug(f"Extracted {archive} to {destination}")
    return destination


def extract_to_temp(
    archive: Optional[Union[str, Path]], temp_dir: Optional[Union[str, Path]] = None
) -> Path:
    """
    Extract an archive into a new, uniquely named temporary directory.

    Args:
        archive: Zip archive to extract
        temp_dir: Parent of the new directory (default: system temp directory)
    """
    if archive is None:
        raise MissingArgumentError("archive is required")

    parent = Path(temp_dir) if temp_dir is not None else Path(tempfile.gettempdir())
    return extract(archive, parent / uuid.uuid4().hex)
