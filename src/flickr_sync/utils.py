"""Local photo library scanning."""

import logging
import os
from collections.abc import Collection, Iterator
from pathlib import Path

from flickr_sync.models import ScannedFile

logger = logging.getLogger(__name__)

# Default supported image extensions
IMAGE_EXTENSIONS = frozenset({".png", ".jpg", ".jpeg"})

# Metadata directory created by Synology photo indexing
DEFAULT_SKIP_DIRS = frozenset({"@eaDir"})


def photo_name(path: Path) -> str:
    """Photo title for a file: its name up to the first dot."""
    return path.name.split(".")[0]


def is_image_file(path: Path, extensions: Collection[str] = IMAGE_EXTENSIONS) -> bool:
    """Check if a file has one of the allowed extensions.

    Args:
        path: Path to the file to check
        extensions: Allowed lower-case extensions, dot included

    Returns:
        True if the file's extension is allowed, False otherwise
    """
    return path.suffix.lower() in extensions


def scan_library(
    root_dir: Path,
    skip_dirs: Collection[str] = DEFAULT_SKIP_DIRS,
    extensions: Collection[str] = IMAGE_EXTENSIONS,
) -> Iterator[ScannedFile]:
    """Walk the library and yield every file eligible for upload.

    Directories named in ``skip_dirs`` are pruned together with everything
    below them. Files directly inside ``root_dir`` are never eligible since
    they have no album. The album of a file is its parent directory's name.
    Each call starts a fresh walk.

    Args:
        root_dir: Library root directory
        skip_dirs: Directory names to prune
        extensions: Allowed lower-case extensions, dot included

    Returns:
        Lazy iterator of scanned files, in lexical order

    Raises:
        FileNotFoundError: If root_dir doesn't exist
        NotADirectoryError: If root_dir is not a directory
    """
    if not root_dir.exists():
        raise FileNotFoundError(f"Root directory does not exist: {root_dir}")

    if not root_dir.is_dir():
        raise NotADirectoryError(f"Path is not a directory: {root_dir}")

    return _walk(root_dir, frozenset(skip_dirs), frozenset(extensions))


def _walk(root_dir: Path, skip_dirs: frozenset[str], extensions: frozenset[str]) -> Iterator[ScannedFile]:
    if root_dir.name in skip_dirs:
        logger.debug(f"[SKIP] Directory pruned: {root_dir}")
        return

    for dirpath, dirnames, filenames in os.walk(root_dir):
        for name in sorted(d for d in dirnames if d in skip_dirs):
            logger.debug(f"[SKIP] Directory pruned: {os.path.join(dirpath, name)}")
        dirnames[:] = sorted(d for d in dirnames if d not in skip_dirs)

        current = Path(dirpath)
        is_root = current == root_dir

        for filename in sorted(filenames):
            path = current / filename

            if is_root:
                logger.info(f"[SKIP] Root folder not processed: {path}")
                continue

            if not is_image_file(path, extensions):
                logger.info(f"[SKIP] File not supported: {path}")
                continue

            yield ScannedFile(path=path.absolute(), album=current.name, photo_name=photo_name(path))
