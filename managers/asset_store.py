"""Local asset directory: saving, deleting and purging stored files"""

import logging
import os
from pathlib import Path
from typing import List, Optional, Union

from asset_processor import DEFAULT_THUMBNAIL_SIZE, create_thumbnail
from errors import StorageError

logger = logging.getLogger("MCP_Server")


def canonicalize_path(path: Union[str, Path], must_exist: bool = True) -> Path:
    """Resolve path to absolute real path (handles symlinks).

    Raises:
        ValueError: If path cannot be resolved and must_exist=True
    """
    try:
        return Path(path).resolve(strict=must_exist)
    except (OSError, RuntimeError) as e:
        raise ValueError(f"Cannot resolve path {path}: {e}")


def is_within(
    child_path: Union[str, Path],
    parent_path: Union[str, Path],
    child_must_exist: bool = True,
    parent_must_exist: bool = True,
) -> bool:
    """Check if child_path is within parent_path using real path resolution.

    Both paths are canonicalized (symlinks resolved) before comparison.
    """
    try:
        child_real = canonicalize_path(child_path, must_exist=child_must_exist)
        parent_real = canonicalize_path(parent_path, must_exist=parent_must_exist)
        return child_real.is_relative_to(parent_real)
    except (ValueError, OSError, TypeError):
        return False


class AssetStore:
    """Owns the single flat directory holding originals and thumbnails.

    One reserved marker file keeps the directory trackable when empty; it is
    never deleted. No locking is done: concurrent writers use distinct
    random names.
    """

    def __init__(
        self,
        asset_dir: Union[str, Path],
        reserved_marker: str = ".gitkeep",
        thumbnail_size: int = DEFAULT_THUMBNAIL_SIZE,
    ):
        self.asset_dir = Path(asset_dir).resolve()
        self.reserved_marker = reserved_marker
        self.thumbnail_size = thumbnail_size

    def ensure_directory(self) -> Path:
        """Create the asset directory and its marker file if needed"""
        try:
            self.asset_dir.mkdir(parents=True, exist_ok=True)
            (self.asset_dir / self.reserved_marker).touch(exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot prepare asset directory {self.asset_dir}: {e}") from e
        logger.info(f"Asset directory ready: {self.asset_dir}")
        return self.asset_dir

    def resolve_path(self, filename: str) -> Path:
        """Map a bare filename onto a path inside the asset directory.

        Raises:
            StorageError: If the name is empty, has directory parts, or
                resolves outside the asset directory
        """
        if not filename or filename in (".", "..") or os.path.basename(filename) != filename:
            raise StorageError(f"Invalid asset filename: {filename!r}")

        target = self.asset_dir / filename
        if not is_within(target, self.asset_dir, child_must_exist=False, parent_must_exist=False):
            raise StorageError(
                f"Asset path {target} is outside asset directory {self.asset_dir}"
            )
        return target

    def _write_atomic(self, target: Path, data: bytes):
        temp_path = target.with_name(target.name + ".tmp")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_path, "wb") as f:
                f.write(data)
            temp_path.replace(target)
        except OSError as e:
            if temp_path.exists():
                try:
                    temp_path.unlink()
                except OSError:
                    logger.warning(f"Could not remove temp file {temp_path}")
            raise StorageError(f"Failed to write {target.name}: {e}") from e

    def save_original(self, data: bytes, filename: str) -> Path:
        """Write the payload bytes unchanged.

        Images are stored verbatim too, so embedded orientation and metadata
        are kept exactly as uploaded.
        """
        target = self.resolve_path(filename)
        self._write_atomic(target, data)
        logger.info(f"Saved asset {filename} ({len(data)} bytes)")
        return target

    def save_thumbnail(self, data: bytes, filename: str, format: Optional[str] = None) -> Path:
        """Encode and write a square thumbnail of an image payload"""
        target = self.resolve_path(filename)
        try:
            thumbnail = create_thumbnail(data, size=self.thumbnail_size, format=format)
        except ValueError as e:
            raise StorageError(f"Failed to encode thumbnail {filename}: {e}") from e
        self._write_atomic(target, thumbnail)
        logger.info(f"Saved thumbnail {filename} ({len(thumbnail)} bytes)")
        return target

    def delete(self, filename: str) -> bool:
        """Remove a stored file.

        Returns True when a file was removed, False when it was already gone.
        The reserved marker is never removed.
        """
        if filename == self.reserved_marker:
            logger.warning(f"Refusing to delete reserved marker {filename}")
            return False

        target = self.resolve_path(filename)
        try:
            target.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(f"Failed to delete {filename}: {e}") from e
        logger.info(f"Deleted asset file {filename}")
        return True

    def list_all(self) -> List[str]:
        """Names of every regular file in the asset directory, marker excluded"""
        if not self.asset_dir.exists():
            return []
        try:
            return sorted(
                entry.name for entry in self.asset_dir.iterdir()
                if entry.name != self.reserved_marker and entry.is_file()
            )
        except OSError as e:
            raise StorageError(f"Failed to list {self.asset_dir}: {e}") from e

    def purge_all(self) -> List[str]:
        """Delete every file except the reserved marker; returns removed names"""
        removed = []
        for filename in self.list_all():
            if self.delete(filename):
                removed.append(filename)
        if removed:
            logger.info(f"Purged {len(removed)} files from {self.asset_dir}")
        return removed
