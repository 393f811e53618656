"""Unique storage names for new assets"""

import os
import secrets
from typing import Optional

from models.asset import AssetIdentity, Classification

MIN_ID_BYTES = 8


def original_extension(filename: Optional[str]) -> str:
    """Lowercased extension of a caller-supplied filename, without the dot."""
    if not filename:
        return ""
    ext = os.path.splitext(os.path.basename(filename))[1]
    return ext.lower().lstrip(".")


def thumbnail_filename_for(stored_filename: str) -> str:
    """<base>_thumb<ext> sibling name for a stored file"""
    base, ext = os.path.splitext(stored_filename)
    return f"{base}_thumb{ext}"


class IdentityAllocator:
    """Allocates random, URL- and filesystem-safe asset names.

    Names are not checked against existing files; with at least 64 random
    bits per id collisions are treated as practically impossible.
    """

    def __init__(self, id_bytes: int = MIN_ID_BYTES):
        if id_bytes < MIN_ID_BYTES:
            raise ValueError(f"id_bytes must be at least {MIN_ID_BYTES}, got {id_bytes}")
        self.id_bytes = id_bytes

    def new_id(self) -> str:
        return secrets.token_hex(self.id_bytes)

    def allocate(
        self,
        classification: Classification,
        original_filename: Optional[str] = None,
    ) -> AssetIdentity:
        unique_id = self.new_id()

        if classification.is_image:
            extension = classification.format
        else:
            extension = original_extension(original_filename)

        stored_filename = f"{unique_id}.{extension}" if extension else unique_id
        thumbnail_filename = (
            thumbnail_filename_for(stored_filename) if classification.is_image else None
        )
        return AssetIdentity(
            unique_id=unique_id,
            extension=extension,
            stored_filename=stored_filename,
            thumbnail_filename=thumbnail_filename,
        )
