"""Tests for unique asset name allocation"""

import re

import pytest

from managers.identity_allocator import (
    IdentityAllocator,
    original_extension,
    thumbnail_filename_for,
)
from models.asset import Classification

HEX_ID = re.compile(r"^[0-9a-f]{16}$")
PNG = Classification(is_image=True, format="png", width=50, height=50)
NOT_IMAGE = Classification(is_image=False)


class TestIdentityAllocator:
    """Tests for IdentityAllocator"""

    def test_ids_are_hex_and_url_safe(self):
        identity = IdentityAllocator().allocate(PNG)
        assert HEX_ID.match(identity.unique_id)

    def test_ids_are_pairwise_distinct(self):
        """10,000 sequential allocations never repeat"""
        allocator = IdentityAllocator()
        ids = [allocator.allocate(NOT_IMAGE).unique_id for _ in range(10_000)]
        assert len(set(ids)) == len(ids)

    def test_image_uses_detected_format(self):
        """Images take their extension from the decoded format, not the filename"""
        identity = IdentityAllocator().allocate(PNG, original_filename="photo.JPG")

        assert identity.extension == "png"
        assert identity.stored_filename == f"{identity.unique_id}.png"
        assert identity.thumbnail_filename == f"{identity.unique_id}_thumb.png"

    def test_non_image_uses_lowercased_original_extension(self):
        identity = IdentityAllocator().allocate(NOT_IMAGE, original_filename="Notes.TXT")

        assert identity.extension == "txt"
        assert identity.stored_filename == f"{identity.unique_id}.txt"
        assert identity.thumbnail_filename is None

    def test_non_image_without_extension(self):
        identity = IdentityAllocator().allocate(NOT_IMAGE, original_filename="README")

        assert identity.extension == ""
        assert identity.stored_filename == identity.unique_id

    def test_longer_ids(self):
        identity = IdentityAllocator(id_bytes=16).allocate(NOT_IMAGE)
        assert len(identity.unique_id) == 32

    def test_rejects_short_ids(self):
        with pytest.raises(ValueError):
            IdentityAllocator(id_bytes=4)


class TestNamingHelpers:
    """Tests for filename helpers"""

    def test_original_extension(self):
        assert original_extension("report.PDF") == "pdf"
        assert original_extension("archive.tar.gz") == "gz"
        assert original_extension("/tmp/upload/scan.Png") == "png"
        assert original_extension(".bashrc") == ""
        assert original_extension(None) == ""
        assert original_extension("") == ""

    def test_thumbnail_filename_for(self):
        assert thumbnail_filename_for("abc123.jpeg") == "abc123_thumb.jpeg"
        assert thumbnail_filename_for("abc123") == "abc123_thumb"
