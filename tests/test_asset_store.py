"""Tests for the local asset store and path safety utilities

Run with pytest from project root:
    pytest tests/test_asset_store.py -v
"""

from io import BytesIO
from pathlib import Path
from unittest.mock import patch

import pytest
from PIL import Image

from errors import StorageError
from managers.asset_store import AssetStore, canonicalize_path, is_within


class TestPathSafety:
    """Tests for path safety utilities"""

    def test_canonicalize_path_absolute(self, tmp_path):
        """Test canonicalize_path with absolute path"""
        test_file = tmp_path / "test.txt"
        test_file.write_text("test")

        result = canonicalize_path(test_file)
        assert isinstance(result, Path)
        assert result.is_absolute()
        assert result.exists()

    def test_canonicalize_path_nonexistent(self):
        """Test canonicalize_path with nonexistent path raises ValueError"""
        with pytest.raises(ValueError):
            canonicalize_path("/nonexistent/path/that/does/not/exist")

    def test_canonicalize_path_nonexistent_optional(self, tmp_path):
        """Test canonicalize_path with nonexistent path and must_exist=False"""
        nonexistent = tmp_path / "nonexistent" / "file.txt"
        result = canonicalize_path(nonexistent, must_exist=False)
        assert result.is_absolute()

    def test_is_within_simple(self, tmp_path):
        """Test is_within with simple parent-child relationship"""
        parent = tmp_path / "parent"
        parent.mkdir()
        child = parent / "child.txt"
        child.write_text("test")

        assert is_within(child, parent) is True
        assert is_within(parent, child) is False

    def test_is_within_traversal_attempt(self, tmp_path):
        """Test is_within prevents path traversal"""
        parent = tmp_path / "parent"
        parent.mkdir()
        outside = tmp_path / "outside"
        outside.mkdir()

        assert is_within(parent / ".." / "outside", parent) is False

    def test_is_within_missing_parent(self, tmp_path):
        """Missing parent only counts when parent_must_exist=False"""
        parent = tmp_path / "not-yet"
        child = parent / "file.txt"

        assert is_within(child, parent, child_must_exist=False) is False
        assert is_within(child, parent, child_must_exist=False, parent_must_exist=False) is True


class TestAssetStoreWrites:
    """Tests for saving originals and thumbnails"""

    def test_ensure_directory_creates_marker(self, tmp_path):
        store = AssetStore(tmp_path / "images")
        store.ensure_directory()

        assert (tmp_path / "images" / ".gitkeep").exists()
        assert store.list_all() == []

    def test_save_original_preserves_bytes(self, store):
        payload = b"\x00\x01binary\xffpayload"
        path = store.save_original(payload, "abc.bin")

        assert path.read_bytes() == payload
        assert not path.with_name("abc.bin.tmp").exists()

    def test_save_original_image_is_verbatim(self, store, make_image):
        """Images are stored byte-for-byte, keeping embedded metadata"""
        exif = Image.Exif()
        exif[0x0112] = 3
        payload = make_image("JPEG", size=(80, 60), exif=exif.tobytes())

        path = store.save_original(payload, "photo.jpeg")
        assert path.read_bytes() == payload

    def test_save_thumbnail(self, store, make_image):
        path = store.save_thumbnail(make_image("PNG", size=(300, 20)), "abc_thumb.png", format="png")

        with Image.open(BytesIO(path.read_bytes())) as img:
            assert img.size == (128, 128)

    def test_save_thumbnail_of_non_image_raises_storage_error(self, store):
        with pytest.raises(StorageError):
            store.save_thumbnail(b"plain text", "abc_thumb.png")

    def test_write_failure_raises_storage_error(self, tmp_path):
        """A directory path blocked by a regular file cannot be written"""
        blocker = tmp_path / "blocked"
        blocker.write_text("not a directory")
        store = AssetStore(blocker / "images")

        with pytest.raises(StorageError):
            store.save_original(b"data", "abc.txt")

    def test_temp_file_removed_on_failure(self, store):
        with patch("pathlib.Path.replace", side_effect=OSError("disk full")):
            with pytest.raises(StorageError):
                store.save_original(b"data", "abc.txt")

        assert store.list_all() == []

    @pytest.mark.parametrize("filename", ["", ".", "..", "../escape.txt", "nested/file.txt"])
    def test_rejects_unsafe_filenames(self, store, filename):
        with pytest.raises(StorageError):
            store.save_original(b"data", filename)

    def test_rejects_symlink_escape(self, store, tmp_path):
        outside = tmp_path / "outside.txt"
        outside.write_text("secret")
        (store.asset_dir / "link.txt").symlink_to(outside)

        with pytest.raises(StorageError):
            store.delete("link.txt")
        assert outside.exists()


class TestAssetStoreDeletes:
    """Tests for delete, list and purge"""

    def test_delete_existing(self, store):
        store.save_original(b"data", "abc.txt")

        assert store.delete("abc.txt") is True
        assert store.list_all() == []

    def test_delete_missing_is_not_an_error(self, store):
        assert store.delete("missing.txt") is False
        assert store.delete("missing.txt") is False

    def test_delete_never_removes_marker(self, store):
        assert store.delete(".gitkeep") is False
        assert (store.asset_dir / ".gitkeep").exists()

    def test_list_all_excludes_marker_and_directories(self, store):
        store.save_original(b"a", "b.txt")
        store.save_original(b"b", "a.txt")
        (store.asset_dir / "subdir").mkdir()

        assert store.list_all() == ["a.txt", "b.txt"]

    def test_list_all_missing_directory(self, tmp_path):
        assert AssetStore(tmp_path / "absent").list_all() == []

    def test_purge_all(self, store):
        for name in ("one.png", "one_thumb.png", "two.txt"):
            store.save_original(b"x", name)

        removed = store.purge_all()

        assert sorted(removed) == ["one.png", "one_thumb.png", "two.txt"]
        assert store.list_all() == []
        assert (store.asset_dir / ".gitkeep").exists()

    def test_purge_all_is_idempotent(self, store):
        store.save_original(b"x", "one.txt")

        store.purge_all()
        assert store.purge_all() == []

    def test_custom_marker(self, tmp_path):
        store = AssetStore(tmp_path / "images", reserved_marker=".keep")
        store.ensure_directory()
        store.save_original(b"x", ".gitkeep")

        assert store.purge_all() == [".gitkeep"]
        assert (tmp_path / "images" / ".keep").exists()
