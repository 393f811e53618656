"""Asset data models"""

from dataclasses import dataclass
from typing import Optional

ALLOWED_IMAGE_FORMATS = ("jpeg", "png", "gif", "webp")
DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class Classification:
    """Outcome of inspecting an uploaded byte buffer"""
    is_image: bool
    format: Optional[str] = None  # one of ALLOWED_IMAGE_FORMATS when is_image
    width: Optional[int] = None
    height: Optional[int] = None

    @property
    def content_type(self) -> Optional[str]:
        return f"image/{self.format}" if self.is_image else None


@dataclass(frozen=True)
class AssetIdentity:
    """Unique storage identity allocated for a new asset"""
    unique_id: str
    extension: str  # without leading dot, may be empty
    stored_filename: str
    thumbnail_filename: Optional[str] = None


@dataclass
class AssetRecord:
    """Per-upload record of what was written and where it is reachable"""
    unique_id: str
    is_image: bool
    format: Optional[str]
    stored_filename: str
    thumbnail_filename: Optional[str]
    size_bytes: int
    public_url: str
    thumbnail_url: Optional[str]
    content_type: str = DEFAULT_CONTENT_TYPE
