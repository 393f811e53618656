"""Image classification and thumbnail generation for uploaded assets"""

import logging
from io import BytesIO
from typing import Any, Dict, Optional

from PIL import Image, ImageOps

from models.asset import ALLOWED_IMAGE_FORMATS, Classification

logger = logging.getLogger("AssetProcessor")

DEFAULT_THUMBNAIL_SIZE = 128

# Pillow reports some multi-frame JPEGs as MPO
FORMAT_ALIASES = {"mpo": "jpeg", "jpg": "jpeg"}

# Formats whose Pillow writers accept exif / icc_profile save parameters
METADATA_CAPABLE_FORMATS = ("jpeg", "png", "webp")


def normalize_format(format_name: Optional[str]) -> Optional[str]:
    """Lowercase a Pillow format name and fold aliases onto the allow-list names."""
    if not format_name:
        return None
    lowered = format_name.lower()
    return FORMAT_ALIASES.get(lowered, lowered)


def classify_asset(data: bytes) -> Classification:
    """Decide whether `data` is an allow-listed raster image.

    Decoding failures are an expected outcome here, not an error: anything
    Pillow cannot fully decode, or decodes into a format outside the
    allow-list, is classified as a plain file.
    """
    if not data:
        return Classification(is_image=False)

    try:
        with Image.open(BytesIO(data)) as img:
            img.load()
            detected = normalize_format(img.format)
            width, height = img.size
    except Exception as e:
        logger.debug(f"Payload is not a decodable image ({len(data)} bytes): {e}")
        return Classification(is_image=False)

    if detected not in ALLOWED_IMAGE_FORMATS:
        logger.info(f"Decoded image format '{detected}' is not allow-listed; storing as file")
        return Classification(is_image=False)

    return Classification(is_image=True, format=detected, width=width, height=height)


def _metadata_save_kwargs(img: Image.Image, format_name: str) -> Dict[str, Any]:
    """Collect embedded EXIF / ICC data that the target writer can carry over"""
    if format_name not in METADATA_CAPABLE_FORMATS:
        return {}

    kwargs: Dict[str, Any] = {}
    exif = img.info.get("exif")
    if exif:
        kwargs["exif"] = exif
    icc_profile = img.info.get("icc_profile")
    if icc_profile:
        kwargs["icc_profile"] = icc_profile
    return kwargs


def create_thumbnail(
    image_bytes: bytes,
    size: int = DEFAULT_THUMBNAIL_SIZE,
    format: Optional[str] = None,
) -> bytes:
    """Create a fixed size square thumbnail in the source format.

    The image is scaled to cover `size` x `size` and center-cropped, so the
    result is exactly that size regardless of the input aspect ratio. EXIF
    (including the orientation tag) and ICC profile are written back when the
    format supports them.

    Raises:
        ValueError: If the bytes cannot be decoded or encoded as an image
    """
    try:
        with Image.open(BytesIO(image_bytes)) as img:
            target_format = normalize_format(format) or normalize_format(img.format)
            if target_format not in ALLOWED_IMAGE_FORMATS:
                raise ValueError(f"Unsupported thumbnail format: {target_format}")

            save_kwargs = _metadata_save_kwargs(img, target_format)
            thumb = ImageOps.fit(img, (size, size), Image.Resampling.LANCZOS)

            if target_format == "jpeg" and thumb.mode not in ("RGB", "L", "CMYK"):
                thumb = thumb.convert("RGB")

            output = BytesIO()
            thumb.save(output, format=target_format.upper(), **save_kwargs)
            return output.getvalue()
    except ValueError:
        raise
    except Exception as e:
        logger.error(f"Failed to create thumbnail: {e}")
        raise ValueError(f"Failed to create thumbnail: {e}") from e
