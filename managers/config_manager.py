"""Configuration for the image DB server"""

import json
import logging
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

logger = logging.getLogger("MCP_Server")

# Configuration paths
CONFIG_DIR = Path.home() / ".config" / "fhir-imagedb"
CONFIG_FILE = CONFIG_DIR / "config.json"
CONFIG_FILE_ENV = "FHIR_IMAGEDB_CONFIG"
ENV_PREFIX = "FHIR_IMAGEDB_"

HARDCODED_DEFAULTS: Dict[str, Any] = {
    "api_base_url": "https://imagedb.fhir.tw",
    "fhir_server_url": "https://hapi.fhir.tw/fhir",
    "asset_dir": "assets/images",
    "public_path": "/images",
    "reserved_marker": ".gitkeep",
    "thumbnail_size": 128,
    "request_timeout": 30.0,
    "max_upload_bytes": 1_073_741_824,
    "id_bytes": 8,
}


@dataclass(frozen=True)
class ImageDBConfig:
    """Effective configuration handed to every pipeline at construction time"""
    api_base_url: str
    fhir_server_url: str
    asset_dir: Path
    public_path: str = "/images"
    reserved_marker: str = ".gitkeep"
    thumbnail_size: int = 128
    request_timeout: float = 30.0
    max_upload_bytes: int = 1_073_741_824
    id_bytes: int = 8

    def __post_init__(self):
        # Normalize values coming from JSON / env strings
        object.__setattr__(self, "api_base_url", str(self.api_base_url).rstrip("/"))
        object.__setattr__(self, "fhir_server_url", str(self.fhir_server_url).rstrip("/"))
        object.__setattr__(self, "asset_dir", Path(self.asset_dir))
        object.__setattr__(self, "public_path", "/" + str(self.public_path).strip("/"))
        object.__setattr__(self, "thumbnail_size", int(self.thumbnail_size))
        object.__setattr__(self, "request_timeout", float(self.request_timeout))
        object.__setattr__(self, "max_upload_bytes", int(self.max_upload_bytes))
        object.__setattr__(self, "id_bytes", int(self.id_bytes))

        if not self.reserved_marker or "/" in self.reserved_marker:
            raise ValueError(f"Invalid reserved_marker: {self.reserved_marker!r}")
        if self.thumbnail_size < 1:
            raise ValueError(f"thumbnail_size must be positive, got {self.thumbnail_size}")
        if self.id_bytes < 8:
            raise ValueError(f"id_bytes must be at least 8, got {self.id_bytes}")

    def public_url(self, filename: str) -> str:
        """Externally addressable URL for a stored file"""
        return f"{self.api_base_url}{self.public_path}/{filename}"

    def relative_path(self, filename: str) -> str:
        return f"{self.public_path}/{filename}"

    def delete_url(self, external_id: str) -> str:
        return f"{self.api_base_url}/delete/{external_id}"

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["asset_dir"] = str(self.asset_dir)
        return data

    @classmethod
    def load(
        cls,
        config_file: Optional[Union[str, Path]] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> "ImageDBConfig":
        """Build config with precedence: overrides > config file > env > hardcoded"""
        values = dict(HARDCODED_DEFAULTS)
        values.update(get_env_config())
        values.update(load_config_file(config_file))
        if overrides:
            values.update({k: v for k, v in overrides.items() if v is not None})

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            logger.warning(f"Ignoring unknown configuration keys: {unknown}")
        return cls(**{k: v for k, v in values.items() if k in known})


def get_config_file() -> Path:
    """Path of the JSON config file, honoring the FHIR_IMAGEDB_CONFIG override"""
    override = os.getenv(CONFIG_FILE_ENV)
    if override:
        return Path(override)
    return CONFIG_FILE


def load_config_file(config_file: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """Load configuration values from a JSON file.

    Returns an empty dict when the file is missing or unreadable.
    """
    path = Path(config_file) if config_file else get_config_file()
    if not path.exists():
        return {}

    try:
        with open(path, "r", encoding="utf-8") as f:
            config = json.load(f)
    except (json.JSONDecodeError, IOError) as e:
        logger.warning(f"Failed to load config file {path}: {e}")
        return {}

    if not isinstance(config, dict):
        logger.warning(f"Config file {path} does not contain a JSON object; ignoring it")
        return {}
    return config


def get_env_config() -> Dict[str, Any]:
    """Load configuration values from FHIR_IMAGEDB_* environment variables"""
    values: Dict[str, Any] = {}
    for key in HARDCODED_DEFAULTS:
        raw = os.getenv(f"{ENV_PREFIX}{key.upper()}")
        if raw:
            values[key] = raw
    return values
