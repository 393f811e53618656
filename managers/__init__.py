"""Manager classes for the FHIR Image DB MCP Server"""

from managers.asset_store import AssetStore
from managers.config_manager import ImageDBConfig
from managers.identity_allocator import IdentityAllocator

__all__ = ["AssetStore", "IdentityAllocator", "ImageDBConfig"]
