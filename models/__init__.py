"""Data models for the FHIR Image DB MCP Server"""

from models.asset import AssetIdentity, AssetRecord, Classification
from models.registry import Attachment, DependentRecord, MetadataRecord
from models.results import DeleteResult, PurgeResult, UploadResult

__all__ = [
    "AssetIdentity",
    "AssetRecord",
    "Attachment",
    "Classification",
    "DeleteResult",
    "DependentRecord",
    "MetadataRecord",
    "PurgeResult",
    "UploadResult",
]
