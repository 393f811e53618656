"""Pipeline result models"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

DELETE_STATUS_CLEAN = "clean"
DELETE_STATUS_WARNINGS = "cleaned_with_warnings"


@dataclass
class UploadResult:
    filename: str
    size: int
    path: str
    thumbnail_path: Optional[str]
    url: str
    thumbnail_url: Optional[str]
    external_id: str
    delete_url: str
    timestamp: int  # epoch milliseconds
    registry_resource: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "filename": self.filename,
            "size": self.size,
            "path": self.path,
            "path_thumbnail": self.thumbnail_path,
            "timestamp": self.timestamp,
            "url": self.url,
            "thumbnail_url": self.thumbnail_url,
            "external_id": self.external_id,
            "delete": self.delete_url,
            "fhir": self.registry_resource,
        }


@dataclass
class DeleteResult:
    """Outcome of a cascading delete that did not fail outright"""
    external_id: str
    record_deleted: bool
    detached: List[str] = field(default_factory=list)
    removed_files: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def status(self) -> str:
        return DELETE_STATUS_WARNINGS if self.warnings else DELETE_STATUS_CLEAN

    def to_dict(self) -> Dict[str, Any]:
        return {
            "external_id": self.external_id,
            "status": self.status,
            "record_deleted": self.record_deleted,
            "detached": list(self.detached),
            "removed_files": list(self.removed_files),
            "warnings": list(self.warnings),
        }


@dataclass
class PurgeResult:
    removed: List[str] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.removed)

    def to_dict(self) -> Dict[str, Any]:
        return {"removed": list(self.removed), "count": self.count}
