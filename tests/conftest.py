"""Shared fixtures: config, asset store, fake FHIR registry, image payloads"""

from io import BytesIO
from typing import Any, Dict, List, Optional

import pytest
from PIL import Image

from errors import NotFoundError, RegistrationError, TransportError
from managers.asset_store import AssetStore
from managers.config_manager import ImageDBConfig
from models.registry import DependentRecord, MetadataRecord, document_reference_ref


def _encode_image(fmt: str = "PNG", size=(50, 50), color=(200, 30, 30), **save_kwargs) -> bytes:
    """Encode a solid-color image in memory"""
    mode = "RGBA" if fmt.upper() in ("PNG", "WEBP") else "RGB"
    img = Image.new(mode, size, color)
    if fmt.upper() == "GIF":
        img = img.convert("P")
    buf = BytesIO()
    img.save(buf, format=fmt, **save_kwargs)
    return buf.getvalue()


class FakeRegistry:
    """In-memory stand-in for RegistryClient with switchable failures"""

    def __init__(self):
        self.records: Dict[str, Dict[str, Any]] = {}
        self.impressions: Dict[str, Dict[str, Any]] = {}
        self.created: List[MetadataRecord] = []
        self.updated: List[str] = []
        self.deleted: List[str] = []
        self.fail_create = False
        self.fail_fetch: Optional[Exception] = None
        self.fail_search = False
        self.fail_update_ids: set = set()
        self.fail_delete = False
        self._next_id = 1

    def create_metadata_record(self, record: MetadataRecord):
        if self.fail_create:
            raise RegistrationError("Failed to create DocumentReference on FHIR server: 500")
        external_id = str(self._next_id)
        self._next_id += 1
        resource = record.to_fhir()
        resource["id"] = external_id
        self.records[external_id] = resource
        self.created.append(record)
        return external_id, resource

    def fetch_metadata_record(self, external_id: str) -> MetadataRecord:
        if self.fail_fetch is not None:
            raise self.fail_fetch
        if external_id not in self.records:
            raise NotFoundError(f"DocumentReference/{external_id} not found")
        return MetadataRecord.from_fhir(self.records[external_id])

    def find_dependents_referencing(self, external_id: str, strict: bool = False):
        if self.fail_search:
            if strict:
                raise TransportError("ClinicalImpression search failed: 503")
            return []
        reference = document_reference_ref(external_id)
        return [
            DependentRecord.from_fhir(resource)
            for resource in self.impressions.values()
            if any(info.get("reference") == reference for info in resource.get("supportingInfo", []))
        ]

    def update_dependent(self, record: DependentRecord) -> bool:
        if record.id in self.fail_update_ids:
            return False
        self.impressions[record.id] = record.resource
        self.updated.append(record.id)
        return True

    def delete_metadata_record(self, external_id: str) -> bool:
        if self.fail_delete:
            return False
        self.records.pop(external_id, None)
        self.deleted.append(external_id)
        return True

    def add_impression(self, impression_id: str, references: List[str]) -> Dict[str, Any]:
        resource = {
            "resourceType": "ClinicalImpression",
            "id": impression_id,
            "status": "completed",
            "supportingInfo": [{"reference": ref} for ref in references],
        }
        self.impressions[impression_id] = resource
        return resource


class CapturingMCP:
    """Collects functions registered with @mcp.tool() so tests can call them"""

    def __init__(self):
        self.tools = {}

    def tool(self, *args, **kwargs):
        def decorator(fn):
            self.tools[kwargs.get("name") or fn.__name__] = fn
            return fn
        return decorator


@pytest.fixture
def asset_dir(tmp_path):
    return tmp_path / "assets" / "images"


@pytest.fixture
def config(asset_dir):
    return ImageDBConfig(
        api_base_url="https://imagedb.example.org",
        fhir_server_url="https://fhir.example.org/fhir",
        asset_dir=asset_dir,
    )


@pytest.fixture
def store(config):
    asset_store = AssetStore(
        config.asset_dir,
        reserved_marker=config.reserved_marker,
        thumbnail_size=config.thumbnail_size,
    )
    asset_store.ensure_directory()
    return asset_store


@pytest.fixture
def registry():
    return FakeRegistry()


@pytest.fixture
def make_image():
    """Factory encoding a solid-color image: make_image("PNG", size=(50, 50))"""
    return _encode_image


@pytest.fixture
def stored_files(asset_dir):
    """Callable listing the asset directory, marker excluded"""
    def _list() -> List[str]:
        return sorted(p.name for p in asset_dir.iterdir() if p.name != ".gitkeep")
    return _list


@pytest.fixture
def capturing_mcp():
    return CapturingMCP()
