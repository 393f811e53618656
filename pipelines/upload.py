"""Upload pipeline: classify, name, store, register"""

import logging
import time
from datetime import datetime, timezone
from typing import List, Optional

from asset_processor import classify_asset
from errors import NoFileError, PayloadTooLargeError, RegistrationError, StorageError
from managers.asset_store import AssetStore
from managers.config_manager import ImageDBConfig
from managers.identity_allocator import IdentityAllocator
from models.asset import DEFAULT_CONTENT_TYPE, AssetRecord
from models.registry import Attachment, MetadataRecord
from models.results import UploadResult
from registry_client import RegistryClient

logger = logging.getLogger("MCP_Server")

# Stages: received -> classified -> stored -> registered -> completed | failed
STAGE_RECEIVED = "received"
STAGE_CLASSIFIED = "classified"
STAGE_STORED = "stored"
STAGE_REGISTERED = "registered"
STAGE_COMPLETED = "completed"

TITLE_FULL_IMAGE = "full-image"
TITLE_THUMBNAIL = "thumbnail"
TITLE_FILE = "file"


def build_metadata_record(
    asset: AssetRecord,
    subject_ref: Optional[str] = None,
    author_ref: Optional[str] = None,
) -> MetadataRecord:
    """Describe exactly the files written for `asset`"""
    created = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
    attachments: List[Attachment] = []
    if asset.is_image:
        attachments.append(Attachment(
            content_type=asset.content_type,
            url=asset.public_url,
            size_bytes=asset.size_bytes,
            title=TITLE_FULL_IMAGE,
            creation=created,
        ))
        attachments.append(Attachment(
            content_type=asset.content_type,
            url=asset.thumbnail_url,
            title=TITLE_THUMBNAIL,
            creation=created,
        ))
    else:
        attachments.append(Attachment(
            content_type=asset.content_type,
            url=asset.public_url,
            size_bytes=asset.size_bytes,
            title=TITLE_FILE,
            creation=created,
        ))
    return MetadataRecord(attachments=attachments, subject_ref=subject_ref, author_ref=author_ref)


class UploadPipeline:
    """Ingests one payload per call.

    Local files are written before the registry is contacted. If
    registration then fails the files are left in place (orphans) and the
    failure is reported; there is no rollback.
    """

    def __init__(
        self,
        config: ImageDBConfig,
        store: AssetStore,
        registry: RegistryClient,
        allocator: Optional[IdentityAllocator] = None,
    ):
        self.config = config
        self.store = store
        self.registry = registry
        self.allocator = allocator or IdentityAllocator(config.id_bytes)

    def run(
        self,
        data: bytes,
        filename: Optional[str] = None,
        content_type: Optional[str] = None,
        subject_ref: Optional[str] = None,
        author_ref: Optional[str] = None,
    ) -> UploadResult:
        stage = STAGE_RECEIVED
        if not data:
            raise NoFileError("No file was uploaded", stage=stage)
        if len(data) > self.config.max_upload_bytes:
            raise PayloadTooLargeError(
                f"Upload of {len(data)} bytes exceeds limit of {self.config.max_upload_bytes} bytes",
                stage=stage,
            )

        classification = classify_asset(data)
        stage = STAGE_CLASSIFIED

        identity = self.allocator.allocate(classification, original_filename=filename)
        thumbnail_name = identity.thumbnail_filename
        asset = AssetRecord(
            unique_id=identity.unique_id,
            is_image=classification.is_image,
            format=classification.format,
            stored_filename=identity.stored_filename,
            thumbnail_filename=thumbnail_name,
            size_bytes=len(data),
            public_url=self.config.public_url(identity.stored_filename),
            thumbnail_url=self.config.public_url(thumbnail_name) if thumbnail_name else None,
            content_type=classification.content_type or content_type or DEFAULT_CONTENT_TYPE,
        )
        logger.info(
            f"Upload {asset.unique_id}: image={asset.is_image} format={asset.format} "
            f"size={asset.size_bytes}B filename={asset.stored_filename}"
        )

        try:
            self.store.save_original(data, asset.stored_filename)
            if asset.is_image:
                self.store.save_thumbnail(data, thumbnail_name, format=asset.format)
        except StorageError as e:
            e.stage = stage
            logger.error(f"Upload {asset.unique_id} failed while storing files: {e}")
            raise
        stage = STAGE_STORED

        record = build_metadata_record(asset, subject_ref=subject_ref, author_ref=author_ref)
        try:
            external_id, resource = self.registry.create_metadata_record(record)
        except RegistrationError as e:
            e.stage = stage
            orphans = [n for n in (asset.stored_filename, thumbnail_name) if n]
            logger.error(f"Registration failed for upload {asset.unique_id}; orphaned local files: {orphans}")
            raise
        logger.info(f"Upload {asset.unique_id} {STAGE_REGISTERED} as DocumentReference/{external_id}")

        result = UploadResult(
            filename=asset.stored_filename,
            size=asset.size_bytes,
            path=self.config.relative_path(asset.stored_filename),
            thumbnail_path=self.config.relative_path(thumbnail_name) if thumbnail_name else None,
            url=asset.public_url,
            thumbnail_url=asset.thumbnail_url,
            external_id=external_id,
            delete_url=self.config.delete_url(external_id),
            timestamp=int(time.time() * 1000),
            registry_resource=resource,
        )
        logger.info(f"Upload {asset.unique_id} {STAGE_COMPLETED}")
        return result
