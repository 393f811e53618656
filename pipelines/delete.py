"""Cascading delete: detach dependents, drop the record, remove local files"""

import logging
import posixpath
from typing import Optional
from urllib.parse import unquote, urlparse

from errors import InvalidIdError, LocalCleanupError, NotFoundError, StorageError, TransportError
from managers.asset_store import AssetStore
from managers.config_manager import ImageDBConfig
from models.registry import MetadataRecord, document_reference_ref
from models.results import DeleteResult
from registry_client import RegistryClient

logger = logging.getLogger("MCP_Server")

# Step names. validate, fetch and cleanup_files are fatal; the other two
# only append warnings.
STEP_VALIDATE = "validate"
STEP_FETCH = "fetch"
STEP_DETACH_DEPENDENTS = "detach_dependents"
STEP_DELETE_RECORD = "delete_record"
STEP_CLEANUP_FILES = "cleanup_files"


def filename_from_url(url: str) -> str:
    """Last path segment of an attachment URL"""
    return posixpath.basename(unquote(urlparse(url).path))


class DeletePipeline:
    """Removes a DocumentReference together with everything hanging off it.

    Only the id check, the initial fetch and the local file cleanup can fail
    the operation. Detaching ClinicalImpressions and deleting the registry
    record degrade to warnings so local files still get removed when the
    registry is partially unreachable.
    """

    def __init__(self, config: ImageDBConfig, store: AssetStore, registry: RegistryClient):
        self.config = config
        self.store = store
        self.registry = registry

    def run(self, external_id: Optional[str]) -> DeleteResult:
        if external_id is None or not str(external_id).strip():
            raise InvalidIdError("Invalid FHIR id", stage=STEP_VALIDATE)
        external_id = str(external_id).strip()

        # NotFoundError / TransportError propagate before anything is touched
        try:
            record = self.registry.fetch_metadata_record(external_id)
        except (NotFoundError, TransportError) as e:
            e.stage = STEP_FETCH
            raise

        result = DeleteResult(external_id=external_id, record_deleted=False)
        self._detach_dependents(external_id, result)
        result.record_deleted = self._delete_record(external_id, result)
        self._cleanup_files(record, result)

        if result.warnings:
            logger.warning(
                f"Deleted DocumentReference/{external_id} with {len(result.warnings)} warnings: {result.warnings}"
            )
        else:
            logger.info(f"Deleted DocumentReference/{external_id} and its files")
        return result

    def _detach_dependents(self, external_id: str, result: DeleteResult):
        reference = document_reference_ref(external_id)
        try:
            dependents = self.registry.find_dependents_referencing(external_id, strict=True)
        except TransportError as e:
            result.warnings.append(f"{STEP_DETACH_DEPENDENTS}: could not search dependents: {e}")
            return

        for dependent in dependents:
            updated = dependent.without_reference(reference)
            if updated is None:
                continue
            if self.registry.update_dependent(updated):
                logger.info(f"Updated ClinicalImpression {dependent.id} to remove {reference}")
                result.detached.append(dependent.id)
            else:
                result.warnings.append(
                    f"{STEP_DETACH_DEPENDENTS}: failed to update ClinicalImpression {dependent.id}"
                )

    def _delete_record(self, external_id: str, result: DeleteResult) -> bool:
        if self.registry.delete_metadata_record(external_id):
            return True
        result.warnings.append(
            f"{STEP_DELETE_RECORD}: failed to delete {document_reference_ref(external_id)}"
        )
        return False

    def _cleanup_files(self, record: MetadataRecord, result: DeleteResult):
        try:
            for url in record.attachment_urls:
                filename = filename_from_url(url)
                if not filename or filename == self.store.reserved_marker:
                    result.warnings.append(f"{STEP_CLEANUP_FILES}: skipped attachment URL {url}")
                    continue
                if self.store.delete(filename):
                    result.removed_files.append(filename)
        except StorageError as e:
            logger.error(f"File deletion error for DocumentReference/{result.external_id}: {e}")
            raise LocalCleanupError(
                "File deletion failed, but the FHIR resource may already be deleted",
                stage=STEP_CLEANUP_FILES,
            ) from e
