"""Asset upload, delete and purge tools for the FHIR Image DB MCP Server"""

import base64
import binascii
import logging
from typing import Optional

from mcp.server.fastmcp import FastMCP

from errors import ImageDBError, LocalCleanupError
from pipelines import DeletePipeline, PurgePipeline, UploadPipeline
from tools.helpers import (
    PATIENT,
    PRACTITIONER,
    error_response,
    internal_error_response,
    ok_response,
    resource_reference,
)

logger = logging.getLogger("MCP_Server")


def register_asset_tools(
    mcp: FastMCP,
    upload_pipeline: UploadPipeline,
    delete_pipeline: DeletePipeline,
    purge_pipeline: PurgePipeline,
):
    """Register asset lifecycle tools with the MCP server"""

    @mcp.tool()
    def upload_asset(
        data_base64: str,
        filename: Optional[str] = None,
        content_type: Optional[str] = None,
        patient_id: Optional[str] = None,
        practitioner_id: Optional[str] = None,
    ) -> dict:
        """Upload a file and register it as a FHIR DocumentReference.

        JPEG, PNG, GIF and WebP images are detected from their content and get
        a 128x128 thumbnail; any other payload is stored as-is under its
        original extension.

        Args:
            data_base64: File content, base64 encoded
            filename: Original filename (used for the extension of non-images)
            content_type: MIME type for non-images (default: application/octet-stream)
            patient_id: Optional Patient id, becomes DocumentReference.subject
            practitioner_id: Optional Practitioner id, becomes DocumentReference.author

        Returns:
            {"success": true, "data": {...}} with filename, size, path,
            path_thumbnail, url, thumbnail_url, external_id, delete and the
            created FHIR resource; or an error dict with "error_code".
        """
        try:
            data = base64.b64decode(data_base64 or "", validate=True)
        except (binascii.Error, ValueError) as e:
            return {
                "success": False,
                "error": f"Payload is not valid base64: {e}",
                "error_code": "E_INVALID_PAYLOAD",
            }

        try:
            result = upload_pipeline.run(
                data,
                filename=filename,
                content_type=content_type,
                subject_ref=resource_reference(PATIENT, patient_id),
                author_ref=resource_reference(PRACTITIONER, practitioner_id),
            )
        except ImageDBError as e:
            logger.error(f"File upload error: {e}")
            return error_response(e)
        except Exception as e:
            logger.exception("File upload error")
            return internal_error_response(f"Upload failed: {e}")

        return ok_response(result.to_dict())

    @mcp.tool()
    def delete_asset(external_id: str) -> dict:
        """Delete a DocumentReference, detach ClinicalImpressions citing it, and remove its files.

        Failures to update ClinicalImpressions or to delete the record on the
        FHIR server are reported as warnings; local files are still removed.

        Args:
            external_id: DocumentReference id returned by upload_asset

        Returns:
            {"success": true, "data": {...}} with status ("clean" or
            "cleaned_with_warnings"), warnings, detached ids and removed files;
            or an error dict (E_INVALID_ID, E_NOT_FOUND, E_TRANSPORT, E_LOCAL_CLEANUP).
        """
        try:
            result = delete_pipeline.run(external_id)
        except LocalCleanupError as e:
            logger.error(f"Delete of {external_id} left local files behind: {e}")
            return error_response(e, external_id=external_id)
        except ImageDBError as e:
            return error_response(e)
        except Exception as e:
            logger.exception("Delete operation failed")
            return internal_error_response(f"Delete failed: {e}")

        return ok_response(result.to_dict())

    @mcp.tool()
    def purge_assets() -> dict:
        """Delete every stored asset file, keeping only the directory marker.

        Registry records are not touched, so their attachment URLs will dangle.
        """
        try:
            result = purge_pipeline.run()
        except ImageDBError as e:
            logger.error(f"Files purge error: {e}")
            return error_response(e)

        return ok_response(result.to_dict())
