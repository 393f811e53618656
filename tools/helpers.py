"""Shared helper functions for tool implementations"""

import logging
from typing import Any, Dict, Optional

from errors import ImageDBError

logger = logging.getLogger("MCP_Server")

PATIENT = "Patient"
PRACTITIONER = "Practitioner"


def ok_response(data: Any) -> Dict[str, Any]:
    """Success envelope returned by every tool"""
    return {"success": True, "data": data}


def error_response(error: ImageDBError, **extra: Any) -> Dict[str, Any]:
    """Error dict for a known pipeline failure.

    Args:
        error: Raised pipeline error (its error_code becomes the response code)
        extra: Additional keys merged into the response
    """
    response = {
        "success": False,
        "error": error.message,
        "error_code": error.error_code,
    }
    if error.stage:
        response["stage"] = error.stage
    response.update(extra)
    return response


def internal_error_response(message: str) -> Dict[str, Any]:
    return {"success": False, "error": message, "error_code": "E_INTERNAL"}


def resource_reference(resource_type: str, resource_id: Optional[str]) -> Optional[str]:
    """Relative FHIR reference for a caller-supplied id, or None when absent.

    Ids already given as "<Type>/<id>" are passed through unchanged.
    """
    if resource_id is None:
        return None
    resource_id = str(resource_id).strip()
    if not resource_id:
        return None
    if "/" in resource_id:
        return resource_id
    return f"{resource_type}/{resource_id}"
