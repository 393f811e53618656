import logging
from typing import Any, Dict, List, Optional, Tuple

import requests

from errors import NotFoundError, RegistrationError, TransportError
from models.registry import (
    CLINICAL_IMPRESSION,
    DOCUMENT_REFERENCE,
    DependentRecord,
    MetadataRecord,
    document_reference_ref,
)

logger = logging.getLogger("RegistryClient")

FHIR_JSON = "application/fhir+json"


def _describe_failure(response: Optional[requests.Response], exc: Optional[Exception] = None) -> str:
    if response is not None:
        return f"{response.status_code} - {response.text}"
    return str(exc)


class RegistryClient:
    """Talks to the FHIR registry holding DocumentReference records.

    Creation and fetch failures raise; the dependent-detach and delete calls
    are best-effort and only log, so a partially reachable registry does not
    block local cleanup.
    """

    def __init__(self, base_url: str, timeout: float = 30.0, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _url(self, *parts: str) -> str:
        return "/".join([self.base_url, *parts])

    def create_metadata_record(self, record: MetadataRecord) -> Tuple[str, Dict[str, Any]]:
        """POST a DocumentReference; returns the registry id and stored resource."""
        try:
            response = self.session.post(
                self._url(DOCUMENT_REFERENCE), json=record.to_fhir(), timeout=self.timeout
            )
        except requests.RequestException as e:
            logger.error(f"FHIR server error: {e}")
            raise RegistrationError(f"Failed to create DocumentReference on FHIR server: {e}") from e

        if response.status_code != 201:
            logger.error(f"FHIR server rejected DocumentReference: {_describe_failure(response)}")
            raise RegistrationError(
                f"Failed to create DocumentReference on FHIR server: {response.status_code}"
            )

        try:
            resource = response.json()
        except ValueError as e:
            raise RegistrationError(f"FHIR server returned invalid JSON on create: {e}") from e

        external_id = resource.get("id") if isinstance(resource, dict) else None
        if not external_id:
            raise RegistrationError("FHIR server created a DocumentReference without an id")

        logger.info(f"Created DocumentReference/{external_id}")
        return str(external_id), resource

    def fetch_metadata_record(self, external_id: str) -> MetadataRecord:
        try:
            response = self.session.get(self._url(DOCUMENT_REFERENCE, external_id), timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Failed to fetch DocumentReference/{external_id}: {e}")
            raise TransportError(f"Cannot fetch DocumentReference from FHIR server: {e}") from e

        if response.status_code == 404:
            logger.error(f"DocumentReference/{external_id} not found")
            raise NotFoundError(f"DocumentReference/{external_id} not found")
        if response.status_code != 200:
            logger.error(f"Failed to fetch DocumentReference/{external_id}: {_describe_failure(response)}")
            raise TransportError(
                f"Cannot fetch DocumentReference from FHIR server: {response.status_code}"
            )

        try:
            resource = response.json()
        except ValueError as e:
            raise TransportError(f"FHIR server returned invalid JSON for DocumentReference/{external_id}") from e
        if not isinstance(resource, dict):
            raise TransportError(f"Unexpected payload for DocumentReference/{external_id}")
        return MetadataRecord.from_fhir(resource)

    def find_dependents_referencing(self, external_id: str, strict: bool = False) -> List[DependentRecord]:
        """Find ClinicalImpressions whose supportingInfo points at the record.

        Best-effort by default: any failure is logged and yields an empty
        list. With strict=True the failure is raised as TransportError.
        """
        reference = document_reference_ref(external_id)
        try:
            response = self.session.get(
                self._url(CLINICAL_IMPRESSION),
                params={"supporting-info": reference},
                timeout=self.timeout,
            )
            if response.status_code != 200:
                raise TransportError(
                    f"ClinicalImpression search failed: {_describe_failure(response)}"
                )
            bundle = response.json()
        except (requests.RequestException, ValueError, TransportError) as e:
            logger.error(f"Failed to fetch ClinicalImpressions referencing {reference}: {e}")
            if strict:
                if isinstance(e, TransportError):
                    raise
                raise TransportError(f"ClinicalImpression search failed: {e}") from e
            return []

        entries = bundle.get("entry") if isinstance(bundle, dict) else None
        dependents = []
        for entry in entries or []:
            resource = entry.get("resource") if isinstance(entry, dict) else None
            if isinstance(resource, dict) and resource.get("id"):
                dependents.append(DependentRecord.from_fhir(resource))
        return dependents

    def update_dependent(self, record: DependentRecord) -> bool:
        """PUT the full dependent resource back; returns False on failure."""
        try:
            response = self.session.put(
                self._url(CLINICAL_IMPRESSION, record.id),
                json=record.resource,
                headers={"Content-Type": FHIR_JSON},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Failed to update ClinicalImpression {record.id}: {e}")
            return False

        if response.status_code not in (200, 201):
            logger.error(f"Failed to update ClinicalImpression {record.id}: {_describe_failure(response)}")
            return False

        logger.info(f"Updated ClinicalImpression {record.id}")
        return True

    def delete_metadata_record(self, external_id: str) -> bool:
        """DELETE the DocumentReference; returns False on failure."""
        try:
            response = self.session.delete(self._url(DOCUMENT_REFERENCE, external_id), timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Failed to delete DocumentReference/{external_id}: {e}")
            return False

        if response.status_code not in (200, 202, 204):
            logger.error(f"Failed to delete DocumentReference/{external_id}: {_describe_failure(response)}")
            return False

        logger.info(f"Deleted DocumentReference/{external_id}")
        return True
