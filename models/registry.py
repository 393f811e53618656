"""Registry-side records and their FHIR JSON mapping"""

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

DOCUMENT_REFERENCE = "DocumentReference"
CLINICAL_IMPRESSION = "ClinicalImpression"
TWCORE_DOCUMENT_REFERENCE_PROFILE = (
    "https://twcore.mohw.gov.tw/ig/twcore/StructureDefinition/DocumentReference-twcore"
)
ATTACHMENT_CODING = {
    "system": "http://loinc.org",
    "code": "72170-4",
    "display": "Attachment",
}


def document_reference_ref(external_id: str) -> str:
    """Build the relative reference string pointing at a DocumentReference."""
    return f"{DOCUMENT_REFERENCE}/{external_id}"


@dataclass
class Attachment:
    content_type: str
    url: str
    title: str
    creation: str
    size_bytes: Optional[int] = None

    def to_fhir(self) -> Dict[str, Any]:
        attachment: Dict[str, Any] = {
            "contentType": self.content_type,
            "url": self.url,
        }
        if self.size_bytes is not None:
            attachment["size"] = self.size_bytes
        attachment["title"] = self.title
        attachment["creation"] = self.creation
        return {"attachment": attachment}

    @classmethod
    def from_fhir(cls, content: Dict[str, Any]) -> "Attachment":
        attachment = content.get("attachment") or {}
        return cls(
            content_type=attachment.get("contentType", ""),
            url=attachment.get("url", ""),
            title=attachment.get("title", ""),
            creation=attachment.get("creation", ""),
            size_bytes=attachment.get("size"),
        )


@dataclass
class MetadataRecord:
    """Metadata record describing an asset, stored as a FHIR DocumentReference.

    Attachments keep their order: for images the full image comes first and
    the thumbnail second, non-images carry a single "file" entry.
    """
    attachments: List[Attachment] = field(default_factory=list)
    subject_ref: Optional[str] = None
    author_ref: Optional[str] = None
    external_id: Optional[str] = None
    description: str = "hah"

    def to_fhir(self) -> Dict[str, Any]:
        resource: Dict[str, Any] = {
            "resourceType": DOCUMENT_REFERENCE,
            "meta": {"profile": [TWCORE_DOCUMENT_REFERENCE_PROFILE]},
            "status": "current",
            "description": self.description,
            "docStatus": "final",
            "type": {"coding": [dict(ATTACHMENT_CODING)]},
            "content": [attachment.to_fhir() for attachment in self.attachments],
        }
        if self.external_id:
            resource["id"] = self.external_id
        if self.subject_ref:
            resource["subject"] = {"reference": self.subject_ref}
        if self.author_ref:
            resource["author"] = [{"reference": self.author_ref}]
        return resource

    @classmethod
    def from_fhir(cls, resource: Dict[str, Any]) -> "MetadataRecord":
        authors = resource.get("author") or []
        return cls(
            attachments=[Attachment.from_fhir(c) for c in resource.get("content") or []],
            subject_ref=(resource.get("subject") or {}).get("reference"),
            author_ref=authors[0].get("reference") if authors else None,
            external_id=resource.get("id"),
            description=resource.get("description", ""),
        )

    @property
    def attachment_urls(self) -> List[str]:
        return [a.url for a in self.attachments if a.url]


@dataclass
class DependentRecord:
    """A ClinicalImpression that lists other records in its supportingInfo"""
    id: str
    references: List[str]
    resource: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_fhir(cls, resource: Dict[str, Any]) -> "DependentRecord":
        supporting_info = resource.get("supportingInfo")
        if not isinstance(supporting_info, list):
            supporting_info = []
        return cls(
            id=str(resource.get("id", "")),
            references=[info.get("reference", "") for info in supporting_info if isinstance(info, dict)],
            resource=resource,
        )

    def without_reference(self, reference: str) -> Optional["DependentRecord"]:
        """Return a copy with every supportingInfo entry for `reference` removed.

        Returns None when the record does not reference it, so callers can
        skip the update entirely.
        """
        supporting_info = self.resource.get("supportingInfo")
        if not isinstance(supporting_info, list):
            return None

        kept = [
            info for info in supporting_info
            if not (isinstance(info, dict) and info.get("reference") == reference)
        ]
        if len(kept) == len(supporting_info):
            return None

        resource = copy.deepcopy(self.resource)
        resource["supportingInfo"] = kept
        return DependentRecord.from_fhir(resource)
