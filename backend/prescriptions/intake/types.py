"""
PrescriptionForm dataclass: the only intake format business code knows.

Every Adapter's transform() returns this structure. The orchestrator only
consumes it and never touches raw request data.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from ..llm.types import ImageAttachment
from ..types import PatientInfo


@dataclass
class PrescriptionForm:
    """
    Standard intake format.

    raw_payload  original request data (dict / QueryDict), for debugging only.
    source       which adapter produced it ("web_form" / "multipart").
    """

    patient: PatientInfo
    prescription: str
    image: Optional[ImageAttachment] = None
    source: str = ""
    raw_payload: Any = field(default=None, repr=False)

    def to_payload(self) -> dict:
        """JSON-safe form, used as a Celery task argument."""
        return {
            "patient": self.patient.to_dict(),
            "prescription": self.prescription,
            "image": (
                {"mime_type": self.image.mime_type, "data": self.image.data}
                if self.image is not None else None
            ),
            "source": self.source,
        }

    @classmethod
    def from_payload(cls, payload: dict) -> "PrescriptionForm":
        image = payload.get("image")
        return cls(
            patient=PatientInfo(**payload["patient"]),
            prescription=payload.get("prescription", ""),
            image=ImageAttachment(**image) if image else None,
            source=payload.get("source", ""),
        )
