"""
Concrete intake adapters.

New format: add a class here, then register it in factory.py.

Registered formats:
  web_form:  WebFormAdapter        (JSON, image as data URL)
  multipart: MultipartFormAdapter  (multipart/form-data, image as file upload)
"""

import base64
import json
import re
from typing import Any

from ..exceptions import ValidationError
from ..llm.types import ImageAttachment
from ..types import PatientInfo
from .base import BaseIntakeAdapter, parse_age
from .types import PrescriptionForm

_DATA_URL_RE = re.compile(r"^data:image/(png|jpg|jpeg|webp);base64,")


def parse_data_url(value: str) -> ImageAttachment:
    """
    data:image/<png|jpg|jpeg|webp>;base64,<payload> → ImageAttachment.

    A bare base64 payload is taken as JPEG. Any other data URL keeps its
    declared type so validate() can reject it.
    """
    value = value.strip()
    match = _DATA_URL_RE.match(value)
    if match:
        subtype = "jpeg" if match.group(1) == "jpg" else match.group(1)
        return ImageAttachment(mime_type=f"image/{subtype}", data=value[match.end():])

    if value.startswith("data:"):
        mime_type = value[5:].split(";", 1)[0]
        return ImageAttachment(mime_type=mime_type, data="")
    return ImageAttachment(mime_type="image/jpeg", data=value)


def _text(data, key: str) -> str:
    return str(data.get(key) or "").strip()


def _patient(data) -> PatientInfo:
    return PatientInfo(
        name=_text(data, "name"),
        age=parse_age(data.get("age")),
        gender=_text(data, "gender"),
        medications=_text(data, "medications"),
        symptoms=_text(data, "symptoms"),
    )


# ── WebFormAdapter ─────────────────────────────────────────────────────────
#
# Example (JSON):
# {
#   "name": "John Doe", "age": "35", "gender": "male",
#   "symptoms": "High blood pressure and fatigue",
#   "medications": "Aspirin 81mg",
#   "prescription": "Lisinopril 10mg once daily, Metformin 500mg twice daily",
#   "prescriptionImage": "data:image/png;base64,iVBORw0..."     (optional)
# }

class WebFormAdapter(BaseIntakeAdapter):
    source = "web_form"

    def parse(self) -> Any:
        if isinstance(self._raw_body, (bytes, str)):
            try:
                raw = json.loads(self._raw_body or "{}")
            except json.JSONDecodeError as exc:
                raise ValidationError(
                    message="Request body is not valid JSON.",
                    code="MALFORMED_JSON",
                    detail={"error": str(exc)},
                ) from exc
        else:
            raw = self._raw_body

        if not isinstance(raw, dict):
            raise ValidationError(
                message="Request body must be a JSON object.",
                code="MALFORMED_JSON",
            )
        self._parsed = raw
        return raw

    def transform(self) -> PrescriptionForm:
        raw = self._parsed
        image_value = _text(raw, "prescriptionImage")

        return PrescriptionForm(
            source=self.source,
            raw_payload=raw,
            patient=_patient(raw),
            prescription=_text(raw, "prescription"),
            image=parse_data_url(image_value) if image_value else None,
        )


# ── MultipartFormAdapter ───────────────────────────────────────────────────
#
# Same text fields as the web form, posted as multipart/form-data; the
# prescription photo arrives as an uploaded file named "prescriptionImage".

class MultipartFormAdapter(BaseIntakeAdapter):
    source = "multipart"

    def parse(self) -> Any:
        self._parsed = self._raw_body
        return self._parsed

    def _image(self):
        upload = self._files.get("prescriptionImage")
        if upload is None:
            return None
        mime_type = "image/jpeg" if upload.content_type == "image/jpg" else upload.content_type
        return ImageAttachment(
            mime_type=mime_type,
            data=base64.b64encode(upload.read()).decode("ascii"),
        )

    def transform(self) -> PrescriptionForm:
        data = self._parsed
        return PrescriptionForm(
            source=self.source,
            raw_payload=data,
            patient=_patient(data),
            prescription=_text(data, "prescription"),
            image=self._image(),
        )
