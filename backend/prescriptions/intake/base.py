"""
BaseIntakeAdapter: abstract base of every intake format.

A new format only needs to:
1. subclass BaseIntakeAdapter
2. implement parse() and transform()
3. register one line in factory.py's registry

No business code changes.
"""

import base64
import binascii
from abc import ABC, abstractmethod
from typing import Any

from ..exceptions import ValidationError
from .types import PrescriptionForm

ALLOWED_IMAGE_TYPES = ("image/png", "image/jpeg", "image/webp")

# minimum lengths enforced by the registration form
MIN_NAME = 2
MIN_SYMPTOMS = 10
MIN_MEDICATIONS = 3
MIN_PRESCRIPTION = 10


def is_base64(data: str) -> bool:
    """Non-empty, strictly valid base64 (no stray characters)."""
    if not data:
        return False
    try:
        base64.b64decode(data, validate=True)
    except binascii.Error:
        return False
    return True


def parse_age(value) -> int:
    """Leading integer of the age field, 0 when there is none."""
    digits = ""
    for ch in str(value or "").strip():
        if not ch.isdigit():
            break
        digits += ch
    return int(digits) if digits else 0


class BaseIntakeAdapter(ABC):
    """
    Three step pipeline: parse → transform → validate

    Subclasses implement parse() and transform(); validate() holds the form
    rules shared by every format.
    """

    source: str = ""

    def __init__(self, raw_body: Any, content_type: str = "", files=None):
        self._raw_body = raw_body
        self._content_type = content_type
        self._files = files or {}

    @abstractmethod
    def parse(self) -> Any:
        """
        raw body → intermediate structure (usually a dict).
        Store the result in self._parsed for transform().
        """

    @abstractmethod
    def transform(self) -> PrescriptionForm:
        """self._parsed → PrescriptionForm, keeping the raw data in raw_payload."""

    def validate(self, form: PrescriptionForm) -> None:
        errors = []
        patient = form.patient

        if len(patient.name) < MIN_NAME:
            errors.append({"field": "name", "message": "Name must be at least 2 characters."})

        if patient.age <= 0:
            errors.append({"field": "age", "message": "Age must be a positive number."})

        if not patient.gender:
            errors.append({"field": "gender", "message": "Please select a gender."})

        if len(patient.symptoms) < MIN_SYMPTOMS:
            errors.append({
                "field": "symptoms",
                "message": "Please describe your symptoms in at least 10 characters.",
            })

        if len(patient.medications) < MIN_MEDICATIONS:
            errors.append({"field": "medications", "message": "Please enter your current medications."})

        if form.image is None and len(form.prescription) < MIN_PRESCRIPTION:
            errors.append({
                "field": "prescription",
                "message": "Please enter the prescription details to check.",
            })

        if form.image is not None and form.image.mime_type not in ALLOWED_IMAGE_TYPES:
            errors.append({
                "field": "prescriptionImage",
                "message": f"Unsupported image type {form.image.mime_type!r}; use PNG, JPEG or WebP.",
            })
        elif form.image is not None and not is_base64(form.image.data):
            errors.append({
                "field": "prescriptionImage",
                "message": "Image data is missing or is not valid base64.",
            })

        if errors:
            raise ValidationError(
                message="Request validation failed.",
                code="VALIDATION_ERROR",
                detail={"errors": errors},
            )

    def process(self) -> PrescriptionForm:
        """parse → transform → validate, returns a validated PrescriptionForm."""
        self.parse()
        form = self.transform()
        self.validate(form)
        return form
