"""
AI analysis of a prescription.

PrescriptionAnalyzer.analyze() builds the prompt, calls the configured LLM
and runs the answer through three pure steps:

    strip_code_fences → parse_json → validate_analysis

Each step can be tested without touching the network. A failure in any step
raises AIResponseInvalid; nothing is retried or repaired.
"""

import json
import logging
import re
from typing import Optional

from .exceptions import AIResponseInvalid
from .llm.base import BaseLLMService
from .llm.types import ImageAttachment
from .medicines import lookup_medicines
from .serializers import AnalysisResponseSerializer
from .types import AnalysisResult, DataSources, Issue, PatientInfo, PrescriptionResult, Suggestion

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an expert clinical pharmacist reviewing prescriptions for drug "
    "interactions, dosing errors and contraindications. "
    "You answer with a single JSON object and nothing else."
)

_SPLIT_RE = re.compile(r"[,\n]")
_FENCE_RE = re.compile(r"```json|```")


def split_prescription(prescription: str) -> list[str]:
    """Candidate medication entries: comma/newline separated, trimmed."""
    return [part.strip() for part in _SPLIT_RE.split(prescription or "") if part.strip()]


def build_prompt(
    prescription: str,
    patient: PatientInfo,
    medicine_data: list,
    history: Optional[list[PrescriptionResult]] = None,
    has_image: bool = False,
) -> str:
    """Build the user prompt for prescription analysis."""
    prescription_block = f"Prescription to analyze:\n{prescription}\n" if prescription else ""
    image_block = "Also analyze the provided prescription image." if has_image else ""

    if history:
        history_json = json.dumps([r.to_dict() for r in history], indent=2)
        history_block = f"""Previous Prescription History (from the graph database):
{history_json}

When analyzing this prescription, please consider:
1. Previous medications the patient has taken
2. Previous issues or warnings identified
3. Any patterns in the prescription history that could affect the current prescription"""
    else:
        history_block = "No previous prescription history available."

    return f"""Patient Information:
- Name: {patient.name}
- Age: {patient.age}
- Gender: {patient.gender}
- Current Medications: {patient.medications}
- Symptoms: {patient.symptoms}

{prescription_block}{image_block}

Medicine Database Information:
{json.dumps(medicine_data, indent=2)}

{history_block}

Provide your analysis as a strict JSON object with this structure:
{{
  "status": "valid" | "warning" | "invalid",
  "issues": [{{ "title": string, "description": string, "severity": "low" | "medium" | "high" }}],
  "suggestions": [{{ "title": string, "description": string }}],
  "dataSources": {{ "vectorDbEntries": number, "searchQueries": number }},
  "imageAnalysis": string | null,
  "historyReference": string | null
}}

Important: Return only the JSON object, with no additional text, markdown, or formatting.
In the historyReference field, include a brief analysis of how the current prescription relates to the patient's history."""


# ── Post-processing pipeline ──────────────────────────────────────────────

def strip_code_fences(text: str) -> str:
    return _FENCE_RE.sub("", text or "").strip()


def parse_json(text: str):
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise AIResponseInvalid(
            message="Invalid AI response format",
            detail={"error": str(exc), "response": text[:500]},
        ) from exc


def validate_analysis(payload) -> AnalysisResult:
    serializer = AnalysisResponseSerializer(data=payload)
    if not serializer.is_valid():
        raise AIResponseInvalid(
            message="AI response does not match the analysis schema",
            detail={"errors": serializer.errors},
        )

    data = serializer.validated_data
    sources = data["dataSources"]
    return AnalysisResult(
        status=data["status"],
        issues=[Issue(**dict(i)) for i in data["issues"]],
        suggestions=[Suggestion(**dict(s)) for s in data["suggestions"]],
        data_sources=DataSources(
            vector_db_entries=sources["vectorDbEntries"],
            search_queries=sources["searchQueries"],
        ),
        image_analysis=data.get("imageAnalysis"),
        history_reference=data.get("historyReference"),
    )


def parse_analysis(text: str) -> AnalysisResult:
    return validate_analysis(parse_json(strip_code_fences(text)))


# ── Analyzer ──────────────────────────────────────────────────────────────

class PrescriptionAnalyzer:

    def __init__(self, llm: BaseLLMService):
        self.llm = llm

    def analyze(
        self,
        prescription: str,
        patient: PatientInfo,
        image: Optional[ImageAttachment] = None,
        history: Optional[list[PrescriptionResult]] = None,
    ) -> AnalysisResult:
        medicine_data = lookup_medicines(split_prescription(prescription))
        prompt = build_prompt(prescription, patient, medicine_data, history, has_image=image is not None)
        logger.info(
            "[Analysis] prompt built, length=%d, known medicines=%d, history=%d",
            len(prompt), sum(1 for m in medicine_data if m), len(history or []),
        )

        response = self.llm.complete(SYSTEM_PROMPT, prompt, image=image)
        logger.info("[Analysis] %s answered, %d chars", response.model, len(response.content))

        try:
            return parse_analysis(response.content)
        except AIResponseInvalid:
            logger.error("[Analysis] rejected AI response (first 500 chars): %s", response.content[:500])
            raise
