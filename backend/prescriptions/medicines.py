"""
Canned medicine reference, standing in for a vector-database lookup.
"""

from typing import Optional

MEDICINES = {
    "lisinopril": {
        "name": "Lisinopril",
        "dosage": "10-40mg daily",
        "interactions": ["Potassium supplements", "Lithium", "NSAIDs"],
        "sideEffects": ["Dry cough", "Dizziness", "Headache"],
        "contraindications": ["Pregnancy", "History of angioedema"],
    },
    "metformin": {
        "name": "Metformin",
        "dosage": "500-2000mg daily in divided doses",
        "interactions": ["Alcohol", "Contrast dyes", "Certain diuretics"],
        "sideEffects": ["Nausea", "Diarrhea", "Vitamin B12 deficiency"],
        "contraindications": ["Kidney disease", "Liver disease", "Heart failure"],
    },
    "atorvastatin": {
        "name": "Atorvastatin",
        "dosage": "10-80mg daily",
        "interactions": ["Grapefruit juice", "Certain antibiotics", "Cyclosporine"],
        "sideEffects": ["Muscle pain", "Liver problems", "Increased blood sugar"],
        "contraindications": ["Liver disease", "Pregnancy", "Breastfeeding"],
    },
}


def search_medicine(name: str) -> Optional[dict]:
    """Case-insensitive match; either string may contain the other."""
    normalized = (name or "").strip().lower()
    if not normalized:
        return None

    for key, info in MEDICINES.items():
        if key in normalized or normalized in key:
            return info
    return None


def lookup_medicines(names: list[str]) -> list[Optional[dict]]:
    return [search_medicine(name) for name in names]
