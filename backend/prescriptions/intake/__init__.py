from .factory import DEFAULT_SOURCE, get_adapter
from .types import PrescriptionForm

__all__ = ["DEFAULT_SOURCE", "get_adapter", "PrescriptionForm"]
