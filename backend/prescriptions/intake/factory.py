"""
Factory: return the Adapter class for a source string.

A new format only needs:
  1. an Adapter class in adapters.py
  2. one line in _build_registry()
  No business code changes.
"""

from ..exceptions import ValidationError
from .base import BaseIntakeAdapter

DEFAULT_SOURCE = "web_form"


# key: source string (HTTP header X-Form-Source, or inferred from Content-Type)
# value: Adapter class (not instantiated)
def _build_registry() -> dict[str, type[BaseIntakeAdapter]]:
    # deferred import avoids a cycle with base.py
    from .adapters import MultipartFormAdapter, WebFormAdapter

    return {
        "web_form":  WebFormAdapter,
        "multipart": MultipartFormAdapter,
    }


def get_adapter(source: str, raw_body, content_type: str = "", files=None) -> BaseIntakeAdapter:
    """
    Return an instantiated Adapter for `source`.

    Args:
        source:       intake format, e.g. "web_form", "multipart"
        raw_body:     request body (bytes / str) or parsed form data
        content_type: HTTP Content-Type
        files:        uploaded files for multipart requests

    Raises:
        ValidationError: unknown source
    """
    registry = _build_registry()
    adapter_cls = registry.get(source)

    if adapter_cls is None:
        raise ValidationError(
            message=f"Unknown form source: {source!r}.",
            code="UNKNOWN_SOURCE",
            detail={"known_sources": list(registry.keys())},
        )

    return adapter_cls(raw_body=raw_body, content_type=content_type, files=files)
