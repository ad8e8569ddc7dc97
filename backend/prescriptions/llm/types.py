"""
Standard structures of the LLM layer.

Every LLMService.complete() returns an LLMResponse. The analysis layer only
knows these shapes, never which vendor answered.
"""

from dataclasses import dataclass


@dataclass
class ImageAttachment:
    mime_type: str     # image/png | image/jpeg | image/webp
    data: str          # base64 payload, no data-URL prefix

    def to_data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.data}"


@dataclass
class LLMResponse:
    content: str       # raw model text, expected to be one JSON object
    model: str         # model name that actually answered
