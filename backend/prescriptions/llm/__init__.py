from .factory import get_llm_service
from .types import ImageAttachment, LLMResponse

__all__ = ["get_llm_service", "ImageAttachment", "LLMResponse"]
