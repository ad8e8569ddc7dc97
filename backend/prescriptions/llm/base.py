"""
BaseLLMService: abstract base of every LLM implementation.

A new vendor only needs to:
1. subclass BaseLLMService
2. implement complete()
3. register one line in factory.py's registry

The analysis layer never knows which vendor is behind it.
"""

from abc import ABC, abstractmethod
from typing import Optional

from .types import ImageAttachment, LLMResponse


class BaseLLMService(ABC):

    @abstractmethod
    def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        image: Optional[ImageAttachment] = None,
    ) -> LLMResponse:
        """
        Call the model and return a standard LLMResponse.

        Args:
            system_prompt: role setup ("You are a clinical pharmacist...")
            user_prompt:   patient data, prescription and output schema
            image:         optional prescription photo sent inline

        Returns:
            LLMResponse(content=model text, model=model name)

        Raises:
            Exception: the vendor call failed; no retry happens here
        """
