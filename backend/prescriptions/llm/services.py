"""
Concrete LLM implementations.

New vendor: add a class here, then register it in factory.py.

Registered vendors:
  anthropic: ClaudeService   (claude-sonnet-4-20250514)
  openai:    OpenAIService   (gpt-4o)
  gemini:    GeminiService   (gemini-2.0-flash)
"""

import base64
import os

from .base import BaseLLMService
from .types import LLMResponse

MAX_TOKENS = 2000


# ── ClaudeService ──────────────────────────────────────────────────────────
#
# Anthropic SDK.
# Env: ANTHROPIC_API_KEY
# Model: claude-sonnet-4-20250514 (override with ANTHROPIC_MODEL)

class ClaudeService(BaseLLMService):

    DEFAULT_MODEL = "claude-sonnet-4-20250514"

    def complete(self, system_prompt, user_prompt, image=None):
        import anthropic

        api_key = os.getenv("ANTHROPIC_API_KEY")
        if not api_key:
            raise ValueError("ANTHROPIC_API_KEY is not set")

        model = os.getenv("ANTHROPIC_MODEL", self.DEFAULT_MODEL)
        client = anthropic.Anthropic(api_key=api_key)

        content = [{"type": "text", "text": user_prompt}]
        if image is not None:
            content.append({
                "type": "image",
                "source": {"type": "base64", "media_type": image.mime_type, "data": image.data},
            })

        response = client.messages.create(
            model=model,
            max_tokens=MAX_TOKENS,
            system=system_prompt,
            messages=[{"role": "user", "content": content}],
        )

        return LLMResponse(
            content=response.content[0].text,
            model=model,
        )


# ── OpenAIService ──────────────────────────────────────────────────────────
#
# OpenAI SDK.
# Env: OPENAI_API_KEY
# Model: gpt-4o (override with OPENAI_MODEL)

class OpenAIService(BaseLLMService):

    DEFAULT_MODEL = "gpt-4o"

    def complete(self, system_prompt, user_prompt, image=None):
        import openai

        api_key = os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise ValueError("OPENAI_API_KEY is not set")

        model = os.getenv("OPENAI_MODEL", self.DEFAULT_MODEL)
        client = openai.OpenAI(api_key=api_key)

        content = [{"type": "text", "text": user_prompt}]
        if image is not None:
            content.append({"type": "image_url", "image_url": {"url": image.to_data_url()}})

        response = client.chat.completions.create(
            model=model,
            max_tokens=MAX_TOKENS,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user",   "content": content},
            ],
        )

        return LLMResponse(
            content=response.choices[0].message.content,
            model=model,
        )


# ── GeminiService ──────────────────────────────────────────────────────────
#
# Google Generative AI SDK.
# Env: GOOGLE_API_KEY
# Model: gemini-2.0-flash (override with GEMINI_MODEL)

class GeminiService(BaseLLMService):

    DEFAULT_MODEL = "gemini-2.0-flash"

    def complete(self, system_prompt, user_prompt, image=None):
        import google.generativeai as genai

        api_key = os.getenv("GOOGLE_API_KEY")
        if not api_key:
            raise ValueError("GOOGLE_API_KEY is not set")

        model_name = os.getenv("GEMINI_MODEL", self.DEFAULT_MODEL)
        genai.configure(api_key=api_key)
        model = genai.GenerativeModel(model_name, system_instruction=system_prompt)

        parts = [user_prompt]
        if image is not None:
            parts.append({"mime_type": image.mime_type, "data": base64.b64decode(image.data)})

        response = model.generate_content(parts)

        return LLMResponse(
            content=response.text,
            model=model_name,
        )
