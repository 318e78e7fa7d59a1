"""
LLM client for the generative service.

Provides a wrapper around the OpenAI SDK pointed at an OpenAI-compatible
endpoint (Gemini by default). Builds multimodal content parts, attaches JSON
schema response formats and routes every call through the retry wrapper.
"""

import logging
from typing import Any, Sequence

from openai import OpenAI

from autograde.config import Settings, get_settings
from autograde.grading.retry import with_retry
from autograde.models import Attachment

logger = logging.getLogger(__name__)

ContentPart = dict[str, Any]


def text_part(text: str) -> ContentPart:
    """Build a text content part."""
    return {"type": "text", "text": text}


def attachment_part(attachment: Attachment) -> ContentPart:
    """
    Build an inline binary content part.

    Images travel as ``image_url`` data URLs, PDFs as ``file`` parts.
    """
    if attachment.is_pdf:
        return {
            "type": "file",
            "file": {
                "filename": attachment.file_name or "upload.pdf",
                "file_data": attachment.data_url,
            },
        }
    return {"type": "image_url", "image_url": {"url": attachment.data_url}}


class LLMClient:
    """
    Client for interacting with the generative service.

    The underlying SDK client can be injected; otherwise one is created from
    settings. SDK-level retries are disabled so that ``with_retry`` alone
    decides what is retried.
    """

    def __init__(self, settings: Settings | None = None, client: OpenAI | None = None):
        """
        Initialize the LLM client.

        Args:
            settings: Configuration settings. Uses global settings if not provided.
            client: Pre-built OpenAI client, mainly for tests.
        """
        self._settings = settings or get_settings()
        self._client = client or OpenAI(
            api_key=self._settings.gemini_api_key,
            base_url=self._settings.gemini_base_url,
            max_retries=0,
        )

    @property
    def model(self) -> str:
        return self._settings.gemini_model

    def generate(
        self,
        parts: Sequence[ContentPart] | str,
        *,
        description: str,
        system_prompt: str | None = None,
        response_schema: dict[str, Any] | None = None,
        schema_name: str = "response",
        temperature: float | None = None,
    ) -> str:
        """
        Generate a response from the model.

        Args:
            parts: User content, either plain text or a sequence of content parts.
            description: What the call does, used in retry logs and errors.
            system_prompt: Optional system instruction.
            response_schema: Optional JSON schema the reply must match.
            schema_name: Name reported with the schema.
            temperature: Override temperature (uses config default if None).

        Returns:
            The generated text, or an empty string if the model returned none.

        Raises:
            LLMError: If generation fails after all retries.
        """
        messages: list[dict[str, Any]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        content = parts if isinstance(parts, str) else list(parts)
        messages.append({"role": "user", "content": content})

        request: dict[str, Any] = {
            "model": self._settings.gemini_model,
            "messages": messages,
            "temperature": (
                temperature if temperature is not None else self._settings.llm_temperature
            ),
            "max_tokens": self._settings.max_output_tokens,
        }
        if response_schema is not None:
            request["response_format"] = {
                "type": "json_schema",
                "json_schema": {
                    "name": schema_name,
                    "strict": True,
                    "schema": response_schema,
                },
            }

        logger.debug("Calling %s to %s", self._settings.gemini_model, description)
        response = with_retry(
            lambda: self._client.chat.completions.create(**request),
            description,
            max_retries=self._settings.max_retries,
            initial_delay=self._settings.retry_initial_delay,
            backoff_factor=self._settings.retry_backoff_factor,
        )

        if response.choices and response.choices[0].message.content:
            return response.choices[0].message.content
        return ""

    def health_check(self) -> bool:
        """
        Check if the API is reachable.

        Returns:
            True if API is healthy, False otherwise.
        """
        try:
            response = self._client.chat.completions.create(
                model=self._settings.gemini_model,
                messages=[{"role": "user", "content": "ping"}],
                max_tokens=5,
            )
            return bool(response.choices)
        except Exception as e:
            logger.warning("Health check failed: %s", e)
            return False
