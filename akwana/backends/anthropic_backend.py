"""
Claude-backed capability adapters.

AnthropicImageClassifier reads a crop or soil photo and names one of the
catalog's domain tags; AnthropicTextIntent translates Luganda and Swahili
questions to English before keyword matching. Both talk to the Anthropic
Messages API through the async client and turn every API or parsing
problem into CapabilityError.
"""

from __future__ import annotations

import base64
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Sequence

import anthropic
from dotenv import load_dotenv
from pydantic import ValidationError as SchemaError

from ..ports import CapabilityError, ImageClassification

# Auto-load .env from project root (ANTHROPIC_API_KEY, ANTHROPIC_BASE_URL)
_project_root = Path(__file__).parent.parent.parent
_env_file = _project_root / ".env"
if _env_file.exists():
    load_dotenv(_env_file)

if TYPE_CHECKING:
    from ..scan_input import ImageInput, Language

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-20250514"

LANGUAGE_NAMES = {
    "en": "English",
    "lg": "Luganda",
    "sw": "Swahili",
}

IMAGE_SYSTEM_PROMPT = """You are a plant pathologist and soil scientist helping smallholder farmers in Uganda.
Look at the photo and decide which ONE of the allowed labels best describes it.
Reply with JSON only, no prose: {"domain_tag": "<label>", "confidence": <integer 0-100>}"""

TRANSLATE_SYSTEM_PROMPT = """Translate the farmer's question to English.
Keep crop, pest and disease names. Reply with the translation only."""


def _strip_code_fence(raw: str) -> str:
    """Remove a surrounding ```json ... ``` fence if the model added one."""
    text = raw.strip()
    if text.startswith("```json"):
        text = text[7:].strip()
    elif text.startswith("```"):
        text = text[3:].strip()
    if text.endswith("```"):
        text = text[:-3].strip()
    return text


def _response_text(response: Any) -> str:
    """Extract text from response blocks."""
    content = ""
    for block in response.content:
        if block.type == "text":
            content += block.text
    return content


@dataclass
class _AnthropicAdapter:
    """Shared client setup for the Claude-backed ports."""

    api_key: str | None = None
    base_url: str | None = None
    model: str = DEFAULT_MODEL
    max_tokens: int = 256
    _client: anthropic.AsyncAnthropic | None = field(default=None, repr=False)

    capability = "anthropic"

    def __post_init__(self):
        """Initialize API key from environment if not provided."""
        if self.api_key is None:
            self.api_key = os.environ.get("ANTHROPIC_API_KEY") or os.environ.get("ANTHROPIC_AUTH_TOKEN")
        if self.base_url is None:
            self.base_url = os.environ.get("ANTHROPIC_BASE_URL")

    def _get_client(self) -> anthropic.AsyncAnthropic:
        """Get or create the async Anthropic client."""
        if self._client is None:
            if not self.api_key:
                raise CapabilityError("ANTHROPIC_API_KEY not set", capability=self.capability)
            client_kwargs = {"api_key": self.api_key}
            if self.base_url:
                client_kwargs["base_url"] = self.base_url
            self._client = anthropic.AsyncAnthropic(**client_kwargs)
        return self._client

    async def _create(self, system: str, content: Any) -> str:
        client = self._get_client()
        try:
            response = await client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=0.0,
                system=system,
                messages=[{"role": "user", "content": content}],
            )
        except anthropic.APIError as e:
            raise CapabilityError(f"Anthropic API error: {e}", capability=self.capability) from e
        return _response_text(response)


@dataclass
class AnthropicImageClassifier(_AnthropicAdapter):
    """ImageClassifierPort backed by Claude vision."""

    domain_tags: Sequence[str] = ()
    capability = "image"

    async def classify(self, image: "ImageInput") -> ImageClassification:
        if not isinstance(image.descriptor, bytes):
            raise CapabilityError("Claude vision needs raw image bytes", capability=self.capability)
        if not self.domain_tags:
            raise CapabilityError("No domain tags configured for image classification", capability=self.capability)

        prompt = (
            f"This is a {image.scan_type} photo. "
            f"Allowed labels: {', '.join(self.domain_tags)}."
        )
        content = [
            {
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": image.media_type,
                    "data": base64.b64encode(image.descriptor).decode("ascii"),
                },
            },
            {"type": "text", "text": prompt},
        ]
        raw = await self._create(IMAGE_SYSTEM_PROMPT, content)

        try:
            classification = ImageClassification.model_validate_json(_strip_code_fence(raw))
        except SchemaError as e:
            logger.warning(f"Claude did not return a valid classification: {raw!r}")
            raise CapabilityError(f"Malformed classification from Claude: {raw!r}", capability=self.capability) from e

        if classification.domain_tag not in self.domain_tags:
            # Unknown labels are left to the classifier's fallback
            logger.info(f"Claude answered with unlisted label '{classification.domain_tag}'")
        return classification


@dataclass
class AnthropicTextIntent(_AnthropicAdapter):
    """TextIntentPort that translates non-English questions with Claude."""

    capability = "text_intent"

    async def normalize(self, text: str, language: "Language") -> str:
        if language == "en" or not text.strip():
            return text
        source = LANGUAGE_NAMES.get(language, language)
        translated = await self._create(TRANSLATE_SYSTEM_PROMPT, f"{source}: {text}")
        translated = translated.strip()
        if not translated:
            raise CapabilityError("Empty translation from Claude", capability=self.capability)
        logger.debug(f"Translated {source} question: {text!r} -> {translated!r}")
        return translated


__all__ = ["AnthropicImageClassifier", "AnthropicTextIntent", "DEFAULT_MODEL"]
