"""Tests for capability backends: simulated scanner and Claude adapters."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import anthropic
import httpx
import pytest

from akwana.backends import (
    AnthropicImageClassifier,
    AnthropicTextIntent,
    SimulatedImageClassifier,
    create_image_classifier,
    create_text_intent,
)
from akwana.config import BackendConfig
from akwana.ports import CapabilityError, IdentityTextIntent, ImageClassification
from akwana.scan_input import ImageInput


def text_response(text):
    """Minimal stand-in for an anthropic Message."""
    return SimpleNamespace(content=[SimpleNamespace(type="text", text=text)])


def mock_client(*replies):
    client = MagicMock()
    client.messages.create = AsyncMock(side_effect=[text_response(r) for r in replies])
    return client


class TestSimulatedImageClassifier:
    """Fixed-table scanner used offline."""

    @pytest.mark.asyncio
    async def test_crop_scan(self):
        scanner = SimulatedImageClassifier(delay_seconds=0)
        result = await scanner.classify(ImageInput(b"leaf"))
        assert result == ImageClassification(domain_tag="early_blight", confidence=87)

    @pytest.mark.asyncio
    async def test_soil_scan(self):
        scanner = SimulatedImageClassifier(delay_seconds=0)
        result = await scanner.classify(ImageInput(b"soil", scan_type="soil"))
        assert result.domain_tag == "soil_quality"
        assert result.confidence == 92

    @pytest.mark.asyncio
    async def test_descriptor_overrides_result(self):
        scanner = SimulatedImageClassifier(delay_seconds=0)
        result = await scanner.classify(ImageInput({"domain_tag": "fall_armyworm", "confidence": 77}))
        assert result.domain_tag == "fall_armyworm"
        assert result.confidence == 77

    @pytest.mark.asyncio
    async def test_unavailable_scanner(self):
        scanner = SimulatedImageClassifier(delay_seconds=0, available=False)
        with pytest.raises(CapabilityError):
            await scanner.classify(ImageInput(b"leaf"))
        assert scanner.calls == 1


class TestAnthropicImageClassifier:
    """Claude vision adapter."""

    @pytest.fixture
    def classifier(self):
        return AnthropicImageClassifier(
            api_key="test-key",
            domain_tags=["early_blight", "soil_quality"],
        )

    @pytest.mark.asyncio
    async def test_classify_sends_image_and_parses_reply(self, classifier):
        classifier._client = mock_client('{"domain_tag": "early_blight", "confidence": 81}')

        result = await classifier.classify(ImageInput(b"\xff\xd8leaf", media_type="image/png"))

        assert result == ImageClassification(domain_tag="early_blight", confidence=81)
        kwargs = classifier._client.messages.create.await_args.kwargs
        image_block, text_block = kwargs["messages"][0]["content"]
        assert image_block["source"]["media_type"] == "image/png"
        assert image_block["source"]["type"] == "base64"
        assert "early_blight, soil_quality" in text_block["text"]
        assert kwargs["temperature"] == 0.0

    @pytest.mark.asyncio
    async def test_code_fence_is_stripped(self, classifier):
        classifier._client = mock_client('```json\n{"domain_tag": "soil_quality", "confidence": 90}\n```')
        result = await classifier.classify(ImageInput(b"soil", scan_type="soil"))
        assert result.domain_tag == "soil_quality"

    @pytest.mark.asyncio
    async def test_malformed_reply(self, classifier):
        classifier._client = mock_client("Looks like blight to me!")
        with pytest.raises(CapabilityError, match="Malformed"):
            await classifier.classify(ImageInput(b"leaf"))

    @pytest.mark.asyncio
    async def test_api_error_becomes_capability_error(self, classifier):
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        client = MagicMock()
        client.messages.create = AsyncMock(side_effect=anthropic.APIConnectionError(request=request))
        classifier._client = client

        with pytest.raises(CapabilityError) as exc_info:
            await classifier.classify(ImageInput(b"leaf"))
        assert exc_info.value.capability == "image"

    @pytest.mark.asyncio
    async def test_metadata_descriptor_rejected(self, classifier):
        with pytest.raises(CapabilityError, match="raw image bytes"):
            await classifier.classify(ImageInput({"file": "leaf.jpg"}))

    @pytest.mark.asyncio
    async def test_missing_api_key(self, monkeypatch):
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        monkeypatch.delenv("ANTHROPIC_AUTH_TOKEN", raising=False)
        classifier = AnthropicImageClassifier(domain_tags=["early_blight"])

        with pytest.raises(CapabilityError, match="ANTHROPIC_API_KEY"):
            await classifier.classify(ImageInput(b"leaf"))


class TestAnthropicTextIntent:
    """Claude translation adapter."""

    @pytest.mark.asyncio
    async def test_english_passes_through_without_call(self):
        intent = AnthropicTextIntent(api_key="test-key")
        intent._client = mock_client()

        assert await intent.normalize("How do I treat tomato blight?", "en") == "How do I treat tomato blight?"
        intent._client.messages.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_swahili_is_translated(self):
        intent = AnthropicTextIntent(api_key="test-key")
        intent._client = mock_client("  How do I treat tomato blight?\n")

        result = await intent.normalize("Nawezaje kutibu ukungu wa nyanya?", "sw")

        assert result == "How do I treat tomato blight?"
        kwargs = intent._client.messages.create.await_args.kwargs
        assert kwargs["messages"][0]["content"].startswith("Swahili: ")

    @pytest.mark.asyncio
    async def test_empty_translation(self):
        intent = AnthropicTextIntent(api_key="test-key")
        intent._client = mock_client("   ")
        with pytest.raises(CapabilityError):
            await intent.normalize("Oli otya", "lg")


class TestBackendFactories:

    def test_simulated_image_backend(self, catalog):
        port = create_image_classifier(BackendConfig(simulated_delay_seconds=0.5), catalog)
        assert isinstance(port, SimulatedImageClassifier)
        assert port.delay_seconds == 0.5

    def test_anthropic_image_backend_gets_visual_tags(self, catalog):
        port = create_image_classifier(BackendConfig(image_backend="anthropic"), catalog)
        assert isinstance(port, AnthropicImageClassifier)
        assert "early_blight" in port.domain_tags
        assert "advisor" not in port.domain_tags
        assert "default" not in port.domain_tags

    def test_text_backends(self):
        assert isinstance(create_text_intent(BackendConfig()), IdentityTextIntent)
        assert isinstance(create_text_intent(BackendConfig(text_backend="anthropic")), AnthropicTextIntent)

    def test_unknown_backend(self, catalog):
        with pytest.raises(ValueError):
            create_image_classifier(BackendConfig(image_backend="webcam"), catalog)
