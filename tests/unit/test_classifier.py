"""Tests for Classifier matching policy."""

from unittest.mock import AsyncMock

import pytest

from akwana.classifier import Classifier, MatchResult
from akwana.ports import CapabilityError, IdentityTextIntent, ImageClassification
from akwana.rule import DiagnosisStatus, Rule
from akwana.rule_catalog import NotFoundError, RuleCatalog
from akwana.scan_input import ImageInput, TextInput
from akwana.scan_lifecycle import ScanState
from akwana.scan_session import ScanSession


def rule(rule_id, keywords=(), tags=("advisor",), confidence=70):
    return Rule(
        rule_id=rule_id,
        domain_tags=frozenset(tags),
        keywords=keywords,
        severity=DiagnosisStatus.WARNING,
        confidence_base=confidence,
        title=rule_id,
    )


FALLBACK = Rule(
    rule_id="default",
    domain_tags=frozenset({"default"}),
    severity=DiagnosisStatus.HEALTHY,
    confidence_base=40,
    title="General Farming Advice",
)


class TestTextMatching:
    """Text input: lowercase, first-match-wins over declaration order."""

    def test_first_declared_rule_wins(self):
        catalog = RuleCatalog([
            rule("general-pest", keywords=("pest",)),
            rule("coffee-pest", keywords=("coffee pest",)),
            FALLBACK,
        ])
        classifier = Classifier(catalog)

        # Both predicates match; the more specific rule is declared later
        result = classifier.match_text("coffee pest control")
        assert result.rule.rule_id == "general-pest"

    def test_matching_is_case_insensitive(self, text_classifier):
        result = text_classifier.match_text("How Do I Treat Tomato BLIGHT?")
        assert result.rule.rule_id == "advisor-blight"

    def test_confidence_is_rule_confidence_base(self):
        catalog = RuleCatalog([rule("maize", keywords=("maize",), confidence=81), FALLBACK])
        result = Classifier(catalog).match_text("maize")
        assert result.confidence == 81
        assert not result.fallback

    def test_no_match_yields_fallback_with_floor(self):
        catalog = RuleCatalog([rule("maize", keywords=("maize",)), FALLBACK])
        classifier = Classifier(catalog, fallback_confidence=35)

        result = classifier.match_text("what is the price of goats")
        assert result.rule is FALLBACK
        assert result.confidence == 35
        assert result.fallback

    def test_empty_text_yields_fallback(self, text_classifier):
        result = text_classifier.match_text("")
        assert result.fallback

    def test_matching_is_deterministic(self, text_classifier):
        results = {
            (r.rule.rule_id, r.confidence)
            for r in (text_classifier.match_text("Pest control for coffee") for _ in range(20))
        }
        assert results == {("advisor-coffee-pests", 80)}

    @pytest.mark.parametrize(
        "question, rule_id",
        [
            ("How do I treat tomato blight?", "advisor-blight"),
            ("Best time to plant maize?", "advisor-maize-planting"),
            ("How to improve soil fertility?", "advisor-soil-fertility"),
            ("Pest control for coffee", "advisor-coffee-pests"),
            ("Fall armyworm in my field", "pest-fall-armyworm"),
            ("heavy rain is coming", "weather-heavy-rain"),
        ],
    )
    def test_builtin_advisor_topics(self, text_classifier, question, rule_id):
        assert text_classifier.match_text(question).rule.rule_id == rule_id

    @pytest.mark.asyncio
    async def test_async_match_on_text_input(self, text_classifier):
        result = await text_classifier.match(TextInput("tomato blight"))
        assert result.rule.rule_id == "advisor-blight"

    @pytest.mark.asyncio
    async def test_text_intent_output_is_matched(self, catalog):
        intent = AsyncMock()
        intent.normalize.return_value = "how do I treat tomato blight"
        classifier = Classifier(catalog, text_intent=intent)

        result = await classifier.match(TextInput("Nawezaje kutibu ukungu wa nyanya?", language="sw"))

        intent.normalize.assert_awaited_once_with("Nawezaje kutibu ukungu wa nyanya?", "sw")
        assert result.rule.rule_id == "advisor-blight"

    @pytest.mark.asyncio
    async def test_identity_text_intent(self, catalog):
        classifier = Classifier(catalog, text_intent=IdentityTextIntent())
        result = await classifier.match(TextInput("coffee"))
        assert result.rule.rule_id == "advisor-coffee-pests"

    @pytest.mark.asyncio
    async def test_text_intent_failure_is_capability_error(self, catalog):
        intent = AsyncMock()
        intent.normalize.side_effect = ConnectionError("offline")
        classifier = Classifier(catalog, text_intent=intent)

        with pytest.raises(CapabilityError):
            await classifier.match(TextInput("habari", language="sw"))


class TestImageMatching:
    """Image input: tag from the port, first rule for the tag."""

    @pytest.mark.asyncio
    async def test_tag_maps_to_first_rule_with_port_confidence(self, catalog):
        port = AsyncMock()
        port.classify.return_value = ImageClassification(domain_tag="early_blight", confidence=64)
        classifier = Classifier(catalog, image_classifier=port)

        result = await classifier.match(ImageInput(b"\xff\xd8photo"))

        assert result.rule.rule_id == "crop-early-blight"
        assert result.confidence == 64
        assert not result.fallback

    @pytest.mark.asyncio
    async def test_unknown_tag_yields_fallback(self, catalog):
        port = AsyncMock()
        port.classify.return_value = ImageClassification(domain_tag="alien_fungus", confidence=99)
        classifier = Classifier(catalog, image_classifier=port, fallback_confidence=40)

        result = await classifier.match(ImageInput(b"photo"))

        assert result.fallback
        assert result.rule.rule_id == "default"
        assert result.confidence == 40

    @pytest.mark.asyncio
    async def test_dict_response_is_validated(self, catalog):
        port = AsyncMock()
        port.classify.return_value = {"domain_tag": "soil_quality", "confidence": 92}
        classifier = Classifier(catalog, image_classifier=port)

        result = await classifier.match(ImageInput(b"soil", scan_type="soil"))
        assert result.rule.rule_id == "soil-good-quality"

    @pytest.mark.asyncio
    async def test_fractional_confidence_is_rounded(self, catalog):
        port = AsyncMock()
        port.classify.return_value = {"domain_tag": "early_blight", "confidence": 87.6}
        classifier = Classifier(catalog, image_classifier=port)

        result = await classifier.match(ImageInput(b"photo"))

        assert result.rule.rule_id == "crop-early-blight"
        assert result.confidence == 88
        assert isinstance(result.confidence, int)

    @pytest.mark.asyncio
    async def test_fractional_confidence_completes_scan(self, catalog, sink):
        port = AsyncMock()
        port.classify.return_value = {"domain_tag": "early_blight", "confidence": 64.2}
        session = ScanSession(Classifier(catalog, image_classifier=port), sink)
        session.capture(ImageInput(b"photo"))
        session.submit()

        assert await session.wait() is ScanState.COMPLETED
        assert sink.latest().confidence == 64

    @pytest.mark.asyncio
    async def test_malformed_response_is_capability_error(self, catalog):
        port = AsyncMock()
        port.classify.return_value = {"domain_tag": "early_blight", "confidence": 250}
        classifier = Classifier(catalog, image_classifier=port)

        with pytest.raises(CapabilityError, match="Malformed"):
            await classifier.match(ImageInput(b"photo"))

    @pytest.mark.asyncio
    async def test_port_exception_is_capability_error(self, catalog):
        port = AsyncMock()
        port.classify.side_effect = RuntimeError("GPU on fire")
        classifier = Classifier(catalog, image_classifier=port)

        with pytest.raises(CapabilityError) as exc_info:
            await classifier.match(ImageInput(b"photo"))
        assert exc_info.value.capability == "image"

    @pytest.mark.asyncio
    async def test_missing_port_is_capability_error(self, catalog):
        classifier = Classifier(catalog)
        with pytest.raises(CapabilityError, match="No image classifier"):
            await classifier.match(ImageInput(b"photo"))


class TestClassifierErrors:
    """Catalog failures and bad arguments."""

    @pytest.mark.asyncio
    async def test_failed_catalog_is_capability_error(self, tmp_path):
        classifier = Classifier(RuleCatalog.from_file(tmp_path / "missing.json"))
        with pytest.raises(CapabilityError) as exc_info:
            await classifier.match(TextInput("maize"))
        assert isinstance(exc_info.value.__cause__, NotFoundError)

    def test_fallback_confidence_range_checked(self, catalog):
        with pytest.raises(ValueError):
            Classifier(catalog, fallback_confidence=120)

    def test_match_result_is_frozen(self, text_classifier):
        result = text_classifier.match_text("maize")
        assert isinstance(result, MatchResult)
        with pytest.raises(AttributeError):
            result.confidence = 1
