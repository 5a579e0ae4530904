"""
Classifier - map an input to exactly one catalog rule.

Matching policy:
- Text: lowercase, walk the catalog in declaration order, first rule whose
  keywords occur in the text wins. First-match, not best-match.
- Image: ask the ImageClassifierPort for a domain tag, take the first rule
  the catalog lists for that tag.
- Nothing matched: the catalog's fallback rule at a fixed confidence floor.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from pydantic import ValidationError as SchemaError

from .ports import CapabilityError, ImageClassification
from .rule_catalog import NotFoundError
from .scan_input import ImageInput, TextInput

if TYPE_CHECKING:
    from .ports import ImageClassifierPort, TextIntentPort
    from .rule import Rule
    from .rule_catalog import RuleCatalog
    from .scan_input import Language, ScanInput

logger = logging.getLogger(__name__)

DEFAULT_FALLBACK_CONFIDENCE = 40


@dataclass(frozen=True)
class MatchResult:
    """The rule selected for an input and the confidence to report."""

    rule: "Rule"
    confidence: int
    fallback: bool = False


class Classifier:
    """
    Deterministic input-to-rule matcher.

    Pure over (catalog, input): the same text always selects the same rule
    with the same confidence while the catalog is unchanged.
    """

    def __init__(
        self,
        catalog: "RuleCatalog",
        image_classifier: "ImageClassifierPort | None" = None,
        text_intent: "TextIntentPort | None" = None,
        fallback_confidence: int = DEFAULT_FALLBACK_CONFIDENCE,
    ):
        if not 0 <= fallback_confidence <= 100:
            raise ValueError(f"fallback_confidence must be in [0, 100], got {fallback_confidence}")
        self.catalog = catalog
        self.image_classifier = image_classifier
        self.text_intent = text_intent
        self.fallback_confidence = fallback_confidence

    async def match(self, scan_input: "ScanInput") -> MatchResult:
        """
        Select the rule for an input.

        Raises:
            CapabilityError: If a port is missing, fails, or answers with
                something malformed, or the catalog is unavailable.
        """
        try:
            if isinstance(scan_input, TextInput):
                text = await self._normalize(scan_input.content, scan_input.language)
                return self.match_text(text)
            if isinstance(scan_input, ImageInput):
                return await self._match_image(scan_input)
        except NotFoundError as e:
            raise CapabilityError(str(e), capability="catalog") from e
        raise TypeError(f"Unsupported input type: {type(scan_input).__name__}")

    def match_text(self, text: str) -> MatchResult:
        """First-match-wins keyword matching over declared rule order."""
        normalized = text.lower()
        for rule in self.catalog.all():
            if rule.matches(normalized):
                return MatchResult(rule=rule, confidence=rule.confidence_base)
        return self._fallback()

    def match_tag(self, domain_tag: str, confidence: float) -> MatchResult:
        """
        Map a domain tag to the first rule declared for it.

        Backends may report fractional confidence; artifacts carry whole
        percentages, so it is rounded here.
        """
        rules = self.catalog.lookup(domain_tag)
        if not rules:
            logger.info(f"No rule for domain tag '{domain_tag}', using fallback")
            return self._fallback()
        return MatchResult(rule=rules[0], confidence=round(confidence))

    async def _normalize(self, text: str, language: "Language") -> str:
        if self.text_intent is None:
            return text
        try:
            return await self.text_intent.normalize(text, language)
        except CapabilityError:
            raise
        except Exception as e:
            raise CapabilityError(f"Text intent backend failed: {e}", capability="text_intent") from e

    async def _match_image(self, image: ImageInput) -> MatchResult:
        if self.image_classifier is None:
            raise CapabilityError("No image classifier configured", capability="image")

        try:
            raw = await self.image_classifier.classify(image)
        except CapabilityError:
            raise
        except Exception as e:
            raise CapabilityError(f"Image classifier failed: {e}", capability="image") from e

        try:
            classification = (
                raw if isinstance(raw, ImageClassification)
                else ImageClassification.model_validate(raw)
            )
        except SchemaError as e:
            raise CapabilityError(
                f"Malformed image classifier response: {raw!r}", capability="image"
            ) from e

        return self.match_tag(classification.domain_tag, classification.confidence)

    def _fallback(self) -> MatchResult:
        return MatchResult(
            rule=self.catalog.fallback(),
            confidence=self.fallback_confidence,
            fallback=True,
        )


__all__ = ["Classifier", "MatchResult", "DEFAULT_FALLBACK_CONFIDENCE"]
