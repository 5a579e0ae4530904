"""Capability backends for the advisory engine."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..ports import IdentityTextIntent
from .anthropic_backend import AnthropicImageClassifier, AnthropicTextIntent
from .simulated import SimulatedImageClassifier

if TYPE_CHECKING:
    from ..config import BackendConfig
    from ..ports import ImageClassifierPort, TextIntentPort
    from ..rule_catalog import RuleCatalog

# Tags that describe advisor topics or the fallback, not something a photo shows
NON_VISUAL_TAGS = frozenset({"advisor", "default"})


def create_image_classifier(config: "BackendConfig", catalog: "RuleCatalog") -> "ImageClassifierPort":
    """Build the configured image classifier."""
    if config.image_backend == "simulated":
        return SimulatedImageClassifier(delay_seconds=config.simulated_delay_seconds)
    if config.image_backend == "anthropic":
        tags = [tag for tag in catalog.tags() if tag not in NON_VISUAL_TAGS]
        return AnthropicImageClassifier(
            model=config.model,
            max_tokens=config.max_tokens,
            domain_tags=tags,
        )
    raise ValueError(f"Unknown image backend: {config.image_backend}")


def create_text_intent(config: "BackendConfig") -> "TextIntentPort":
    """Build the configured text intent normalizer."""
    if config.text_backend == "identity":
        return IdentityTextIntent()
    if config.text_backend == "anthropic":
        return AnthropicTextIntent(model=config.model, max_tokens=config.max_tokens)
    raise ValueError(f"Unknown text backend: {config.text_backend}")


__all__ = [
    "AnthropicImageClassifier",
    "AnthropicTextIntent",
    "SimulatedImageClassifier",
    "create_image_classifier",
    "create_text_intent",
]
