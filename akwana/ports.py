"""
Capability ports - the external collaborators of the advisory engine.

Core owns the decision logic; ports supply what it cannot compute itself
(image recognition, translation, persistence). Any implementation that
satisfies these protocols can be swapped in without touching the
classifier or the scan session.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from .artifact import DiagnosticArtifact
    from .scan_input import ImageInput, Language


class CapabilityError(Exception):
    """A capability backend is unavailable or returned a malformed response."""

    def __init__(self, message: str, capability: str | None = None):
        super().__init__(message)
        self.capability = capability


class ImageClassification(BaseModel):
    """What an image classifier reports for one photo."""

    domain_tag: str = Field(min_length=1)
    confidence: float = Field(ge=0, le=100)


class ImageClassifierPort(Protocol):
    """
    External image recognition capability.

    Returns the domain tag the photo shows (e.g. "early_blight") and a
    confidence in [0, 100]. Raises CapabilityError when unavailable.
    """

    async def classify(self, image: "ImageInput") -> ImageClassification:
        ...


class TextIntentPort(Protocol):
    """
    Pre-normalizes free text before keyword matching (e.g. translation
    of Luganda or Swahili questions to English).
    """

    async def normalize(self, text: str, language: "Language") -> str:
        ...


class ArtifactStorePort(Protocol):
    """Persistence collaborator for completed artifacts."""

    def save(self, artifact: "DiagnosticArtifact") -> None:
        ...

    def load(self, artifact_id: str) -> "DiagnosticArtifact | None":
        ...


class IdentityTextIntent:
    """TextIntentPort that leaves text untouched."""

    async def normalize(self, text: str, language: "Language") -> str:
        return text


__all__ = [
    "CapabilityError",
    "ImageClassification",
    "ImageClassifierPort",
    "TextIntentPort",
    "ArtifactStorePort",
    "IdentityTextIntent",
]
