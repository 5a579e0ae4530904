"""Simulated image scanner for demos and offline use."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from ..ports import CapabilityError, ImageClassification

if TYPE_CHECKING:
    from ..scan_input import ImageInput

logger = logging.getLogger(__name__)


class SimulatedImageClassifier:
    """
    ImageClassifierPort that answers from a fixed table after a delay.

    Crop photos come back as early blight, soil photos as good quality
    soil. A metadata descriptor may carry its own `domain_tag` and
    `confidence`, which is how tests and demos pick other outcomes.
    """

    SCAN_RESULTS: dict[str, tuple[str, int]] = {
        "crop": ("early_blight", 87),
        "soil": ("soil_quality", 92),
    }

    def __init__(self, delay_seconds: float = 3.0, available: bool = True):
        self.delay_seconds = delay_seconds
        self.available = available
        self.calls = 0

    async def classify(self, image: "ImageInput") -> ImageClassification:
        self.calls += 1
        if not self.available:
            raise CapabilityError("Image scanner is offline", capability="image")

        if self.delay_seconds > 0:
            await asyncio.sleep(self.delay_seconds)

        descriptor = image.descriptor
        if isinstance(descriptor, dict) and "domain_tag" in descriptor:
            return ImageClassification(
                domain_tag=descriptor["domain_tag"],
                confidence=descriptor.get("confidence", 80),
            )

        domain_tag, confidence = self.SCAN_RESULTS[image.scan_type]
        logger.debug(f"Simulated {image.scan_type} scan: {domain_tag} ({confidence}%)")
        return ImageClassification(domain_tag=domain_tag, confidence=confidence)


__all__ = ["SimulatedImageClassifier"]
