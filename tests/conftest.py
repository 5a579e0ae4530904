"""Shared fixtures: controllable capability ports and a wired classifier."""

import asyncio

import pytest

from akwana.advisory_sink import AdvisorySink
from akwana.classifier import Classifier
from akwana.ports import CapabilityError, ImageClassification
from akwana.rule_catalog import default_catalog


class GatedImageClassifier:
    """Image port that answers only when the test opens the gate."""

    def __init__(self, domain_tag: str = "early_blight", confidence: int = 87):
        self.result = ImageClassification(domain_tag=domain_tag, confidence=confidence)
        self.error: Exception | None = None
        self.gate = asyncio.Event()
        self.calls = 0

    async def classify(self, image):
        self.calls += 1
        await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.result

    def open(self):
        self.gate.set()


class FlakyImageClassifier:
    """Image port that fails a fixed number of times, then answers."""

    def __init__(self, failures: int = 1):
        self.failures = failures
        self.calls = 0

    async def classify(self, image):
        self.calls += 1
        if self.calls <= self.failures:
            raise CapabilityError("Image scanner is offline", capability="image")
        return ImageClassification(domain_tag="soil_quality", confidence=92)


@pytest.fixture
def catalog():
    return default_catalog()


@pytest.fixture
def gated_port():
    return GatedImageClassifier()


@pytest.fixture
def flaky_port():
    return FlakyImageClassifier()


@pytest.fixture
def sink():
    return AdvisorySink(retention=5)


@pytest.fixture
def gated_classifier(catalog, gated_port):
    return Classifier(catalog, image_classifier=gated_port)


@pytest.fixture
def text_classifier(catalog):
    return Classifier(catalog)
