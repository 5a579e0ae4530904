"""AdvisoryEngine - wire catalog, classifier, sink and sessions from config."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from .advisor_chat import AdvisorChat
from .advisory_sink import AdvisorySink
from .artifact_store import ArtifactStore
from .backends import create_image_classifier, create_text_intent
from .classifier import Classifier
from .config import AkwanaConfig
from .recommendation_builder import RecommendationBuilder
from .rule_catalog import RuleCatalog, default_catalog
from .scan_session import ScanSession

logger = logging.getLogger(__name__)


@dataclass
class AdvisoryEngine:
    """
    One farmer's advisory engine.

    The catalog is shared and read-only; the sink is shared by every
    session created here so the UI sees one latest/history view.
    """

    classifier: Classifier
    sink: AdvisorySink
    config: AkwanaConfig = field(default_factory=AkwanaConfig)
    builder: RecommendationBuilder = field(default_factory=RecommendationBuilder)

    @classmethod
    def from_config(cls, config: AkwanaConfig | None = None) -> "AdvisoryEngine":
        config = config or AkwanaConfig.load()

        if config.classifier.catalog_path:
            catalog = RuleCatalog.from_file(Path(config.classifier.catalog_path).expanduser())
        else:
            catalog = default_catalog()

        classifier = Classifier(
            catalog,
            image_classifier=create_image_classifier(config.backend, catalog),
            text_intent=create_text_intent(config.backend),
            fallback_confidence=config.classifier.fallback_confidence,
        )

        store = None
        if config.history.store_enabled:
            store = ArtifactStore(Path(config.history.store_path).expanduser())

        sink = AdvisorySink(retention=config.history.retention, store=store)
        logger.info(
            f"Advisory engine ready: image backend={config.backend.image_backend}, "
            f"text backend={config.backend.text_backend}"
        )
        return cls(classifier=classifier, sink=sink, config=config)

    @property
    def catalog(self) -> RuleCatalog:
        return self.classifier.catalog

    def new_session(self) -> ScanSession:
        """A fresh scan session publishing into the shared sink."""
        return ScanSession(
            self.classifier,
            sink=self.sink,
            builder=self.builder,
            timeout_seconds=self.config.session.classification_timeout_seconds,
        )

    def new_chat(self) -> AdvisorChat:
        """A fresh advisor conversation publishing into the shared sink."""
        return AdvisorChat(
            self.classifier,
            sink=self.sink,
            builder=self.builder,
            timeout_seconds=self.config.session.classification_timeout_seconds,
        )


__all__ = ["AdvisoryEngine"]
