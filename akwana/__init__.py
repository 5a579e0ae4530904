"""Akwana: rule-based crop, soil and pest advisory engine.

Turns a crop/soil photo or a farmer's question into a structured
diagnosis with recommendations.

Pipeline:
- RuleCatalog: ordered, versioned diagnostic rules keyed by domain tag
- Classifier: first-match-wins text matching, image tags via a port
- RecommendationBuilder: match -> immutable DiagnosticArtifact
- ScanSession: asyncio lifecycle with cancel, retry and timeouts
- AdvisorySink: latest artifact + bounded history for the UI
"""

__version__ = "0.1.0"

# Data model
from .scan_input import ImageInput, TextInput, ScanInput, input_ref
from .rule import DiagnosisStatus, Money, Rule
from .artifact import DiagnosticArtifact

# Engine
from .rule_catalog import NotFoundError, RuleCatalog, default_catalog
from .classifier import Classifier, MatchResult
from .recommendation_builder import PreconditionViolation, RecommendationBuilder
from .scan_lifecycle import ScanLifecycle, ScanState, StateTransition
from .scan_session import FailureKind, FailureReason, ScanSession, ValidationError
from .advisory_sink import AdvisorySink

# Ports & adapters
from .ports import (
    ArtifactStorePort,
    CapabilityError,
    IdentityTextIntent,
    ImageClassification,
    ImageClassifierPort,
    TextIntentPort,
)
from .artifact_store import ArtifactStore
from .advisor_chat import AdvisorChat, ChatMessage
from .report import ReportFormat, render_advice, render_report

# Config
from .config import AkwanaConfig, default_config
from .engine import AdvisoryEngine

__all__ = [
    # Data model
    "ImageInput",
    "TextInput",
    "ScanInput",
    "input_ref",
    "DiagnosisStatus",
    "Money",
    "Rule",
    "DiagnosticArtifact",
    # Engine
    "NotFoundError",
    "RuleCatalog",
    "default_catalog",
    "Classifier",
    "MatchResult",
    "PreconditionViolation",
    "RecommendationBuilder",
    "ScanLifecycle",
    "ScanState",
    "StateTransition",
    "FailureKind",
    "FailureReason",
    "ScanSession",
    "ValidationError",
    "AdvisorySink",
    # Ports & adapters
    "ArtifactStorePort",
    "CapabilityError",
    "IdentityTextIntent",
    "ImageClassification",
    "ImageClassifierPort",
    "TextIntentPort",
    "ArtifactStore",
    "AdvisorChat",
    "ChatMessage",
    "ReportFormat",
    "render_advice",
    "render_report",
    # Config
    "AkwanaConfig",
    "default_config",
    "AdvisoryEngine",
]
