"""RecommendationBuilder - expand a match into a DiagnosticArtifact."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable

from .artifact import DiagnosticArtifact
from .classifier import MatchResult
from .rule import Rule
from .scan_input import input_ref

if TYPE_CHECKING:
    from .scan_input import ScanInput


class PreconditionViolation(Exception):
    """A malformed match result reached the builder. Programmer error."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_artifact_id() -> str:
    return uuid.uuid4().hex


class RecommendationBuilder:
    """
    Deterministic expansion of a matched rule into an artifact.

    Copies the rule's advisory fields, stamps created_at and assigns a
    fresh id. Confidence is passed through unchanged: repeated scans are
    never smoothed or aggregated.
    """

    def __init__(
        self,
        clock: Callable[[], datetime] | None = None,
        id_factory: Callable[[], str] | None = None,
    ):
        self._clock = clock or _utcnow
        self._id_factory = id_factory or _new_artifact_id

    def build(self, match: MatchResult, scan_input: "ScanInput") -> DiagnosticArtifact:
        """
        Build a new artifact for a match.

        Raises:
            PreconditionViolation: If match is not a well-formed MatchResult.
        """
        self._check(match)
        rule = match.rule
        return DiagnosticArtifact(
            artifact_id=self._id_factory(),
            input_ref=input_ref(scan_input),
            matched_rule_id=None if match.fallback else rule.rule_id,
            status=rule.severity,
            confidence=match.confidence,
            title=rule.title,
            issues=rule.issues,
            recommendations=rule.recommendations,
            created_at=self._clock(),
            cost_estimate=rule.cost_estimate,
            metrics=rule.metrics,
            suggestions=rule.suggestions,
        )

    @staticmethod
    def _check(match: MatchResult) -> None:
        if not isinstance(match, MatchResult):
            raise PreconditionViolation(f"Expected MatchResult, got {type(match).__name__}")
        if not isinstance(match.rule, Rule):
            raise PreconditionViolation(f"MatchResult has no rule: {match.rule!r}")
        confidence = match.confidence
        if isinstance(confidence, bool) or not isinstance(confidence, int):
            raise PreconditionViolation(f"Confidence must be an int, got {confidence!r}")
        if not 0 <= confidence <= 100:
            raise PreconditionViolation(f"Confidence out of range [0, 100]: {confidence}")


__all__ = ["PreconditionViolation", "RecommendationBuilder"]
