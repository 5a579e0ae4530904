"""DiagnosticArtifact - the structured output of one completed request."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Mapping

from .rule import DiagnosisStatus, Money


@dataclass(frozen=True)
class DiagnosticArtifact:
    """
    Result of one diagnostic/advisory request.

    Immutable once built. A new submission always produces a new artifact;
    an existing one is never updated in place.

    matched_rule_id is None when nothing in the catalog matched and the
    fallback advice was used.
    """

    artifact_id: str
    input_ref: str
    matched_rule_id: str | None
    status: DiagnosisStatus
    confidence: int               # 0-100, passed through from the match
    title: str
    issues: tuple[str, ...]
    recommendations: tuple[str, ...]
    created_at: datetime
    cost_estimate: Money | None = None
    metrics: Mapping[str, float] = field(default_factory=dict, hash=False)
    suggestions: tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "issues", tuple(self.issues))
        object.__setattr__(self, "recommendations", tuple(self.recommendations))
        object.__setattr__(self, "suggestions", tuple(self.suggestions))
        object.__setattr__(self, "metrics", MappingProxyType(dict(self.metrics)))

    @property
    def is_fallback(self) -> bool:
        return self.matched_rule_id is None


__all__ = ["DiagnosticArtifact"]
