"""Rule - a static predicate-to-advisory mapping."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping


class DiagnosisStatus(Enum):
    """Severity tier shown to the farmer."""

    HEALTHY = "healthy"
    WARNING = "warning"
    CRITICAL = "critical"


FALLBACK_TAG = "default"


@dataclass(frozen=True)
class Money:
    """An estimated treatment cost, e.g. UGX 25,000 per acre."""

    amount: int
    currency: str = "UGX"
    unit: str = "per acre"

    def __str__(self) -> str:
        text = f"{self.currency} {self.amount:,}"
        return f"{text} {self.unit}" if self.unit else text


@dataclass(frozen=True)
class Rule:
    """
    One diagnostic rule.

    The match predicate is keyword containment: a rule matches normalized
    (lowercased) text when any of its keywords occurs in it. A rule with
    no keywords is only reachable through its domain tags (image scans)
    or as the fallback.
    """

    rule_id: str
    domain_tags: frozenset[str]
    severity: DiagnosisStatus
    confidence_base: int
    title: str
    issues: tuple[str, ...] = ()
    recommendations: tuple[str, ...] = ()
    keywords: tuple[str, ...] = ()
    cost_estimate: Money | None = None
    metrics: Mapping[str, float] = field(default_factory=dict, hash=False)
    suggestions: tuple[str, ...] = ()

    def __post_init__(self):
        if not self.rule_id:
            raise ValueError("Rule id cannot be empty")
        if not 0 <= self.confidence_base <= 100:
            raise ValueError(
                f"Rule {self.rule_id}: confidence_base must be in [0, 100], got {self.confidence_base}"
            )
        # Normalize containers so a Rule is read-only after construction
        object.__setattr__(self, "domain_tags", frozenset(self.domain_tags))
        object.__setattr__(self, "issues", tuple(self.issues))
        object.__setattr__(self, "recommendations", tuple(self.recommendations))
        object.__setattr__(self, "keywords", tuple(k.lower() for k in self.keywords))
        object.__setattr__(self, "suggestions", tuple(self.suggestions))
        object.__setattr__(self, "metrics", MappingProxyType(dict(self.metrics)))

    @property
    def is_fallback(self) -> bool:
        return FALLBACK_TAG in self.domain_tags

    def matches(self, normalized_text: str) -> bool:
        """Check whether any keyword occurs in already-lowercased text."""
        return any(keyword in normalized_text for keyword in self.keywords)


__all__ = ["DiagnosisStatus", "FALLBACK_TAG", "Money", "Rule"]
