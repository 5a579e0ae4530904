"""
Catalog file schema for Akwana.

Pydantic models for JSON rule catalogs loaded by RuleCatalog.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from .rule import DiagnosisStatus, Money, Rule


class MoneySpec(BaseModel):
    """Estimated cost entry in a catalog file."""

    amount: int = Field(ge=0)
    currency: str = "UGX"
    unit: str = "per acre"


class RuleSpec(BaseModel):
    """One rule as written in a catalog file."""

    id: str = Field(min_length=1)
    domain_tags: list[str] = Field(min_length=1)
    severity: DiagnosisStatus
    confidence_base: int = Field(ge=0, le=100)
    title: str
    issues: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    keywords: list[str] = Field(default_factory=list)
    cost_estimate: MoneySpec | None = None
    metrics: dict[str, float] = Field(default_factory=dict)
    suggestions: list[str] = Field(default_factory=list)

    model_config = {
        "extra": "forbid",
    }

    def to_rule(self) -> Rule:
        """Convert to the runtime (frozen) Rule."""
        cost = None
        if self.cost_estimate is not None:
            cost = Money(
                amount=self.cost_estimate.amount,
                currency=self.cost_estimate.currency,
                unit=self.cost_estimate.unit,
            )
        return Rule(
            rule_id=self.id,
            domain_tags=frozenset(self.domain_tags),
            severity=self.severity,
            confidence_base=self.confidence_base,
            title=self.title,
            issues=tuple(self.issues),
            recommendations=tuple(self.recommendations),
            keywords=tuple(self.keywords),
            cost_estimate=cost,
            metrics=self.metrics,
            suggestions=tuple(self.suggestions),
        )


class CatalogFile(BaseModel):
    """
    A versioned rule catalog on disk.

    Rule order in the file is the declaration order used for
    first-match-wins text classification.
    """

    version: str
    rules: list[RuleSpec]


__all__ = ["MoneySpec", "RuleSpec", "CatalogFile"]
