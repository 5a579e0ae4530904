"""Artifact serialization to JSON format."""

from __future__ import annotations

from datetime import datetime
from typing import Any, TYPE_CHECKING

if TYPE_CHECKING:
    from .artifact import DiagnosticArtifact


def serialize_artifact(artifact: "DiagnosticArtifact") -> dict[str, Any]:
    """
    Serialize a DiagnosticArtifact to a JSON-compatible dict.

    Format: JSON with ISO 8601 timestamps.
    """
    cost = artifact.cost_estimate
    return {
        "artifact_id": artifact.artifact_id,
        "input_ref": artifact.input_ref,
        "matched_rule_id": artifact.matched_rule_id,
        "status": artifact.status.value,
        "confidence": artifact.confidence,
        "title": artifact.title,
        "issues": list(artifact.issues),
        "recommendations": list(artifact.recommendations),
        "cost_estimate": (
            {"amount": cost.amount, "currency": cost.currency, "unit": cost.unit}
            if cost is not None else None
        ),
        "metrics": dict(artifact.metrics),
        "suggestions": list(artifact.suggestions),
        "created_at": artifact.created_at.isoformat(),
    }


def deserialize_artifact(data: dict[str, Any]) -> "DiagnosticArtifact":
    """
    Deserialize a dict back to a DiagnosticArtifact.

    Inverse of serialize_artifact.
    """
    from .artifact import DiagnosticArtifact
    from .rule import DiagnosisStatus, Money

    cost = data.get("cost_estimate")
    return DiagnosticArtifact(
        artifact_id=data["artifact_id"],
        input_ref=data["input_ref"],
        matched_rule_id=data.get("matched_rule_id"),
        status=DiagnosisStatus(data["status"]),
        confidence=data["confidence"],
        title=data["title"],
        issues=tuple(data.get("issues", [])),
        recommendations=tuple(data.get("recommendations", [])),
        created_at=datetime.fromisoformat(data["created_at"]),
        cost_estimate=Money(**cost) if cost else None,
        metrics=data.get("metrics", {}),
        suggestions=tuple(data.get("suggestions", [])),
    )


__all__ = ["serialize_artifact", "deserialize_artifact"]
