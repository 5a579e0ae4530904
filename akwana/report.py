"""
Scan reports and chat replies rendered from artifacts.

Backs the "Download Report" action and the advisor's chat bubbles.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import TYPE_CHECKING

from .artifact_serialization import serialize_artifact

if TYPE_CHECKING:
    from .artifact import DiagnosticArtifact


class ReportFormat(Enum):
    """Supported report formats."""

    MARKDOWN = "markdown"
    TEXT = "text"
    JSON = "json"


STATUS_LABELS = {
    "healthy": "Healthy",
    "warning": "Needs attention",
    "critical": "Critical",
}


def format_metric(name: str, value: float) -> str:
    """pH is shown raw, nutrient levels as percentages."""
    if name == "ph":
        return f"{value:g}"
    return f"{value:g}%"


def _metric_label(name: str) -> str:
    if name == "ph":
        return "pH"
    return name.replace("_pct", "").replace("_", " ").capitalize()


def render_report(artifact: "DiagnosticArtifact", fmt: ReportFormat = ReportFormat.MARKDOWN) -> str:
    """Render a full scan report."""
    if fmt is ReportFormat.JSON:
        return json.dumps(serialize_artifact(artifact), indent=2)
    if fmt is ReportFormat.MARKDOWN:
        return _render_markdown(artifact)
    return _render_text(artifact)


def render_advice(artifact: "DiagnosticArtifact") -> str:
    """
    Render an artifact as a single chat reply.

    e.g. "For tomato blight treatment: 1) Remove affected leaves
    immediately. 2) ... Treatment cost: ~UGX 20,000 per acre."
    """
    steps = " ".join(f"{i}) {rec}." for i, rec in enumerate(artifact.recommendations, 1))
    reply = f"{artifact.title}: {steps}" if steps else artifact.title
    if artifact.cost_estimate is not None:
        reply += f" Treatment cost: ~{artifact.cost_estimate}."
    return reply


def _render_markdown(artifact: "DiagnosticArtifact") -> str:
    status = STATUS_LABELS.get(artifact.status.value, artifact.status.value)
    lines = [
        f"# {artifact.title}",
        "",
        f"**Status:** {status}  ",
        f"**Confidence:** {artifact.confidence}%  ",
        f"**Date:** {artifact.created_at:%Y-%m-%d %H:%M}",
    ]
    if artifact.issues:
        lines += ["", "## Issues Detected", ""]
        lines += [f"- {issue}" for issue in artifact.issues]
    if artifact.recommendations:
        lines += ["", "## Recommended Actions", ""]
        lines += [f"{i}. {rec}" for i, rec in enumerate(artifact.recommendations, 1)]
    if artifact.metrics:
        lines += ["", "## Measurements", ""]
        lines += [
            f"- {_metric_label(name)}: {format_metric(name, value)}"
            for name, value in artifact.metrics.items()
        ]
    if artifact.cost_estimate is not None:
        lines += ["", f"Estimated treatment cost: **{artifact.cost_estimate}**"]
    return "\n".join(lines) + "\n"


def _render_text(artifact: "DiagnosticArtifact") -> str:
    status = STATUS_LABELS.get(artifact.status.value, artifact.status.value)
    lines = [
        artifact.title,
        "=" * len(artifact.title),
        f"Status: {status} ({artifact.confidence}% confidence)",
    ]
    if artifact.issues:
        lines.append("Issues:")
        lines += [f"  * {issue}" for issue in artifact.issues]
    if artifact.recommendations:
        lines.append("Recommended actions:")
        lines += [f"  {i}. {rec}" for i, rec in enumerate(artifact.recommendations, 1)]
    if artifact.metrics:
        lines.append("Measurements:")
        lines += [
            f"  {_metric_label(name)}: {format_metric(name, value)}"
            for name, value in artifact.metrics.items()
        ]
    if artifact.cost_estimate is not None:
        lines.append(f"Estimated treatment cost: {artifact.cost_estimate}")
    return "\n".join(lines) + "\n"


__all__ = ["ReportFormat", "render_report", "render_advice", "format_metric"]
