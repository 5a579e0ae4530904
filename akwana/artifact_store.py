"""ArtifactStore - JSONL persistence for DiagnosticArtifacts."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING

from .artifact_serialization import deserialize_artifact, serialize_artifact

if TYPE_CHECKING:
    from .artifact import DiagnosticArtifact
    from .rule import DiagnosisStatus

logger = logging.getLogger(__name__)


class ArtifactStore:
    """
    JSONL-based persistence for completed artifacts.

    One file per farmer device: ~/.akwana/artifacts.jsonl by default.
    Human-readable. Append-only; each line is one artifact.
    Satisfies ArtifactStorePort.
    """

    def __init__(self, path: Path | str | None = None):
        """
        Initialize ArtifactStore.

        Args:
            path: Path to the JSONL file
        """
        self.path = Path(path) if path is not None else Path.home() / ".akwana" / "artifacts.jsonl"
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def save(self, artifact: "DiagnosticArtifact") -> None:
        """Append an artifact to the store. Does not check for duplicates."""
        with open(self.path, "a") as f:
            f.write(json.dumps(serialize_artifact(artifact)) + "\n")

    def load(self, artifact_id: str) -> "DiagnosticArtifact | None":
        """
        Load an artifact by ID.

        Returns:
            The artifact if found, None otherwise
        """
        for data in self._iter_records():
            if data.get("artifact_id") == artifact_id:
                return deserialize_artifact(data)
        return None

    def list(self) -> list["DiagnosticArtifact"]:
        """All stored artifacts, oldest first."""
        return [deserialize_artifact(data) for data in self._iter_records()]

    def find_by_status(self, status: "DiagnosisStatus") -> list["DiagnosticArtifact"]:
        """All stored artifacts with a given status."""
        return [a for a in self.list() if a.status == status]

    def _iter_records(self):
        if not self.path.exists():
            return
        with open(self.path) as f:
            for lineno, line in enumerate(f, 1):
                if not line.strip():
                    continue
                try:
                    record = json.loads(line)
                except json.JSONDecodeError as e:
                    logger.warning(f"Skipping corrupt record at {self.path}:{lineno}: {e}")
                    continue
                yield record


__all__ = ["ArtifactStore"]
