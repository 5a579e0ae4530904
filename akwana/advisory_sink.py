"""AdvisorySink - read-only view of completed artifacts for the UI."""

from __future__ import annotations

import logging
from collections import deque
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from .artifact import DiagnosticArtifact
    from .ports import ArtifactStorePort

logger = logging.getLogger(__name__)

DEFAULT_RETENTION = 20

ArtifactCallback = Callable[["DiagnosticArtifact"], None]


class AdvisorySink:
    """
    Latest artifact plus a bounded history.

    History is insertion ordered (most recent last) and capped at
    `retention`; the oldest artifact is evicted first. Subscribers are
    pushed every newly published artifact in subscription order.
    """

    def __init__(self, retention: int = DEFAULT_RETENTION, store: "ArtifactStorePort | None" = None):
        if retention < 1:
            raise ValueError(f"retention must be at least 1, got {retention}")
        self.retention = retention
        self.store = store
        self._history: deque["DiagnosticArtifact"] = deque(maxlen=retention)
        # dict keeps subscription order and makes subscribe idempotent
        self._subscribers: dict[ArtifactCallback, None] = {}

    def latest(self) -> "DiagnosticArtifact | None":
        """Most recently published artifact, or None."""
        return self._history[-1] if self._history else None

    def history(self) -> tuple["DiagnosticArtifact", ...]:
        """Retained artifacts, oldest first."""
        return tuple(self._history)

    def get(self, artifact_id: str) -> "DiagnosticArtifact | None":
        """Find an artifact in history, then in the store if one is attached."""
        for artifact in self._history:
            if artifact.artifact_id == artifact_id:
                return artifact
        if self.store is not None:
            return self.store.load(artifact_id)
        return None

    def publish(self, artifact: "DiagnosticArtifact") -> None:
        """
        Record a newly completed artifact and notify subscribers.

        A failing store or subscriber is logged and does not stop delivery.
        """
        if len(self._history) == self.retention:
            logger.debug(f"History full ({self.retention}), evicting {self._history[0].artifact_id}")
        self._history.append(artifact)

        if self.store is not None:
            try:
                self.store.save(artifact)
            except Exception as e:
                logger.warning(f"Failed to persist artifact {artifact.artifact_id}: {e}")

        for callback in list(self._subscribers):
            try:
                callback(artifact)
            except Exception:
                logger.exception(f"Subscriber {callback!r} failed for artifact {artifact.artifact_id}")

    def subscribe(self, callback: ArtifactCallback) -> None:
        """Register a callback. Subscribing twice has no extra effect."""
        self._subscribers.setdefault(callback, None)

    def unsubscribe(self, callback: ArtifactCallback) -> None:
        """Remove a callback. Unknown callbacks are ignored."""
        self._subscribers.pop(callback, None)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def clear(self) -> None:
        """Drop retained history. Subscribers stay registered."""
        self._history.clear()

    def __len__(self) -> int:
        return len(self._history)


__all__ = ["AdvisorySink", "DEFAULT_RETENTION"]
