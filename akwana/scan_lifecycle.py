"""ScanLifecycle - manage scan state transitions."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class ScanState(Enum):
    """Lifecycle states for a ScanSession."""

    IDLE = "idle"              # Nothing staged
    CAPTURING = "capturing"    # Input staged, not yet submitted
    SUBMITTED = "submitted"    # Accepted, classification about to start
    ANALYZING = "analyzing"    # Classification in flight
    COMPLETED = "completed"    # Artifact attached
    FAILED = "failed"          # Classification failed, retry possible


@dataclass(frozen=True)
class StateTransition:
    """One recorded state change of a session."""

    from_state: ScanState
    to_state: ScanState
    at: datetime
    reason: str | None = None


class ScanLifecycle:
    """
    Manage scan state transitions.

    Valid transitions follow the scan lifecycle:
    - IDLE → CAPTURING (input staged)
    - CAPTURING → SUBMITTED | IDLE
    - SUBMITTED → ANALYZING | IDLE
    - ANALYZING → COMPLETED | FAILED | IDLE (cancel)
    - COMPLETED → IDLE (reset / new scan)
    - FAILED → SUBMITTED (retry) | IDLE
    """

    VALID_TRANSITIONS: dict[ScanState, set[ScanState]] = {
        ScanState.IDLE: {ScanState.CAPTURING},
        ScanState.CAPTURING: {ScanState.SUBMITTED, ScanState.IDLE},
        ScanState.SUBMITTED: {ScanState.ANALYZING, ScanState.IDLE},
        ScanState.ANALYZING: {ScanState.COMPLETED, ScanState.FAILED, ScanState.IDLE},
        ScanState.COMPLETED: {ScanState.IDLE},
        ScanState.FAILED: {ScanState.SUBMITTED, ScanState.IDLE},
    }

    def can_transition(self, from_state: ScanState, to_state: ScanState) -> bool:
        """Check if a transition is valid."""
        return to_state in self.VALID_TRANSITIONS.get(from_state, set())


__all__ = ["ScanState", "StateTransition", "ScanLifecycle"]
