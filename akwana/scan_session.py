"""
ScanSession - the state machine owning one diagnostic request.

    idle → capturing → submitted → analyzing → completed | failed → idle

Classification is the only step that suspends; it runs as an asyncio task
and every other operation returns immediately. Each submission carries a
generation number, and a result whose generation is no longer current
(cancelled, reset or superseded) is dropped on arrival rather than
attached.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Callable

from .ports import CapabilityError
from .recommendation_builder import PreconditionViolation, RecommendationBuilder
from .scan_input import ImageInput, TextInput
from .scan_lifecycle import ScanLifecycle, ScanState, StateTransition

if TYPE_CHECKING:
    from .advisory_sink import AdvisorySink
    from .artifact import DiagnosticArtifact
    from .classifier import Classifier, MatchResult
    from .scan_input import ScanInput

logger = logging.getLogger(__name__)

DEFAULT_CLASSIFICATION_TIMEOUT = 10.0


class ValidationError(Exception):
    """An operation was requested in a state that does not allow it."""

    def __init__(self, message: str, state: ScanState):
        super().__init__(message)
        self.state = state


class FailureKind(Enum):
    """Why a classification did not produce an artifact."""

    CAPABILITY = "capability"  # Backend unavailable or malformed response
    TIMEOUT = "timeout"        # Deadline exceeded
    INTERNAL = "internal"      # Precondition violation / unexpected error


@dataclass(frozen=True)
class FailureReason:
    """Failure shown to the farmer alongside a retry option."""

    kind: FailureKind
    message: str

    def __str__(self) -> str:
        return self.message


TransitionListener = Callable[["ScanSession", StateTransition], None]


class ScanSession:
    """
    Lifecycle of one scan or chat request.

    Invariants:
    - state is COMPLETED exactly when an artifact is attached
    - state is ANALYZING exactly when one classification is in flight
    - every exit from ANALYZING lands in COMPLETED, FAILED or (cancel) IDLE

    Operations requested in the wrong state are rejected: nothing changes,
    the current state is returned and the rejection is kept in
    `last_rejection`.
    """

    def __init__(
        self,
        classifier: "Classifier",
        sink: "AdvisorySink | None" = None,
        builder: RecommendationBuilder | None = None,
        timeout_seconds: float = DEFAULT_CLASSIFICATION_TIMEOUT,
        session_id: str | None = None,
    ):
        if timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be positive, got {timeout_seconds}")
        self.session_id = session_id or uuid.uuid4().hex[:12]
        self.classifier = classifier
        self.sink = sink
        self.builder = builder or RecommendationBuilder()
        self.timeout_seconds = timeout_seconds

        self._lifecycle = ScanLifecycle()
        self._state = ScanState.IDLE
        self._input: "ScanInput | None" = None
        self._artifact: "DiagnosticArtifact | None" = None
        self._failure: FailureReason | None = None
        self._generation = 0
        self._task: asyncio.Task | None = None
        self._listeners: dict[TransitionListener, None] = {}

        self.last_rejection: ValidationError | None = None
        self.transitions: list[StateTransition] = []

    # -------------------------------------------------------------------------
    # Read-only state
    # -------------------------------------------------------------------------

    @property
    def state(self) -> ScanState:
        return self._state

    @property
    def staged_input(self) -> "ScanInput | None":
        return self._input

    @property
    def artifact(self) -> "DiagnosticArtifact | None":
        """The artifact of the current completed scan, if any."""
        return self._artifact

    @property
    def failure(self) -> FailureReason | None:
        return self._failure

    @property
    def in_flight(self) -> bool:
        return self._state is ScanState.ANALYZING

    @property
    def submission(self) -> int:
        """
        Number of the current submission.

        Changes on every submit, retry, cancel and reset; a caller that
        saw it change while waiting knows its result was superseded.
        """
        return self._generation

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def capture(self, scan_input: "ScanInput") -> ScanState:
        """Stage an input. Only allowed from IDLE."""
        if self._state is not ScanState.IDLE:
            return self._reject(f"capture() requires idle session, session is {self._state.value}")
        if not isinstance(scan_input, (ImageInput, TextInput)):
            return self._reject(f"Unsupported input type: {type(scan_input).__name__}")

        self._input = scan_input
        self._transition(ScanState.CAPTURING, f"{scan_input.kind} input staged")
        return self._state

    def submit(self) -> ScanState:
        """
        Submit the staged input and start classification.

        Must be called from within a running event loop. A second submit
        while a classification is in flight is rejected, not queued.
        """
        if self._state is ScanState.ANALYZING:
            return self._reject("A classification is already in flight")
        if self._input is None:
            return self._reject("No input staged")
        if self._state is not ScanState.CAPTURING:
            return self._reject(f"submit() requires a captured input, session is {self._state.value}")

        loop = asyncio.get_running_loop()
        self._transition(ScanState.SUBMITTED, "submitted")
        self._start(loop)
        return self._state

    def cancel(self) -> ScanState:
        """
        Abandon the in-flight classification.

        The running computation is not interrupted; its result is ignored
        when it arrives.
        """
        if self._state is not ScanState.ANALYZING:
            return self._reject(f"Nothing to cancel, session is {self._state.value}")

        self._generation += 1
        self._input = None
        self._transition(ScanState.IDLE, "cancelled")
        logger.info(f"Session {self.session_id}: classification cancelled")
        return self._state

    def retry(self) -> ScanState:
        """Re-submit the last staged input after a failure."""
        if self._state is not ScanState.FAILED:
            return self._reject(f"retry() requires a failed session, session is {self._state.value}")
        if self._input is None:
            return self._reject("No input staged")

        loop = asyncio.get_running_loop()
        self._transition(ScanState.SUBMITTED, "retry")
        self._start(loop)
        return self._state

    def reset(self) -> ScanState:
        """
        Return to IDLE from any state for a new scan.

        The completed artifact was handed to the advisory sink when it was
        attached; the session only drops its own reference. Any in-flight
        result becomes stale.
        """
        if self._state is ScanState.IDLE:
            self._input = None
            return self._state

        self._generation += 1
        self._input = None
        self._artifact = None
        self._failure = None
        self._transition(ScanState.IDLE, "reset")
        return self._state

    async def wait(self) -> ScanState:
        """Wait for the most recently started classification task to finish."""
        task = self._task
        if task is not None and not task.done():
            await task
        return self._state

    # -------------------------------------------------------------------------
    # Listeners
    # -------------------------------------------------------------------------

    def subscribe(self, listener: TransitionListener) -> None:
        """Receive every state transition. Idempotent."""
        self._listeners.setdefault(listener, None)

    def unsubscribe(self, listener: TransitionListener) -> None:
        self._listeners.pop(listener, None)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _start(self, loop: asyncio.AbstractEventLoop) -> None:
        self._generation += 1
        generation = self._generation
        self._failure = None
        self._transition(ScanState.ANALYZING, f"submission {generation}")
        self._task = loop.create_task(
            self._classify(generation, self._input),
            name=f"scan-{self.session_id}-{generation}",
        )

    async def _classify(self, generation: int, scan_input: "ScanInput") -> None:
        try:
            match = await asyncio.wait_for(
                self.classifier.match(scan_input), timeout=self.timeout_seconds
            )
        except asyncio.TimeoutError:
            self._fail(generation, FailureReason(
                FailureKind.TIMEOUT,
                f"Timeout: classification took longer than {self.timeout_seconds:g}s",
            ))
            return
        except CapabilityError as e:
            self._fail(generation, FailureReason(FailureKind.CAPABILITY, str(e)))
            return
        except Exception as e:
            logger.exception(f"Session {self.session_id}: classification raised unexpectedly")
            self._fail(generation, FailureReason(FailureKind.INTERNAL, f"Internal error: {e}"))
            return

        if self._is_stale(generation):
            logger.debug(f"Session {self.session_id}: dropping stale result of submission {generation}")
            return

        self._complete(generation, scan_input, match)

    def _complete(self, generation: int, scan_input: "ScanInput", match: "MatchResult") -> None:
        try:
            artifact = self.builder.build(match, scan_input)
        except PreconditionViolation as e:
            logger.exception(f"Session {self.session_id}: could not build artifact")
            self._fail(generation, FailureReason(FailureKind.INTERNAL, f"Internal error: {e}"))
            return
        except Exception as e:
            logger.exception(f"Session {self.session_id}: artifact builder raised unexpectedly")
            self._fail(generation, FailureReason(FailureKind.INTERNAL, f"Internal error: {e}"))
            return

        self._artifact = artifact
        self._transition(ScanState.COMPLETED, f"matched {match.rule.rule_id}")
        logger.info(
            f"Session {self.session_id}: completed with {match.rule.rule_id} "
            f"({artifact.status.value}, {artifact.confidence}%)"
        )
        if self.sink is not None:
            self.sink.publish(artifact)

    def _fail(self, generation: int, reason: FailureReason) -> None:
        if self._is_stale(generation):
            logger.debug(f"Session {self.session_id}: dropping stale failure of submission {generation}")
            return
        self._failure = reason
        self._transition(ScanState.FAILED, reason.kind.value)
        logger.warning(f"Session {self.session_id}: classification failed: {reason.message}")

    def _is_stale(self, generation: int) -> bool:
        return generation != self._generation or self._state is not ScanState.ANALYZING

    def _reject(self, message: str) -> ScanState:
        self.last_rejection = ValidationError(message, self._state)
        logger.warning(f"Session {self.session_id}: rejected: {message}")
        return self._state

    def _transition(self, to_state: ScanState, reason: str | None = None) -> None:
        if not self._lifecycle.can_transition(self._state, to_state):
            raise RuntimeError(f"Invalid scan transition {self._state.value} -> {to_state.value}")
        transition = StateTransition(
            from_state=self._state,
            to_state=to_state,
            at=datetime.now(timezone.utc),
            reason=reason,
        )
        self._state = to_state
        self.transitions.append(transition)
        for listener in list(self._listeners):
            try:
                listener(self, transition)
            except Exception:
                logger.exception(f"Session {self.session_id}: transition listener failed")


__all__ = [
    "DEFAULT_CLASSIFICATION_TIMEOUT",
    "FailureKind",
    "FailureReason",
    "ScanSession",
    "ValidationError",
]
