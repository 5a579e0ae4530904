"""
AdvisorChat - the chat-style farming advisor.

Each question runs through its own scan lifecycle on a single ScanSession.
While a reply is pending, new questions are rejected rather than queued,
the same policy scans follow for a second submit.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Literal

from .advisory_sink import AdvisorySink
from .report import render_advice
from .rule_catalog import FOLLOW_UP_SUGGESTIONS
from .scan_input import TextInput
from .scan_lifecycle import ScanState
from .scan_session import DEFAULT_CLASSIFICATION_TIMEOUT, ScanSession

if TYPE_CHECKING:
    from .classifier import Classifier
    from .recommendation_builder import RecommendationBuilder
    from .scan_input import Language

logger = logging.getLogger(__name__)

GREETING = (
    "Hello! I'm your AI farming advisor. Ask me anything about crops, soil, "
    "pests, or farming techniques. I speak English, Luganda, and Swahili!"
)

STARTER_SUGGESTIONS = (
    "How do I treat tomato blight?",
    "Best time to plant maize?",
    "How to improve soil fertility?",
    "Pest control for coffee",
)


@dataclass(frozen=True)
class ChatMessage:
    """One bubble in the advisor conversation."""

    message_id: str
    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime
    language: "Language" = "en"
    suggestions: tuple[str, ...] = ()
    artifact_id: str | None = None


def _message(role, content, **kwargs) -> ChatMessage:
    return ChatMessage(
        message_id=uuid.uuid4().hex,
        role=role,
        content=content,
        timestamp=datetime.now(timezone.utc),
        **kwargs,
    )


class AdvisorChat:
    """Conversation with the rule-based advisor."""

    def __init__(
        self,
        classifier: "Classifier",
        sink: AdvisorySink | None = None,
        builder: "RecommendationBuilder | None" = None,
        timeout_seconds: float = DEFAULT_CLASSIFICATION_TIMEOUT,
    ):
        self.sink = sink if sink is not None else AdvisorySink()
        self.session = ScanSession(classifier, self.sink, builder, timeout_seconds)
        self._messages: list[ChatMessage] = [
            _message("assistant", GREETING, suggestions=STARTER_SUGGESTIONS)
        ]

    @property
    def messages(self) -> tuple[ChatMessage, ...]:
        return tuple(self._messages)

    @property
    def is_typing(self) -> bool:
        """True while a reply is being worked out."""
        return self.session.in_flight

    async def ask(self, text: str, language: "Language" = "en") -> ChatMessage | None:
        """
        Ask a question and wait for the advisor's reply.

        Returns:
            The assistant's reply, or None if the question was blank,
            rejected because a reply is still pending, or cancelled.
        """
        if not text.strip():
            return None
        if self.is_typing:
            logger.warning("Advisor is still answering, question rejected")
            return None

        self.session.reset()
        self._messages.append(_message("user", text, language=language))
        self.session.capture(TextInput(content=text, language=language))
        self.session.submit()
        submission = self.session.submission
        state = await self.session.wait()

        if self.session.submission != submission:
            # Cancelled, or a later question now owns the session
            return None
        if state is ScanState.COMPLETED:
            artifact = self.session.artifact
            reply = _message(
                "assistant",
                render_advice(artifact),
                language=language,
                suggestions=artifact.suggestions or FOLLOW_UP_SUGGESTIONS,
                artifact_id=artifact.artifact_id,
            )
        elif state is ScanState.FAILED:
            reply = _message(
                "assistant",
                f"Sorry, I could not answer right now ({self.session.failure}). Please try again.",
                language=language,
            )
        else:
            return None

        self._messages.append(reply)
        return reply

    def cancel(self) -> bool:
        """Stop waiting for the pending reply. Returns True if one was pending."""
        if not self.is_typing:
            return False
        self.session.cancel()
        return True


__all__ = ["AdvisorChat", "ChatMessage", "GREETING", "STARTER_SUGGESTIONS"]
