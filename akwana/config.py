"""
Configuration management for Akwana.

Settings live in ~/.akwana/config.json; a handful can be overridden with
AKWANA_* environment variables (environment wins over the file).
"""

import json
import logging
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Literal

logger = logging.getLogger(__name__)

CONFIG_PATH = Path.home() / ".akwana" / "config.json"

IMAGE_BACKENDS = ("simulated", "anthropic")


def _filter_dataclass_fields(data: dict[str, Any], cls: type) -> dict[str, Any]:
    """Filter dict to only include fields that exist in the dataclass."""
    valid_fields = {f.name for f in fields(cls)}
    return {k: v for k, v in data.items() if k in valid_fields}


@dataclass
class SessionConfig:
    """Configuration for scan sessions."""

    classification_timeout_seconds: float = 10.0


@dataclass
class HistoryConfig:
    """Configuration for the advisory history."""

    retention: int = 20
    store_enabled: bool = False
    store_path: str = "~/.akwana/artifacts.jsonl"


@dataclass
class ClassifierConfig:
    """Configuration for rule matching."""

    fallback_confidence: int = 40
    catalog_path: str | None = None  # None = built-in catalog


@dataclass
class BackendConfig:
    """Configuration for capability backends."""

    image_backend: Literal["simulated", "anthropic"] = "simulated"
    text_backend: Literal["identity", "anthropic"] = "identity"
    model: str = "claude-sonnet-4-20250514"
    max_tokens: int = 256
    # The simulated scanner answers after this delay, like the demo app did
    simulated_delay_seconds: float = 3.0


@dataclass
class AkwanaConfig:
    """Complete Akwana configuration."""

    session: SessionConfig = field(default_factory=SessionConfig)
    history: HistoryConfig = field(default_factory=HistoryConfig)
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    backend: BackendConfig = field(default_factory=BackendConfig)

    @classmethod
    def load(cls, path: Path | None = None) -> "AkwanaConfig":
        """Load configuration from file, then apply environment overrides."""
        if path is None:
            path = CONFIG_PATH

        data: dict[str, Any] = {}
        if path.exists():
            try:
                data = json.loads(path.read_text())
            except (json.JSONDecodeError, OSError) as e:
                logger.warning(f"Ignoring unreadable config {path}: {e}")

        config = cls(
            session=SessionConfig(**_filter_dataclass_fields(data.get("session", {}), SessionConfig)),
            history=HistoryConfig(**_filter_dataclass_fields(data.get("history", {}), HistoryConfig)),
            classifier=ClassifierConfig(**_filter_dataclass_fields(data.get("classifier", {}), ClassifierConfig)),
            backend=BackendConfig(**_filter_dataclass_fields(data.get("backend", {}), BackendConfig)),
        )
        config.apply_env()
        return config

    def apply_env(self) -> None:
        """
        Apply AKWANA_* environment overrides in place.

        Malformed values are logged and ignored; the file or default
        value stays in effect.
        """
        timeout = os.getenv("AKWANA_CLASSIFICATION_TIMEOUT")
        if timeout is not None:
            try:
                value = float(timeout)
                if value <= 0:
                    raise ValueError("must be positive")
                self.session.classification_timeout_seconds = value
            except ValueError as e:
                logger.warning(f"Ignoring AKWANA_CLASSIFICATION_TIMEOUT={timeout!r}: {e}")

        retention = os.getenv("AKWANA_HISTORY_RETENTION")
        if retention is not None:
            try:
                value = int(retention)
                if value < 1:
                    raise ValueError("must be at least 1")
                self.history.retention = value
            except ValueError as e:
                logger.warning(f"Ignoring AKWANA_HISTORY_RETENTION={retention!r}: {e}")

        backend = os.getenv("AKWANA_BACKEND")
        if backend is not None:
            if backend in IMAGE_BACKENDS:
                self.backend.image_backend = backend
            else:
                logger.warning(
                    f"Ignoring AKWANA_BACKEND={backend!r}: expected one of {', '.join(IMAGE_BACKENDS)}"
                )

    def save(self, path: Path | None = None) -> None:
        """Save configuration to file."""
        if path is None:
            path = CONFIG_PATH

        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            json.dump(
                {
                    "session": asdict(self.session),
                    "history": asdict(self.history),
                    "classifier": asdict(self.classifier),
                    "backend": asdict(self.backend),
                },
                f,
                indent=2,
            )


# Default configuration instance
default_config = AkwanaConfig()


__all__ = [
    "AkwanaConfig",
    "BackendConfig",
    "ClassifierConfig",
    "HistoryConfig",
    "SessionConfig",
    "CONFIG_PATH",
    "default_config",
]
