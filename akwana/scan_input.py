"""ScanInput - the immutable input of one diagnostic request."""

from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal, Union

ScanType = Literal["crop", "soil"]
Language = Literal["en", "lg", "sw"]


@dataclass(frozen=True)
class ImageInput:
    """
    A photo of crop leaves or a soil sample.

    The descriptor is either the raw image bytes or a metadata mapping
    (file name, capture hints, precomputed labels) understood by the
    configured image classifier.
    """

    descriptor: bytes | Mapping[str, Any]
    scan_type: ScanType = "crop"
    media_type: str = "image/jpeg"

    kind: Literal["image"] = field(default="image", init=False)

    def __post_init__(self):
        if self.scan_type not in ("crop", "soil"):
            raise ValueError(f"Unknown scan type: {self.scan_type!r}")
        if isinstance(self.descriptor, Mapping) and not isinstance(self.descriptor, dict):
            object.__setattr__(self, "descriptor", dict(self.descriptor))


@dataclass(frozen=True)
class TextInput:
    """A free-text question typed (or dictated) into the advisor."""

    content: str
    language: Language = "en"

    kind: Literal["text"] = field(default="text", init=False)


ScanInput = Union[ImageInput, TextInput]


def input_ref(scan_input: ScanInput) -> str:
    """
    Compute a deterministic reference for an input.

    Same input = same ref, so artifacts can be traced back to what was
    submitted without keeping the (possibly large) image around.
    """
    if isinstance(scan_input, TextInput):
        content = f"text:{scan_input.language}:{scan_input.content}".encode()
    elif isinstance(scan_input.descriptor, bytes):
        content = b"image:" + scan_input.scan_type.encode() + b":" + scan_input.descriptor
    else:
        payload = json.dumps(scan_input.descriptor, sort_keys=True, default=str)
        content = f"image:{scan_input.scan_type}:{payload}".encode()
    return hashlib.sha256(content).hexdigest()[:16]


__all__ = ["ImageInput", "TextInput", "ScanInput", "ScanType", "Language", "input_ref"]
