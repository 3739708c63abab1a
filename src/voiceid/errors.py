"""Error types raised by the voice identification core.

Every failure here is local and synchronous: the caller handed us something
we cannot turn into a usable voiceprint (bad embedding, empty buffer, too
quiet to enroll) or asked for a registry change that would break the
single-owner rule.  Silent audio is deliberately *not* an error; it is
reported through the dedicated silence profile and match.
"""

from __future__ import annotations

from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass, field
from typing import Any

__all__ = [
    "VoiceIDError",
    "InvalidInputError",
    "DuplicateOwnerError",
    "InsufficientEnrollmentSamplesError",
    "RecordNotFoundError",
    "ConfigurationError",
    "attach_context",
]


@dataclass(eq=False)
class VoiceIDError(RuntimeError):
    """Base class for voice identification failures.

    Attributes
    ----------
    message:
        Human readable description of the failure.
    context:
        JSON serialisable dictionary with diagnostics (offending lengths,
        speaker ids, sample counts).
    """

    message: str
    context: MutableMapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.context is None:
            self.context = {}
        super().__init__(self.message)

    def __str__(self) -> str:  # pragma: no cover - trivial
        return self.message


class InvalidInputError(VoiceIDError):
    """Raised for malformed audio, embeddings or DSP parameters."""


class DuplicateOwnerError(VoiceIDError):
    """Raised when a second owner would be enrolled for the same user."""


class InsufficientEnrollmentSamplesError(VoiceIDError):
    """Raised when every enrollment sample was filtered out as too quiet."""


class RecordNotFoundError(VoiceIDError):
    """Raised when an operation targets a speaker id the registry does not hold."""


class ConfigurationError(VoiceIDError):
    """Raised when configuration validation fails."""


def attach_context(error: VoiceIDError, context: Mapping[str, Any] | None) -> VoiceIDError:
    """Merge ``context`` into ``error.context`` preserving existing keys."""

    if not context:
        return error
    for key, value in context.items():
        error.context.setdefault(key, value)
    return error
