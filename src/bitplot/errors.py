"""
Error taxonomy for the bitplot pipeline.

Every failure the pipeline can detect is raised as one of these types. The CLI
is the only place that turns them into messages and exit codes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from bitplot.pipeline.supervisor import RendererOutcome


class BitplotError(Exception):
    """Base class for all pipeline errors."""

    exit_code: int = 1


class ConfigurationError(BitplotError):
    """Invalid option value or missing required input."""


class DecodeError(BitplotError):
    """
    Input image could not be read or decoded.

    Attributes:
        source: Path or URL that was being decoded
        reason: Decoder-supplied failure reason
    """

    def __init__(self, source: str, reason: str) -> None:
        super().__init__(f"failed to decode input '{source}': {reason}")
        self.source = source
        self.reason = reason


class ResourceError(BitplotError):
    """Channel or renderer process could not be created."""


class RendererExitError(BitplotError):
    """Renderer terminated abnormally or with a non-zero status."""

    exit_code = 3

    def __init__(self, message: str, outcome: RendererOutcome | None = None) -> None:
        super().__init__(message)
        self.outcome = outcome
