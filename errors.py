"""Error taxonomy for the Sentinel research pipeline.

Every fatal condition a stage can raise is a PipelineError subclass. The
orchestrator lets these propagate to the caller, and the JSON entry points
convert them to payloads with to_payload().

Classes:
    ConfigurationError: Required credential missing (fatal, before any work)
    UpstreamQuotaExceeded: Video search provider refused with quota/forbidden
    TransientFetchFailure: A single fetch/search/transcript call failed
    SchemaMismatch: Structured generation output could not be parsed
    PersistenceFailure: Report store write failed or did not apply
    StageFailure: Any other fatal stage error (e.g. grounded search failure)
"""

from typing import Any


class PipelineError(Exception):
    """Base class for all pipeline errors.

    Attributes:
        message: Human-readable error message
        stage: Name of the stage that raised (empty if not stage-specific)
        diagnostics: Extra payload attached for debugging (e.g. model list)
    """

    default_stage = ""

    def __init__(
        self,
        message: str,
        stage: str | None = None,
        diagnostics: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.stage = stage if stage is not None else self.default_stage
        self.diagnostics = diagnostics or {}

    def to_payload(self) -> dict[str, Any]:
        """Convert to the structured error object returned to callers."""
        payload: dict[str, Any] = {"error": self.message}
        if self.stage:
            payload["stage"] = self.stage
        payload.update(self.diagnostics)
        return payload


class ConfigurationError(PipelineError):
    """A required credential or setting is absent."""

    default_stage = "config"


class UpstreamQuotaExceeded(PipelineError):
    """The video search provider signalled quota exhaustion or forbidden access.

    This is the one fatal condition of the video discovery stage; the
    provider's message is carried verbatim.
    """

    default_stage = "video_discovery"


class TransientFetchFailure(PipelineError):
    """A single external fetch failed (page, transcript, one keyword search).

    Always tolerated by the stage that catches it.
    """


class SchemaMismatch(PipelineError):
    """Structured generation output did not parse as the requested schema."""


class PersistenceFailure(PipelineError):
    """The report store write failed, or an update did not apply."""

    default_stage = "persistence"


class StageFailure(PipelineError):
    """Any other failure that is fatal for the stage that raised it."""
