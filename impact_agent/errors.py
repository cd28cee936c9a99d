"""
Exception hierarchy for the impact analysis pipeline.

Fatal errors (configuration, mandatory upstream calls, unparsable model
output) propagate to the caller. Soft errors are raised by optional sinks
and always caught by the stage that owns them.
"""

from typing import Optional


class ImpactAgentError(Exception):
    """Base exception for all pipeline errors."""
    pass


class ConfigurationError(ImpactAgentError):
    """A required credential is missing."""
    pass


class UpstreamError(ImpactAgentError):
    """An external service returned a non-2xx response or could not be reached."""

    def __init__(
        self,
        service: str,
        status_code: Optional[int] = None,
        body: str = "",
        message: Optional[str] = None,
    ):
        self.service = service
        self.status_code = status_code
        self.body = body
        if message is None:
            status = status_code if status_code is not None else "no response"
            message = f"{service} request failed ({status}): {body[:500]}"
        super().__init__(message)


class ModelError(UpstreamError):
    """The language-model call failed or no provider key is configured."""
    pass


class SoftUpstreamError(UpstreamError):
    """Failure on an optional sink; callers log it and degrade."""
    pass


class ParseError(ImpactAgentError):
    """The model response is not valid JSON or violates the expected shape."""
    pass


class TicketValidationError(ImpactAgentError, ValueError):
    """A ticket URL could not be parsed into a host and issue key."""
    pass
