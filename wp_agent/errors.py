"""
Error types shared by the fetcher, the extractor and the discovery engine.

Only two of these are fatal for a whole operation: NotFoundError (the target
plugin cannot be resolved) and ConfigError (bad options, raised before any
request is made). FetchError aborts the current pagination session or skips
the current competitor candidate. ParseError skips one review record.
"""

from typing import Optional


class AgentError(Exception):
    """Base class for every error raised by wp_agent."""


class FetchError(AgentError):
    """A page could not be fetched (network failure or non-2xx status)."""

    def __init__(self, message: str, status: Optional[int] = None, url: str = ""):
        super().__init__(message)
        self.message = message
        self.status = status    # None when the request never got a response
        self.url = url

    def __str__(self) -> str:
        if self.status is not None:
            return f"HTTP {self.status}: {self.message}"
        return self.message


class ParseError(AgentError):
    """A single record could not be extracted from otherwise valid markup."""


class NotFoundError(AgentError):
    """Plugin metadata could not be resolved from any source."""


class ConfigError(AgentError):
    """An option or setting is invalid."""
