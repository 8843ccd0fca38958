"""Error taxonomy for the search pipeline.

Every error carries a stable ``code`` and a ``recoverable`` flag. Recoverable
errors are handled by the stage that raised them; the orchestrator only turns
non-recoverable ones into a structured failure response.
"""

from __future__ import annotations


class SearchPipelineError(RuntimeError):
    code: str = "PIPELINE_ERROR"
    recoverable: bool = False

    def __init__(self, message: str = "", *, stage: str | None = None) -> None:
        super().__init__(message or self.code)
        self.stage = stage


class LLMError(SearchPipelineError):
    """Raised when the LLM provider fails for any reason other than the two below."""

    code = "LLM_ERROR"
    recoverable = True


class ExtractionTimeout(LLMError):
    code = "EXTRACTION_TIMEOUT"


class SchemaInvalid(LLMError):
    code = "SCHEMA_INVALID"


class ProviderPage1Failure(SearchPipelineError):
    code = "PROVIDER_PAGE1_FAILURE"
    recoverable = False


class ProviderPageNFailure(SearchPipelineError):
    code = "PROVIDER_PAGEN_FAILURE"
    recoverable = True

    def __init__(self, message: str = "", *, page: int, stage: str | None = None) -> None:
        super().__init__(message, stage=stage)
        self.page = page


class GeocodeUnresolved(SearchPipelineError):
    code = "GEOCODE_UNRESOLVED"
    recoverable = True


class CacheUnavailable(SearchPipelineError):
    code = "CACHE_UNAVAILABLE"
    recoverable = True
