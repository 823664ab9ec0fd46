# src/hubscraper/exceptions.py
from typing import Optional


class PipelineError(Exception):
    """Base exception for the data pipeline."""
    pass

class ConfigurationError(PipelineError):
    """Error related to configuration loading or validation."""
    pass

class FetchError(PipelineError):
    """Network or HTTP failure while reaching an external source (non-2xx, timeout, connection)."""
    def __init__(self, message: str, url: Optional[str] = None,
                 status_code: Optional[int] = None, reason: Optional[str] = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code
        self.reason = reason

    def __str__(self):
        return f"{super().__str__()} (Status: {self.status_code}, URL: {self.url})"


class SourceTimeoutError(FetchError):
    """A source did not finish fetching/normalizing within its time budget."""
    pass

class NormalizationError(PipelineError):
    """Malformed or unexpected payload shape from a source."""
    pass

class ParsingError(PipelineError):
    """Error encountered while parsing HTML tables or markdown digests."""
    pass

class StoreError(PipelineError):
    """Error related to database operations (connection, schema, transaction)."""
    pass
