"""
CITEWISE Exceptions

Error taxonomy shared by the retrieval and answer pipeline.

    CitewiseError
    ├── ConfigurationError      missing credentials / inconsistent settings
    ├── UpstreamError           storage, embedding or generator call failed
    └── EmbeddingDimensionError vector length does not match the corpus

Empty retrieval outcomes are *not* errors: they are returned as empty lists.
"""

from __future__ import annotations


class CitewiseError(Exception):
    """Base class for all errors raised by the package."""


class ConfigurationError(CitewiseError):
    """
    A provider or setting required to run the pipeline is missing.

    Raised while building the pipeline context. Fatal: never retried.
    """


class UpstreamError(CitewiseError):
    """
    A remote dependency (database, embedding API, generator) failed.

    Always chained to the original library exception. Retry and backoff
    are the caller's concern.
    """

    def __init__(self, service: str, message: str) -> None:
        super().__init__(f"{service}: {message}")
        self.service = service


class EmbeddingDimensionError(CitewiseError, ValueError):
    """Two vectors that must share the corpus dimensionality do not."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(
            f"Embedding dimension mismatch: expected {expected}, got {actual}"
        )
        self.expected = expected
        self.actual = actual
