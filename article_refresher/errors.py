"""
Exception hierarchy for article refreshing
"""
from __future__ import annotations
from typing import List


class RefreshError(Exception):
    """Base exception for all refresh operations"""


class TransportFailure(RefreshError):
    """A single rewrite call failed (HTTP status, network error or bad body). Retryable."""


class ExhaustedRetries(RefreshError):
    """Raised when every rewrite attempt failed"""

    def __init__(self, attempts: int, last_error: str):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"LLM API failed after {attempts} attempts: {last_error}")


class MalformedDocument(RefreshError):
    """Raised when the front matter block cannot be found"""

    def __init__(self, message: str = "No front matter found in file"):
        super().__init__(message)


class MissingMetadata(RefreshError):
    """Raised when identification fields are absent from the front matter"""

    def __init__(self, fields: List[str]):
        self.fields = list(fields)
        super().__init__(
            f"Could not extract {' or '.join(self.fields)} from front matter"
        )


class ValidationFailed(RefreshError):
    """Raised when a rewritten document breaks a structural invariant"""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__(f"Validation failed: {', '.join(self.errors)}")


class DocumentLocked(RefreshError):
    """Raised when another writer holds the lease on a document"""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Document is locked by another writer: {path}")


class SelectionError(RefreshError):
    """Raised when the article selection input is missing or invalid"""


class ConfigError(RefreshError):
    """Raised when a configuration file cannot be used"""


class DocumentModified(RefreshError):
    """Raised when a document changed on disk while its rewrite was in flight"""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Document was modified during rewrite, left unchanged: {path}")
