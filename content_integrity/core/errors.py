"""Exception taxonomy for the content regression engine."""

from __future__ import annotations

from typing import Any, Dict, Optional


class RegressionError(Exception):
    """Base exception for all content regression errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class AnalysisDegraded(RegressionError):
    """Markup could not be analyzed; metrics are zeroed or partial."""

    def __init__(self, reason: str):
        super().__init__("Content analysis degraded", details={"reason": reason})
        self.reason = reason


class StorageUnavailable(RegressionError):
    """Snapshot storage read/write failed or timed out for one document."""

    def __init__(self, document_id: str, reason: str):
        super().__init__(
            f"Snapshot storage unavailable for document {document_id}",
            details={"document_id": document_id, "reason": reason},
        )
        self.document_id = document_id
        self.reason = reason


class InvalidConfig(RegressionError):
    """Raised when a configuration value cannot be interpreted at all."""

    def __init__(self, key: str, value: Any, reason: str):
        super().__init__(
            f"Invalid configuration for {key}: {value}",
            details={"key": key, "value": str(value), "reason": reason},
        )
        self.key = key
        self.value = value
        self.reason = reason


class DocumentNotFound(RegressionError):
    def __init__(self, document_id: str):
        super().__init__(f"Document not found: {document_id}", details={"document_id": document_id})
        self.document_id = document_id
