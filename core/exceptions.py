"""
Core Module - Exceptions.

============================================================
RESPONSIBILITY
============================================================
Defines the exception taxonomy shared by the extraction pipeline.

- Validation failures on canonical records (skipped, run continues)
- Per-file parse failures (logged at debug, run continues)
- Fetch and extract failures (terminate the run)
- Cancellation of an in-flight run

Persistence failures live in storage.repositories.exceptions.

============================================================
EXCEPTION HIERARCHY
============================================================
MetricLibraryError (base)
├── ConfigurationError
├── ValidationError
├── AdapterNotFoundError
├── ExtractionCancelledError
└── AdapterError                 (kind: fetch-failed | parse-failed | io-error)
    ├── FetchError
    ├── ParseError
    └── ExtractError

============================================================
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


class AdapterErrorKind(str, Enum):
    """Failure channel classification for adapter operations."""

    FETCH_FAILED = "fetch-failed"
    """Snapshot acquisition failed (network, permission, unknown commit)."""

    PARSE_FAILED = "parse-failed"
    """Source content could not be interpreted."""

    IO_ERROR = "io-error"
    """Filesystem access failed."""


# ============================================================
# BASE EXCEPTION
# ============================================================

class MetricLibraryError(Exception):
    """
    Base exception for all metric-library errors.

    All exceptions carry:
    - message: human readable text, surfaced verbatim in run records
    - adapter_name: the adapter involved, when known
    - original_error: the wrapped lower-level exception
    - context: free-form debugging details
    """

    def __init__(
        self,
        message: str,
        adapter_name: Optional[str] = None,
        original_error: Optional[BaseException] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.adapter_name = adapter_name
        self.original_error = original_error
        self.context = context or {}
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "adapter_name": self.adapter_name,
            "original_error": str(self.original_error) if self.original_error else None,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
        }

    def __str__(self) -> str:
        parts = [self.message]
        if self.adapter_name:
            parts.append(f"[adapter={self.adapter_name}]")
        if self.original_error:
            parts.append(f"(caused by: {self.original_error})")
        return " ".join(parts)


class ConfigurationError(MetricLibraryError):
    """Invalid or missing configuration."""
    pass


class AdapterNotFoundError(MetricLibraryError):
    """No adapter is registered under the requested name."""

    def __init__(self, adapter_name: str) -> None:
        super().__init__(
            f"No adapter registered with name '{adapter_name}'",
            adapter_name=adapter_name,
        )


class ExtractionCancelledError(MetricLibraryError):
    """The caller cancelled an in-flight extraction run."""

    def __init__(
        self,
        adapter_name: Optional[str] = None,
        stage: Optional[str] = None,
    ) -> None:
        message = "extraction cancelled"
        if stage:
            message = f"extraction cancelled during {stage}"
        super().__init__(message, adapter_name=adapter_name, context={"stage": stage})
        self.stage = stage


# ============================================================
# VALIDATION
# ============================================================

class ValidationError(MetricLibraryError):
    """A canonical metric is missing a required field or has an out-of-set enum value."""

    def __init__(
        self,
        field: str,
        reason: str,
        metric_name: Optional[str] = None,
    ) -> None:
        super().__init__(
            f"invalid {field}: {reason}",
            context={"field": field, "metric_name": metric_name},
        )
        self.field = field
        self.reason = reason
        self.metric_name = metric_name


# ============================================================
# ADAPTER ERRORS
# ============================================================

class AdapterError(MetricLibraryError):
    """Base for failures surfaced through an adapter operation."""

    default_kind: AdapterErrorKind = AdapterErrorKind.PARSE_FAILED

    def __init__(
        self,
        message: str,
        adapter_name: Optional[str] = None,
        kind: Optional[AdapterErrorKind] = None,
        original_error: Optional[BaseException] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, adapter_name, original_error, context)
        self.kind = kind or self.default_kind

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data = super().to_dict()
        data["kind"] = self.kind.value
        return data


class FetchError(AdapterError):
    """Snapshot acquisition failed."""

    default_kind = AdapterErrorKind.FETCH_FAILED

    def __init__(
        self,
        message: str,
        adapter_name: Optional[str] = None,
        repo_url: Optional[str] = None,
        commit: Optional[str] = None,
        original_error: Optional[BaseException] = None,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, adapter_name, None, original_error, context)
        self.repo_url = repo_url
        self.commit = commit

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data = super().to_dict()
        data.update({
            "repo_url": self.repo_url,
            "commit": self.commit,
        })
        return data


class ParseError(AdapterError):
    """A single file could not be interpreted."""

    default_kind = AdapterErrorKind.PARSE_FAILED

    def __init__(
        self,
        message: str,
        file_path: Optional[str] = None,
        adapter_name: Optional[str] = None,
        original_error: Optional[BaseException] = None,
    ) -> None:
        super().__init__(
            message,
            adapter_name,
            None,
            original_error,
            {"file_path": file_path},
        )
        self.file_path = file_path


class ExtractError(AdapterError):
    """A systemic failure during extraction, e.g. a required directory is missing."""

    default_kind = AdapterErrorKind.PARSE_FAILED
