"""
Exception hierarchy for the chat translator.

Every error raised inside the translation pipeline derives from
``TranslatorError`` and carries:
- a category and severity for classification
- free-form context used in structured log records
- a ``recoverable`` flag

Nothing in the pipeline is fatal. Components catch these exceptions at the
seams where a node is released or a retry is scheduled, log them, and carry
on with the rest of the document.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    """Enumeration of error severity levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ErrorCategory(Enum):
    """Enumeration of error categories."""
    CONFIGURATION = "configuration"
    DOCUMENT = "document"
    EXTRACTION = "extraction"
    NETWORK = "network"
    CONTROL = "control"


class TranslatorError(Exception):
    """
    Base exception class for all chat translator exceptions.

    Carries error context and classification.
    """

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.CONFIGURATION,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        context: Optional[Dict[str, Any]] = None,
        recoverable: bool = True,
        cause: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.severity = severity
        self.context = context or {}
        self.recoverable = recoverable
        self.cause = cause

        if cause:
            self.__cause__ = cause

    def add_context(self, key: str, value: Any) -> 'TranslatorError':
        """Add context information to the exception."""
        self.context[key] = value
        return self

    def __str__(self) -> str:
        parts = [self.message]

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            parts.append(f"Context: {context_str}")

        return " | ".join(parts)


class ConfigurationError(TranslatorError):
    """
    Raised for invalid preferences or settings.

    Covers invalid language codes, unreadable preference files and failed
    preference saves.
    """

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
        **kwargs
    ):
        super().__init__(
            message,
            category=ErrorCategory.CONFIGURATION,
            **kwargs
        )

        if config_key:
            self.add_context('config_key', config_key)
        if config_value is not None:
            self.add_context('config_value', config_value)


class ContainerNotFound(TranslatorError):
    """Raised when no chat container can be located in the document."""

    def __init__(self, message: str = "Chat container not found", attempts: Optional[int] = None, **kwargs):
        super().__init__(
            message,
            category=ErrorCategory.DOCUMENT,
            severity=ErrorSeverity.LOW,
            **kwargs
        )
        if attempts is not None:
            self.add_context('attempts', attempts)


class ExtractionFailed(TranslatorError):
    """Raised when no usable message text can be pulled out of a node."""

    def __init__(self, message: str, node_name: Optional[str] = None, **kwargs):
        kwargs.setdefault('category', ErrorCategory.EXTRACTION)
        kwargs.setdefault('severity', ErrorSeverity.LOW)
        super().__init__(message, **kwargs)
        if node_name:
            self.add_context('node', node_name)


class ApplyFailed(ExtractionFailed):
    """Raised when the sub-node that rendered a message cannot be found."""

    def __init__(self, message: str = "Could not find text element to translate", **kwargs):
        super().__init__(message, **kwargs)


class ProviderError(TranslatorError):
    """
    Raised for translation provider failures.

    Includes transport errors, timeouts, non-2xx responses and bodies that do
    not have the expected segment structure.
    """

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        url: Optional[str] = None,
        **kwargs
    ):
        super().__init__(
            message,
            category=ErrorCategory.NETWORK,
            **kwargs
        )
        self.status = status

        if status is not None:
            self.add_context('status', status)
        if url:
            self.add_context('url', url)


class ControlError(TranslatorError):
    """Raised for unknown or malformed control channel commands."""

    def __init__(self, message: str, action: Optional[str] = None, **kwargs):
        super().__init__(
            message,
            category=ErrorCategory.CONTROL,
            **kwargs
        )
        if action is not None:
            self.add_context('action', action)


def is_recoverable_error(exception: Exception) -> bool:
    """Check whether an exception leaves the translator in a usable state."""
    if isinstance(exception, TranslatorError):
        return exception.recoverable
    return isinstance(exception, (ConnectionError, TimeoutError, OSError))
