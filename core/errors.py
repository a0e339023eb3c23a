"""
Cycle Errors
============

Exception hierarchy shared by the gateway, the stages and the orchestrator.

Parse degradation and numeric collapse have no exception type: both are
recorded on the produced record and logged, never raised.
"""

from typing import Optional


class CognitiveCycleError(Exception):
    """Base class for all cycle errors."""
    pass


class ProviderUnavailableError(CognitiveCycleError):
    """Raised when a provider is unknown or could not be instantiated."""

    def __init__(self, provider_name: str, reason: str = "not registered"):
        self.provider_name = provider_name
        self.reason = reason
        super().__init__(f"Provider '{provider_name}' unavailable: {reason}")


class ProviderTimeoutError(CognitiveCycleError):
    """Raised when one provider attempt exceeds its time bound."""

    def __init__(self, provider_name: str, timeout_ms: int):
        self.provider_name = provider_name
        self.timeout_ms = timeout_ms
        super().__init__(f"Provider '{provider_name}' timed out after {timeout_ms}ms")


class ExecutionExhaustedError(CognitiveCycleError):
    """
    Raised when retries (and the fallback provider, if any) are exhausted.

    Both underlying messages are kept so callers can report which side
    failed and how.
    """

    def __init__(self, primary_error: str, fallback_error: Optional[str] = None):
        self.primary_error = primary_error
        self.fallback_error = fallback_error
        if fallback_error is None:
            message = f"Execution failed: {primary_error}"
        else:
            message = (
                "Both primary and fallback providers failed: "
                f"{primary_error}, {fallback_error}"
            )
        super().__init__(message)


class CycleAbortedError(CognitiveCycleError):
    """Raised when a mandatory stage produced nothing to work with."""

    def __init__(self, stage: str, reason: str):
        self.stage = stage
        self.reason = reason
        super().__init__(f"Cycle aborted at {stage}: {reason}")
