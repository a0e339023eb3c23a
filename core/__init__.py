from .errors import (
    CognitiveCycleError,
    CycleAbortedError,
    ExecutionExhaustedError,
    ProviderTimeoutError,
    ProviderUnavailableError,
)
from .schemas import ExecutionResult, GatewayContext, ProviderConfig, ProviderKind
from .settings import Settings

__all__ = [
    "CognitiveCycleError",
    "CycleAbortedError",
    "ExecutionExhaustedError",
    "ProviderTimeoutError",
    "ProviderUnavailableError",
    "ExecutionResult",
    "GatewayContext",
    "ProviderConfig",
    "ProviderKind",
    "Settings",
]
