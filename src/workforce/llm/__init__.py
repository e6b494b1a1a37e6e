"""Provider client and resilient completion layer."""

from .client import ProviderClient
from .providers import PROVIDERS, ProviderResponse, ProviderSpec
from .resilient import CompletionResult, ResilientCompletion

__all__ = [
    "PROVIDERS",
    "ProviderSpec",
    "ProviderResponse",
    "ProviderClient",
    "CompletionResult",
    "ResilientCompletion",
]
