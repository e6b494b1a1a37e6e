"""Exception hierarchy shared by the provider client and the coordinator."""

from __future__ import annotations

from typing import Sequence


class WorkforceError(RuntimeError):
    """Base class for errors raised by the workforce runtime."""


class ConfigurationError(WorkforceError):
    """Raised when configuration is invalid or a provider is not usable."""


class ProviderError(WorkforceError):
    """A single upstream provider call failed."""

    def __init__(
        self,
        message: str,
        *,
        provider: str,
        status_code: int | None = None,
        body: str | None = None,
    ) -> None:
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code
        self.body = body


class TransientProviderError(ProviderError):
    """Timeout or rate limit; worth retrying after a pause."""


class PermanentProviderError(ProviderError):
    """Any other provider failure; retrying the same provider will not help."""


class ProvidersExhaustedError(WorkforceError):
    """Every eligible provider in the fallback chain failed."""

    def __init__(self, attempted: Sequence[str], last_error: BaseException | None) -> None:
        self.attempted = tuple(attempted)
        self.last_error = last_error
        detail = str(last_error) if last_error is not None else "no provider was eligible"
        super().__init__(
            f"All providers failed ({len(self.attempted)} attempted). Last error: {detail}"
        )


class RunTimeoutError(WorkforceError):
    """The global deadline of a run elapsed before every agent finished."""


class RunCancelledError(WorkforceError):
    """A run was cancelled explicitly."""


class DuplicateRunError(WorkforceError):
    """A run with the same task id is already live."""
