"""Domain exceptions for read-aloud sessions and CLI diagnostics."""

from __future__ import annotations


class StageError(RuntimeError):
    """Raised when a specific read-aloud stage fails in a user-visible way."""

    def __init__(
        self,
        *,
        stage: str,
        detail: str,
        hint: str | None = None,
    ) -> None:
        """Initialize a stage-scoped error."""

        super().__init__(detail)
        self.stage = stage
        self.detail = detail
        self.hint = hint


class SynthesisError(RuntimeError):
    """Raised when audio for a sentence cannot be produced."""

    def __init__(self, message: str, *, failure_kind: str = "unknown") -> None:
        super().__init__(message)
        self.failure_kind = failure_kind


class PricingLookupError(LookupError):
    """Raised when no priced voice tier resolves for a voice identifier."""
