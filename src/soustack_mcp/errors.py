"""Exception hierarchy for gateway infrastructure failures."""

from __future__ import annotations


class GatewayError(RuntimeError):
    """Base class for errors raised by the gateway itself."""


class ProviderError(GatewayError):
    """An external provider could not be loaded or used."""


class ProviderLoadError(ProviderError):
    """A provider module reference could not be imported."""

    def __init__(self, reference: str, reason: str) -> None:
        super().__init__(f"Unable to load provider module {reference!r}: {reason}")
        self.reference = reference


class StageNotFoundError(ProviderError, LookupError):
    """No callable matching a stage was exported by a provider."""

    def __init__(self, role: str, stage: str, candidates: tuple[str, ...]) -> None:
        tried = ", ".join(candidates)
        super().__init__(
            f"{role.capitalize()} provider does not expose a {stage!r} stage (tried: {tried})."
        )
        self.role = role
        self.stage = stage
        self.candidates = candidates
