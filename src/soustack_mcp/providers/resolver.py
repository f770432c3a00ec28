"""Per-call resolution of the ingest and validator providers."""

from __future__ import annotations

import asyncio
from typing import Any

from soustack_mcp.config import GatewaySettings
from soustack_mcp.providers.adapter import ProviderAdapter
from soustack_mcp.providers.loader import load_provider_module

INGEST_ROLE = "ingest"
VALIDATOR_ROLE = "validator"


class ProviderResolver:
    """Hands out a fresh adapter for each provider on every call.

    Nothing is cached here, so concurrent tool calls resolve providers
    independently. Passing `ingest=` or `validator=` injects a ready-made
    provider object (module, mapping or namespace) instead of loading the
    configured module reference.
    """

    def __init__(
        self,
        settings: GatewaySettings | None = None,
        *,
        ingest: Any | None = None,
        validator: Any | None = None,
    ) -> None:
        self.settings = settings or GatewaySettings()
        self._ingest = ingest
        self._validator = validator

    async def ingest(self) -> ProviderAdapter:
        return await self._resolve(INGEST_ROLE, self._ingest, self.settings.ingest_module)

    async def validator(self) -> ProviderAdapter:
        return await self._resolve(
            VALIDATOR_ROLE, self._validator, self.settings.validator_module
        )

    async def _resolve(self, role: str, injected: Any | None, reference: str) -> ProviderAdapter:
        if injected is not None:
            return ProviderAdapter(injected, role=role)
        module = await asyncio.to_thread(load_provider_module, reference)
        return ProviderAdapter(module, role=role)
