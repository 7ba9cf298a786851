"""Registry mapping provider names to their adapters."""

from __future__ import annotations

import httpx
import structlog

from reelmatch.domain.entities.media import ProviderKind
from reelmatch.domain.exceptions import UnsupportedProviderError
from reelmatch.domain.ports.provider import ProviderPort
from reelmatch.infrastructure.providers.all_debrid import AllDebridProvider
from reelmatch.infrastructure.providers.debrid_link import DebridLinkProvider
from reelmatch.infrastructure.providers.premiumize import PremiumizeProvider
from reelmatch.infrastructure.providers.real_debrid import RealDebridProvider
from reelmatch.infrastructure.providers.torbox import TorBoxProvider

log = structlog.get_logger(__name__)


class ProviderRegistry:
    """Name → :class:`ProviderPort` lookup.

    Names are matched case-insensitively against :class:`ProviderKind`
    values, so ``"realdebrid"`` and ``"RealDebrid"`` resolve alike.
    """

    def __init__(self, providers: list[ProviderPort] | None = None) -> None:
        self._providers: dict[ProviderKind, ProviderPort] = {}
        for provider in providers or []:
            self.register(provider)

    def register(self, provider: ProviderPort) -> None:
        kind = ProviderKind.parse(provider.name)
        self._providers[kind] = provider
        log.debug("provider_registered", provider=kind.value)

    @property
    def supported_providers(self) -> list[str]:
        return [kind.value for kind in self._providers]

    def get(self, name: str | ProviderKind) -> ProviderPort:
        """Return the adapter for *name*.

        Raises:
            UnsupportedProviderError: Unknown or unregistered provider.
        """
        kind = name if isinstance(name, ProviderKind) else ProviderKind.parse(name)
        provider = self._providers.get(kind)
        if provider is None:
            raise UnsupportedProviderError(f"Provider not registered: {kind.value}")
        return provider


def default_registry(
    http_client: httpx.AsyncClient, *, addon_url: str | None = None
) -> ProviderRegistry:
    """All five built-in adapters sharing one HTTP client."""
    return ProviderRegistry(
        [
            AllDebridProvider(http_client=http_client, addon_url=addon_url),
            DebridLinkProvider(http_client=http_client, addon_url=addon_url),
            PremiumizeProvider(http_client=http_client, addon_url=addon_url),
            RealDebridProvider(http_client=http_client, addon_url=addon_url),
            TorBoxProvider(http_client=http_client, addon_url=addon_url),
        ]
    )
