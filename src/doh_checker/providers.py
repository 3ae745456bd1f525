"""
Provider registry for DoH resolvers.

Holds the ordered list of configured DoH endpoints, builds per-provider
request URLs, and hands out providers either round-robin (for wildcard
probes) or as the fixed primary subset used for consensus queries.
"""

import threading
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence
from urllib.parse import urlencode, urlparse

from .config import ProviderConfig
from .exceptions import ConfigurationError
from .models import DnsQuestion

UrlBuilder = Callable[[str, DnsQuestion], str]

ALLOWED_METHODS = ("GET", "POST")


def json_query_url(base_url: str, question: DnsQuestion) -> str:
    """Build a dns-json GET URL (``?name=<name>&type=<TYPE>``)."""
    query = urlencode({"name": question.name, "type": question.type.name})
    separator = "&" if "?" in base_url else "?"
    return f"{base_url}{separator}{query}"


@dataclass(frozen=True)
class DohProvider:
    """A single DoH endpoint with its URL-building and header rules."""

    name: str
    base_url: str
    headers: dict[str, str] = field(default_factory=dict)
    method: str = "GET"
    url_builder: UrlBuilder = json_query_url

    def build_url(self, question: DnsQuestion) -> str:
        """Return the request URL for a question (base URL for POST)."""
        if self.method.upper() == "POST":
            return self.base_url
        return self.url_builder(self.base_url, question)

    @classmethod
    def from_config(cls, config: ProviderConfig) -> "DohProvider":
        return cls(
            name=config.name,
            base_url=config.base_url,
            headers=dict(config.headers),
            method=config.method.upper(),
        )


class ProviderRegistry:
    """
    Ordered set of DoH providers.

    The round-robin cursor is the only mutable state shared between
    concurrent checks; it is advanced under a lock so that concurrent
    wildcard probes never skip or duplicate a provider.
    """

    def __init__(
        self,
        providers: Sequence[DohProvider],
        primary_count: int = 2,
    ) -> None:
        """
        Initialize the registry.

        Args:
            providers: Providers in priority order
            primary_count: Number of leading providers used for consensus queries

        Raises:
            ConfigurationError: If the provider list is empty or invalid
        """
        if not providers:
            raise ConfigurationError(
                code="no_providers",
                message="At least one DoH provider must be configured",
            )
        if primary_count < 1:
            raise ConfigurationError(
                code="invalid_primary_count",
                message=f"primary_count must be >= 1, got {primary_count}",
            )

        names = [p.name for p in providers]
        if len(set(names)) != len(names):
            raise ConfigurationError(
                code="duplicate_provider",
                message="Provider names must be unique",
                details={"providers": names},
            )

        for provider in providers:
            self._validate_provider(provider)

        self._providers: tuple[DohProvider, ...] = tuple(providers)
        self._primary_count = min(primary_count, len(self._providers))
        self._cursor = 0
        self._lock = threading.Lock()

    @staticmethod
    def _validate_provider(provider: DohProvider) -> None:
        parsed = urlparse(provider.base_url)
        if parsed.scheme.lower() != "https" or not parsed.netloc:
            raise ConfigurationError(
                code="insecure_endpoint",
                message=f"DoH endpoint must use HTTPS: {provider.base_url}",
                details={"provider": provider.name},
            )
        if provider.method.upper() not in ALLOWED_METHODS:
            raise ConfigurationError(
                code="method_not_allowed",
                message=f"Method {provider.method} is not allowed. Use GET or POST.",
                details={"provider": provider.name},
            )

    @classmethod
    def from_config(
        cls,
        providers: Sequence[ProviderConfig],
        primary_count: int = 2,
    ) -> "ProviderRegistry":
        return cls([DohProvider.from_config(p) for p in providers], primary_count)

    @property
    def providers(self) -> tuple[DohProvider, ...]:
        return self._providers

    @property
    def primary_subset(self) -> tuple[DohProvider, ...]:
        """The first ``primary_count`` providers, used for consensus."""
        return self._providers[: self._primary_count]

    def next_round_robin(self) -> DohProvider:
        """Return the next provider, wrapping around the list."""
        with self._lock:
            provider = self._providers[self._cursor]
            self._cursor = (self._cursor + 1) % len(self._providers)
        return provider

    def get(self, name: str) -> Optional[DohProvider]:
        for provider in self._providers:
            if provider.name == name:
                return provider
        return None

    def __len__(self) -> int:
        return len(self._providers)
