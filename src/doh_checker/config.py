"""
Configuration dataclasses for the DoH domain checker.

This module defines all configuration structures used throughout the system:
DoH provider endpoints, retry behavior, heuristic thresholds, the result
cache, and logging.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class ProviderConfig:
    """Configuration for a single DoH provider."""

    name: str
    base_url: str
    headers: dict[str, str] = field(
        default_factory=lambda: {"Accept": "application/dns-json"}
    )
    method: str = "GET"


@dataclass
class RetryConfig:
    """Retry behavior configuration."""

    max_retries: int = 1
    backoff_seconds: float = 0.2
    retryable_http_statuses: list[int] = field(
        default_factory=lambda: [500, 502, 503, 504]
    )


@dataclass
class HeuristicsConfig:
    """
    Empirically chosen thresholds and weights for parking/premium detection.

    There is no ground-truth registration oracle to calibrate these against,
    so they are exposed as configuration rather than derived.
    """

    parked_threshold: int = 40
    premium_threshold: int = 70
    spf_weight: int = 25
    dkim_weight: int = 20
    dmarc_weight: int = 15
    wildcard_txt_weight: int = 15
    registrar_weight: int = 30


@dataclass
class CacheConfig:
    """In-memory result cache configuration."""

    ttl_seconds: float = 300.0


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "info"
    output_format: str = "text"  # 'json', 'text', 'both'


DEFAULT_PROVIDERS = [
    ProviderConfig(
        name="cloudflare",
        base_url="https://cloudflare-dns.com/dns-query",
    ),
    ProviderConfig(
        name="quad9",
        base_url="https://dns.quad9.net:5053/dns-query",
    ),
    ProviderConfig(
        name="google",
        base_url="https://dns.google/resolve",
    ),
]


@dataclass
class SystemConfig:
    """Main system configuration combining all sub-configurations."""

    providers: list[ProviderConfig] = field(
        default_factory=lambda: [
            ProviderConfig(p.name, p.base_url, dict(p.headers), p.method)
            for p in DEFAULT_PROVIDERS
        ]
    )
    retry: RetryConfig = field(default_factory=RetryConfig)
    heuristics: HeuristicsConfig = field(default_factory=HeuristicsConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    timeout_ms: int = 5000
    primary_provider_count: int = 2
    simulation_mode: bool = False
    user_agent: Optional[str] = None
