"""
Wildcard DNS detection.

A zone configured with catch-all DNS answers every name under it, which makes
NXDOMAIN-based availability inference unreliable. The detector asks one
round-robin provider for an A record on a random, practically unregistered
subdomain of the target.
"""

import secrets
import string
import time
from typing import Callable, Optional

from .audit_logger import AuditLogger
from .doh_client import DohClient
from .enums import LogLevel, RecordType
from .models import DnsQuestion
from .providers import ProviderRegistry
from .tld_registry import is_wildcard_prone_tld

TOKEN_ALPHABET = string.ascii_lowercase + string.digits
TOKEN_LENGTH = 12

WILDCARD_RECORD_TYPES = (RecordType.A, RecordType.CNAME, RecordType.AAAA)


def random_token(length: int = TOKEN_LENGTH) -> str:
    return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(length))


class WildcardDetector:
    """Detects catch-all DNS zones with a random-subdomain probe."""

    def __init__(
        self,
        client: DohClient,
        registry: ProviderRegistry,
        token_factory: Callable[[], str] = random_token,
        clock_ms: Callable[[], int] = lambda: int(time.time() * 1000),
        logger: Optional[AuditLogger] = None,
    ) -> None:
        self._client = client
        self._registry = registry
        self._token_factory = token_factory
        self._clock_ms = clock_ms
        self._logger = logger

    def probe_name(self, domain: str) -> str:
        """Build ``<random-12-char-token>-<ms-timestamp>.<domain>``."""
        return f"{self._token_factory()}-{self._clock_ms()}.{domain.lower().rstrip('.')}"

    async def detect(self, domain: str) -> bool:
        """
        Probe the domain for wildcard DNS.

        Returns:
            True iff the probe answered NOERROR with at least one A, CNAME or AAAA record

        Raises:
            TransportError: Propagated so the caller decides how to treat an
                inconclusive probe
        """
        provider = self._registry.next_round_robin()
        question = DnsQuestion(self.probe_name(domain), RecordType.A)
        response = await self._client.send(provider, question)

        is_wildcard = response.is_noerror and bool(
            response.records(*WILDCARD_RECORD_TYPES)
        )

        if self._logger:
            self._logger.log(
                LogLevel.DEBUG,
                "WildcardDetector",
                f"Wildcard probe for {domain} via {provider.name}: {is_wildcard}",
                {"probe": question.name, "status": response.status},
            )
        return is_wildcard

    @staticmethod
    def is_wildcard_prone(domain: str) -> bool:
        """Whether the domain's TLD is known to default to catch-all DNS."""
        return is_wildcard_prone_tld(domain)
