"""
Query Orchestrator for the DoH domain checker.

Coordinates the per-domain check:
- Wildcard probe against a round-robin provider
- NS and TXT queries to every primary provider, issued concurrently and
  joined once all have settled
- SOA fallback when the NS answers are inconclusive
- Classification of the collected provider outcomes

Every network-level failure is captured into a ProviderOutcome or an
evidence line; only invalid input or invalid configuration raises.
"""

import asyncio
from typing import Callable, Optional

from .audit_logger import AuditLogger
from .config import SystemConfig
from .decision_engine import DecisionEngine
from .doh_client import DohClient
from .enums import CheckStage, LogLevel, RecordType
from .error_classifier import classify_error
from .exceptions import ConfigurationError, ValidationError
from .models import DnsQuestion, DomainResult, ProviderOutcome
from .providers import DohProvider, ProviderRegistry
from .retry_manager import RetryManager
from .wildcard_detector import WildcardDetector

StageCallback = Callable[[CheckStage], None]

# TXT at the apex only
PRIMARY_RECORD_TYPES = (RecordType.NS, RecordType.TXT)


def ns_inconclusive(outcomes: list[ProviderOutcome]) -> bool:
    """True when no NS outcome is a NOERROR or NXDOMAIN answer."""
    for outcome in outcomes:
        if outcome.record_type != RecordType.NS or not outcome.succeeded:
            continue
        if outcome.response.is_noerror or outcome.response.is_nxdomain:
            return False
    return True


class QueryOrchestrator:
    """
    Runs one domain through the DoH query pipeline.

    Components not supplied are built from the system configuration; a
    DoH client built here is closed with the orchestrator.
    """

    def __init__(
        self,
        config: Optional[SystemConfig] = None,
        client: Optional[DohClient] = None,
        registry: Optional[ProviderRegistry] = None,
        engine: Optional[DecisionEngine] = None,
        detector: Optional[WildcardDetector] = None,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        """
        Initialize the orchestrator.

        Args:
            config: System configuration (defaults used if omitted)
            client: Optional DoH client (e.g. one wired to a mock transport)
            registry: Optional provider registry
            engine: Optional decision engine
            detector: Optional wildcard detector
            logger: Optional audit logger

        Raises:
            ConfigurationError: If the provider configuration is invalid
        """
        self._config = config or SystemConfig()
        self._logger = logger

        self._owns_client = client is None
        self._client = client or DohClient(
            timeout_ms=self._config.timeout_ms,
            simulation_mode=self._config.simulation_mode,
            user_agent=self._config.user_agent,
            logger=logger,
        )
        self._registry = registry or ProviderRegistry.from_config(
            self._config.providers,
            self._config.primary_provider_count,
        )
        self._engine = engine or DecisionEngine(self._config.heuristics)
        self._detector = detector or WildcardDetector(
            self._client, self._registry, logger=logger
        )
        self._retry_manager = RetryManager(self._config.retry)

    async def __aenter__(self) -> "QueryOrchestrator":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_client:
            await self._client.close()

    @property
    def client(self) -> DohClient:
        return self._client

    @property
    def registry(self) -> ProviderRegistry:
        return self._registry

    async def check(
        self,
        domain: str,
        progress: Optional[StageCallback] = None,
    ) -> DomainResult:
        """
        Check one fully qualified domain.

        Args:
            domain: Domain to check, e.g. 'example.com'
            progress: Optional callback invoked as the check enters each stage

        Returns:
            DomainResult from the decision engine

        Raises:
            ValidationError: If the domain is empty
            ConfigurationError: If a provider is misconfigured
        """
        domain = (domain or "").strip().lower().rstrip(".")
        if not domain:
            raise ValidationError(
                code="empty_input",
                message="Domain cannot be empty",
            )

        evidence: list[str] = []
        self._emit(progress, CheckStage.PREPARING)
        self._log_info(f"Starting check for {domain}", {"domain": domain})

        # Step 1: wildcard probe
        self._emit(progress, CheckStage.WILDCARD_CHECK)
        wildcard = await self._probe_wildcard(domain, evidence)

        # Step 2: NS + TXT on every primary provider
        self._emit(progress, CheckStage.PRIMARY_QUERY)
        primary = self._registry.primary_subset
        outcomes = list(await asyncio.gather(*(
            self._query(provider, domain, record_type)
            for provider in primary
            for record_type in PRIMARY_RECORD_TYPES
        )))

        # Step 3: SOA fallback
        if ns_inconclusive(outcomes):
            self._emit(progress, CheckStage.FALLBACK_QUERY)
            evidence.append("NS answers inconclusive on every primary provider; falling back to SOA")
            outcomes.extend(await asyncio.gather(*(
                self._query(provider, domain, RecordType.SOA)
                for provider in primary
            )))

        # Step 4: classification
        self._emit(progress, CheckStage.ANALYZING)
        result = self._engine.classify(
            domain,
            outcomes,
            wildcard,
            self._detector.is_wildcard_prone(domain),
            evidence,
        )

        self._emit(progress, CheckStage.FINALIZING)
        self._log_info(
            f"Check complete for {domain}: {result.status.value}",
            {
                "domain": domain,
                "status": result.status.value,
                "confidence": result.confidence.value,
                "queries": len(outcomes),
            },
        )
        return result

    async def _probe_wildcard(self, domain: str, evidence: list[str]) -> Optional[bool]:
        """Run the wildcard probe; a failed probe yields None plus an evidence line."""
        try:
            wildcard = await self._detector.detect(domain)
        except ConfigurationError:
            raise
        except Exception as e:
            error = classify_error(e, self._config.retry.retryable_http_statuses)
            evidence.append(
                f"Wildcard probe inconclusive ({error.category.value}): {error.message}"
            )
            self._log_error(
                f"Wildcard probe failed for {domain}",
                {"domain": domain, "category": error.category.value, "error": error.message},
            )
            return None

        if wildcard:
            evidence.append("Wildcard DNS detected: a random subdomain resolved")
        else:
            evidence.append("No wildcard DNS: random subdomain did not resolve")
        return wildcard

    async def _query(
        self,
        provider: DohProvider,
        domain: str,
        record_type: RecordType,
    ) -> ProviderOutcome:
        """Query one provider for one record type, with retry. Never raises for I/O failures."""
        question = DnsQuestion(domain, record_type)
        result = await self._retry_manager.execute(
            lambda: self._client.send(provider, question)
        )

        if result.success:
            return ProviderOutcome(
                provider=provider.name,
                record_type=record_type,
                response=result.result,
                attempts=result.attempts,
            )

        self._log_error(
            f"{provider.name} {record_type.name} query failed for {domain}",
            {
                "provider": provider.name,
                "category": result.error.category.value,
                "error": result.error.message,
                "attempts": result.attempts,
            },
        )
        return ProviderOutcome(
            provider=provider.name,
            record_type=record_type,
            error=result.error,
            attempts=result.attempts,
        )

    @staticmethod
    def _emit(progress: Optional[StageCallback], stage: CheckStage) -> None:
        if progress is not None:
            progress(stage)

    def _log_info(self, message: str, data: dict) -> None:
        """Log an info message if logger is available."""
        if self._logger:
            self._logger.log(LogLevel.INFO, "QueryOrchestrator", message, data)

    def _log_error(self, message: str, data: dict) -> None:
        """Log a failed query at WARN; the check itself carries on."""
        if self._logger:
            self._logger.log(LogLevel.WARN, "QueryOrchestrator", message, data)
