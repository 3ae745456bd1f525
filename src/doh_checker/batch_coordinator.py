"""
Batch Coordinator - runs the query pipeline over base name + TLD combinations.

Responsibilities:
- Input normalization and the cache lookup that precedes any network access
- Concurrent per-domain checks with per-domain failure isolation
- Monotonic progress reporting that ends at exactly 100
- Storing the completed result set in the cache

Cancelling ``run_batch`` cancels every in-flight domain check; the cache is
only written once the whole batch has completed.
"""

import asyncio
from typing import Callable, Iterable, Optional

from .audit_logger import AuditLogger
from .enums import CheckStage, Confidence, DomainStatus, LogLevel
from .error_classifier import classify_error
from .domain_validator import DomainValidator
from .models import DomainResult, GroupedResults, ProgressState
from .orchestrator import QueryOrchestrator
from .result_cache import ResultCache
from .tld_registry import build_link

ProgressCallback = Callable[[ProgressState], None]

# Share of a domain's slot reached when it enters each stage
STAGE_FRACTIONS = {
    CheckStage.PREPARING: 0.0,
    CheckStage.WILDCARD_CHECK: 0.2,
    CheckStage.PRIMARY_QUERY: 0.4,
    CheckStage.FALLBACK_QUERY: 0.6,
    CheckStage.ANALYZING: 0.8,
    CheckStage.FINALIZING: 1.0,
}

# Percentage reserved for per-domain work; the rest is reached at completion
DOMAIN_PROGRESS_SHARE = 95.0


class ProgressTracker:
    """Turns per-domain stage changes into a non-decreasing percentage."""

    def __init__(self, total: int, callback: Optional[ProgressCallback]) -> None:
        self._total = total
        self._callback = callback
        self._fractions: dict[str, float] = {}
        self._processed = 0
        self._percentage = 0.0

    @property
    def percentage(self) -> float:
        return self._percentage

    @property
    def domains_processed(self) -> int:
        return self._processed

    def advance(self, domain: str, stage: CheckStage) -> None:
        fraction = STAGE_FRACTIONS.get(stage, 0.0)
        self._fractions[domain] = max(self._fractions.get(domain, 0.0), fraction)
        self._report(stage, domain, f"{domain}: {stage.value.replace('_', ' ')}")

    def finish(self, domain: str, status: DomainStatus) -> None:
        self._fractions[domain] = 1.0
        self._processed += 1
        self._report(CheckStage.FINALIZING, domain, f"{domain}: {status.value}")

    def complete(self, message: str = "Batch complete") -> None:
        self._processed = self._total
        self._percentage = 100.0
        self._emit(CheckStage.COMPLETE, None, message)

    def _report(self, stage: CheckStage, domain: str, message: str) -> None:
        if self._total:
            done = sum(self._fractions.values()) / self._total
            self._percentage = max(self._percentage, round(done * DOMAIN_PROGRESS_SHARE, 2))
        self._emit(stage, domain, message)

    def _emit(self, stage: CheckStage, domain: Optional[str], message: str) -> None:
        if self._callback is None:
            return
        self._callback(ProgressState(
            percentage=self._percentage,
            stage=stage,
            domains_processed=self._processed,
            total_domains=self._total,
            current_domain=domain,
            detailed_message=message,
        ))


class BatchCoordinator:
    """Drives the orchestrator over every base name + TLD combination."""

    def __init__(
        self,
        orchestrator: QueryOrchestrator,
        cache: Optional[ResultCache] = None,
        validator: Optional[DomainValidator] = None,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._cache = cache if cache is not None else ResultCache()
        self._validator = validator or DomainValidator()
        self._logger = logger

    @property
    def cache(self) -> ResultCache:
        return self._cache

    async def run_batch(
        self,
        base_name: str,
        tlds: Iterable[str],
        on_progress: Optional[ProgressCallback] = None,
    ) -> GroupedResults:
        """
        Check ``base_name`` under every TLD.

        Args:
            base_name: Base label without TLD
            tlds: TLDs with or without the leading dot
            on_progress: Optional callback receiving ProgressState snapshots

        Returns:
            GroupedResults partitioned by status

        Raises:
            ValidationError: If the base name is empty or the TLD set is empty
        """
        batch = self._validator.validate(base_name, tlds)
        key = self._cache.make_key(batch.base_name, batch.tlds)
        domains = batch.domains
        tracker = ProgressTracker(len(domains), on_progress)

        cached = self._cache.get(key)
        if cached is not None:
            self._log(LogLevel.INFO, f"Cache hit for {key}", {"key": key})
            tracker.complete("Results served from cache")
            return GroupedResults.from_results(cached.results)

        self._log(
            LogLevel.INFO,
            f"Starting batch for {batch.base_name} ({len(domains)} domains)",
            {"key": key, "domains": domains},
        )

        results = await asyncio.gather(*(
            self._check_one(domain, tracker) for domain in domains
        ))

        self._cache.put(key, results)
        tracker.complete()
        self._log(LogLevel.INFO, f"Batch complete for {key}", {"key": key})
        return GroupedResults.from_results(results)

    async def _check_one(self, domain: str, tracker: ProgressTracker) -> DomainResult:
        """Run one domain; any unexpected exception becomes an Error result."""
        try:
            result = await self._orchestrator.check(
                domain,
                progress=lambda stage: tracker.advance(domain, stage),
            )
        except Exception as e:
            error = classify_error(e)
            if self._logger:
                self._logger.log_error(
                    "BatchCoordinator",
                    f"Check failed for {domain}",
                    error=e,
                    extra={"domain": domain},
                )
            result = DomainResult(
                domain=domain,
                status=DomainStatus.ERROR,
                link=build_link(domain, DomainStatus.ERROR),
                evidence=(f"Check aborted: {error.message}",),
                confidence=Confidence.LOW,
                error_category=error.category,
                error_message=error.message,
            )

        tracker.finish(domain, result.status)
        return result

    def _log(self, level: LogLevel, message: str, data: dict) -> None:
        if self._logger:
            self._logger.log(level, "BatchCoordinator", message, data)
