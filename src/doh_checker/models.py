"""
Data models for the DoH domain checker.

This module defines the DNS message shapes returned by DoH providers, the
per-provider outcomes gathered during a check, and the result, progress and
cache structures handed to callers.
"""

from dataclasses import dataclass, field
from typing import Iterable, Optional

from .enums import (
    CheckStage,
    Confidence,
    DnsRcode,
    DomainStatus,
    ErrorCategory,
    RecordType,
)


@dataclass(frozen=True)
class DnsQuestion:
    """A single DNS question (lowercase name, no trailing dot)."""

    name: str
    type: RecordType

    def __post_init__(self) -> None:
        object.__setattr__(self, "name", self.name.strip().lower().rstrip("."))
        object.__setattr__(self, "type", RecordType(int(self.type)))


@dataclass(frozen=True)
class ResourceRecord:
    """A resource record from the answer, authority or additional section."""

    name: str
    type: int
    ttl: int
    data: str


@dataclass(frozen=True)
class DnsFlags:
    """Header flags reported by the resolver."""

    ad: bool = False
    tc: bool = False
    rd: bool = False
    ra: bool = False
    cd: bool = False


@dataclass(frozen=True)
class DnsResponse:
    """Parsed DoH response envelope."""

    status: int
    flags: DnsFlags
    question: Optional[DnsQuestion]
    answer: tuple[ResourceRecord, ...] = ()
    authority: tuple[ResourceRecord, ...] = ()
    additional: tuple[ResourceRecord, ...] = ()
    comment: Optional[str] = None

    @property
    def rcode_name(self) -> str:
        try:
            return DnsRcode(self.status).name
        except ValueError:
            return f"RCODE{self.status}"

    @property
    def is_noerror(self) -> bool:
        return self.status == DnsRcode.NOERROR

    @property
    def is_nxdomain(self) -> bool:
        return self.status == DnsRcode.NXDOMAIN

    def records(self, *types: int, sections: str = "answer") -> list[ResourceRecord]:
        """
        Return records of the given types from the named sections.

        Args:
            types: Record type codes to keep (all types if empty)
            sections: Comma-separated section names ('answer', 'authority', 'additional')
        """
        wanted = {int(t) for t in types}
        found: list[ResourceRecord] = []
        for section in sections.split(","):
            for record in getattr(self, section.strip()):
                if not wanted or record.type in wanted:
                    found.append(record)
        return found


@dataclass(frozen=True)
class ClassifiedError:
    """A provider failure mapped into the checker's error taxonomy."""

    category: ErrorCategory
    message: str
    suggests_domain_exists: bool = False
    http_status_code: Optional[int] = None
    retryable: bool = False


@dataclass(frozen=True)
class ProviderOutcome:
    """
    Outcome of one (provider, record type) query.

    Exactly one of ``response`` and ``error`` is set.
    """

    provider: str
    record_type: RecordType
    response: Optional[DnsResponse] = None
    error: Optional[ClassifiedError] = None
    attempts: int = 1

    def __post_init__(self) -> None:
        if (self.response is None) == (self.error is None):
            raise ValueError("ProviderOutcome needs exactly one of response or error")

    @property
    def succeeded(self) -> bool:
        return self.response is not None


@dataclass(frozen=True)
class ParkingSignal:
    """Parking/premium signal derived from TXT records."""

    is_parked: bool
    is_premium: bool
    confidence: int
    matched_patterns: frozenset[str] = frozenset()
    has_active_usage_indicators: bool = False

    @classmethod
    def empty(cls) -> "ParkingSignal":
        return cls(is_parked=False, is_premium=False, confidence=0)


@dataclass(frozen=True)
class DomainResult:
    """Terminal result for one domain of a batch."""

    domain: str
    status: DomainStatus
    link: str
    evidence: tuple[str, ...] = ()
    confidence: Confidence = Confidence.LOW
    error_category: Optional[ErrorCategory] = None
    error_message: Optional[str] = None
    dnssec_validated: bool = False
    wildcard_detected: bool = False
    is_parked_by_ns: bool = False
    is_parked_by_txt: bool = False

    def to_dict(self) -> dict:
        """Convert the result to a JSON-serializable dictionary."""
        return {
            "domain": self.domain,
            "status": self.status.value,
            "confidence": self.confidence.value,
            "link": self.link,
            "evidence": list(self.evidence),
            "error_category": self.error_category.value if self.error_category else None,
            "error_message": self.error_message,
            "dnssec_validated": self.dnssec_validated,
            "wildcard_detected": self.wildcard_detected,
            "is_parked_by_ns": self.is_parked_by_ns,
            "is_parked_by_txt": self.is_parked_by_txt,
        }


@dataclass(frozen=True)
class ProgressState:
    """Snapshot of batch progress reported to the caller."""

    percentage: float
    stage: CheckStage
    domains_processed: int
    total_domains: int
    current_domain: Optional[str] = None
    detailed_message: Optional[str] = None


@dataclass
class GroupedResults:
    """Domain results partitioned by status."""

    available: list[DomainResult] = field(default_factory=list)
    registered: list[DomainResult] = field(default_factory=list)
    premium: list[DomainResult] = field(default_factory=list)
    other: list[DomainResult] = field(default_factory=list)

    @classmethod
    def from_results(cls, results: Iterable[DomainResult]) -> "GroupedResults":
        grouped = cls()
        for result in results:
            if result.status == DomainStatus.AVAILABLE:
                grouped.available.append(result)
            elif result.status == DomainStatus.REGISTERED:
                grouped.registered.append(result)
            elif result.status == DomainStatus.PREMIUM:
                grouped.premium.append(result)
            else:
                grouped.other.append(result)
        return grouped

    @property
    def all_results(self) -> list[DomainResult]:
        return [*self.available, *self.registered, *self.premium, *self.other]

    def to_dict(self) -> dict:
        return {
            "available": [r.to_dict() for r in self.available],
            "registered": [r.to_dict() for r in self.registered],
            "premium": [r.to_dict() for r in self.premium],
            "other": [r.to_dict() for r in self.other],
        }


@dataclass(frozen=True)
class CacheEntry:
    """Cached batch results keyed by normalized base name and TLD list."""

    key: str
    results: tuple[DomainResult, ...]
    created_at: float
