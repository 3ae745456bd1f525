"""
Decision Engine for domain status classification.

Combines the wildcard probe, per-provider DNS status codes, NS/SOA record
presence and the parking/premium signal into one of five statuses. The
decision table is an explicit, ordered list of rules evaluated top-down;
the first rule whose predicate holds decides the status.

Provider verdicts are derived from NS and SOA outcomes only. TXT outcomes
feed the pattern analyzer and the DNSSEC flag.
"""

import math
from collections import Counter
from dataclasses import dataclass
from enum import IntEnum
from typing import Callable, Iterable, Optional, Sequence

from .config import HeuristicsConfig
from .enums import (
    Confidence,
    DnsRcode,
    DomainStatus,
    ErrorCategory,
    RecordType,
)
from .error_classifier import classify_rcode
from .models import DomainResult, ParkingSignal, ProviderOutcome
from .pattern_analyzer import PatternAnalyzer
from .tld_registry import build_link, tld_of

EXISTENCE_RECORD_TYPES = (RecordType.NS, RecordType.SOA)

# Tie-break order when picking the dominant error category
_ERROR_CATEGORY_ORDER = (
    ErrorCategory.TIMEOUT,
    ErrorCategory.DNS_ERROR,
    ErrorCategory.NETWORK,
    ErrorCategory.UNKNOWN,
)


class ProviderVerdict(IntEnum):
    """
    Single verdict per provider from its NS/SOA outcomes.

    Higher values take precedence when a provider produced several
    outcomes (e.g. an NS failure followed by a conclusive SOA answer).
    """

    TRANSPORT_ERROR = 0
    DNS_ERROR = 1
    NOERROR_EMPTY = 2
    SERVFAIL = 3
    NXDOMAIN = 4
    NOERROR_RECORDS = 5


ERROR_VERDICTS = frozenset({ProviderVerdict.TRANSPORT_ERROR, ProviderVerdict.DNS_ERROR})


def verdict_for(outcome: ProviderOutcome) -> ProviderVerdict:
    """Map one NS/SOA outcome to a provider verdict."""
    if outcome.error is not None:
        if outcome.error.category == ErrorCategory.DNS_ERROR:
            return ProviderVerdict.DNS_ERROR
        return ProviderVerdict.TRANSPORT_ERROR

    response = outcome.response
    if response.is_noerror:
        if response.records(*EXISTENCE_RECORD_TYPES, sections="answer,authority"):
            return ProviderVerdict.NOERROR_RECORDS
        return ProviderVerdict.NOERROR_EMPTY
    if response.is_nxdomain:
        return ProviderVerdict.NXDOMAIN
    if response.status == DnsRcode.SERVFAIL:
        return ProviderVerdict.SERVFAIL
    return ProviderVerdict.DNS_ERROR


def describe_outcome(outcome: ProviderOutcome) -> str:
    """One evidence line for a provider outcome."""
    prefix = f"{outcome.provider} {outcome.record_type.name}"
    if outcome.error is not None:
        return f"{prefix}: {outcome.error.category.value} error ({outcome.error.message})"

    response = outcome.response
    records = response.records(outcome.record_type, sections="answer,authority")
    line = f"{prefix}: {response.rcode_name} (status {response.status})"
    if records:
        shown = ", ".join(r.data for r in records[:3])
        more = f" +{len(records) - 3} more" if len(records) > 3 else ""
        line += f", {len(records)} {outcome.record_type.name} record(s): {shown}{more}"
    if response.flags.ad:
        line += ", DNSSEC validated"
    return line


@dataclass(frozen=True)
class ClassificationContext:
    """Everything the rules look at, derived once from the outcomes."""

    domain: str
    providers: tuple[str, ...]
    responding: tuple[str, ...]
    verdicts: dict[str, ProviderVerdict]
    signals: dict[str, ParkingSignal]
    parked_ns_providers: frozenset[str]
    parked_nameservers: tuple[str, ...]
    existence_error_providers: frozenset[str]
    wildcard: Optional[bool]
    wildcard_prone_tld: bool
    dnssec_validated: bool
    all_failed: bool
    error_category: Optional[ErrorCategory] = None
    error_message: Optional[str] = None

    @property
    def consensus_threshold(self) -> int:
        return max(1, math.ceil(len(self.responding) / 2))

    def count(self, verdict: ProviderVerdict) -> int:
        return sum(1 for v in self.verdicts.values() if v == verdict)

    def providers_with(self, verdict: ProviderVerdict) -> list[str]:
        return [p for p, v in self.verdicts.items() if v == verdict]

    @property
    def parked_ns_count(self) -> int:
        return len(self.parked_ns_providers)

    @property
    def parked_txt_count(self) -> int:
        return sum(1 for s in self.signals.values() if s.is_parked)

    @property
    def premium_txt_count(self) -> int:
        return sum(1 for s in self.signals.values() if s.is_premium)

    @property
    def has_active_usage_indicators(self) -> bool:
        return any(s.has_active_usage_indicators for s in self.signals.values())

    @property
    def wildcard_detected(self) -> bool:
        return self.wildcard is True

    @property
    def has_strong_parking_signal(self) -> bool:
        threshold = self.consensus_threshold
        return (
            self.parked_ns_count >= threshold
            or self.parked_txt_count >= threshold
            or (
                self.wildcard_detected
                and (self.parked_ns_count > 0 or self.parked_txt_count > 0)
            )
        )

    @property
    def has_premium_txt_consensus(self) -> bool:
        return (
            self.premium_txt_count > 0
            and self.premium_txt_count >= self.consensus_threshold
        )

    @property
    def has_conclusive_verdict(self) -> bool:
        """At least one provider answered NS or SOA with a DNS status."""
        return any(v not in ERROR_VERDICTS for v in self.verdicts.values())

    @property
    def only_errors(self) -> bool:
        """Every provider verdict is a network, timeout or other DNS error."""
        return bool(self.verdicts) and all(
            v in ERROR_VERDICTS for v in self.verdicts.values()
        )


@dataclass(frozen=True)
class Decision:
    status: DomainStatus
    confidence: Confidence
    evidence: tuple[str, ...] = ()


@dataclass(frozen=True)
class ClassificationRule:
    """An ordered predicate -> decision pair."""

    name: str
    applies: Callable[[ClassificationContext], bool]
    decide: Callable[[ClassificationContext], Decision]


def _parking_notes(ctx: ClassificationContext) -> list[str]:
    notes = []
    if ctx.parked_nameservers:
        notes.append(
            f"Parking nameservers seen by {ctx.parked_ns_count} provider(s): "
            f"{', '.join(ctx.parked_nameservers)}"
        )
    for provider, signal in sorted(ctx.signals.items()):
        if signal.is_parked or signal.is_premium:
            kind = "premium" if signal.is_premium else "parking"
            notes.append(
                f"{provider} TXT {kind} signal (confidence {signal.confidence}): "
                f"{', '.join(sorted(signal.matched_patterns))}"
            )
    return notes


# ============================================================================
# Rules, in priority order
# ============================================================================
def _active_usage(ctx: ClassificationContext) -> bool:
    return ctx.has_active_usage_indicators


def _decide_active_usage(ctx: ClassificationContext) -> Decision:
    providers = sorted(p for p, s in ctx.signals.items() if s.has_active_usage_indicators)
    return Decision(
        DomainStatus.REGISTERED,
        Confidence.HIGH,
        (f"Active site verification TXT records seen by {', '.join(providers)}; "
         "overrides any parking or premium signal",),
    )


def _has_existence_records(ctx: ClassificationContext) -> bool:
    return ctx.count(ProviderVerdict.NOERROR_RECORDS) > 0


def _decide_existence_records(ctx: ClassificationContext) -> Decision:
    providers = ctx.providers_with(ProviderVerdict.NOERROR_RECORDS)
    evidence = [f"NOERROR with NS/SOA records from {', '.join(providers)}"]
    evidence.extend(f"Note: {note}" for note in _parking_notes(ctx))
    return Decision(DomainStatus.REGISTERED, Confidence.HIGH, tuple(evidence))


def _nxdomain_without_conflict(ctx: ClassificationContext) -> bool:
    return (
        ctx.count(ProviderVerdict.NXDOMAIN) > 0
        and ctx.count(ProviderVerdict.NOERROR_RECORDS) == 0
        and ctx.count(ProviderVerdict.SERVFAIL) == 0
    )


def _decide_nxdomain(ctx: ClassificationContext) -> Decision:
    nx_count = ctx.count(ProviderVerdict.NXDOMAIN)
    error_count = sum(ctx.count(v) for v in ERROR_VERDICTS)
    nx_providers = ", ".join(ctx.providers_with(ProviderVerdict.NXDOMAIN))

    candidate: Optional[Decision] = None
    if not ctx.wildcard_detected:
        if nx_count == len(ctx.responding) and nx_count == len(ctx.verdicts):
            candidate = Decision(
                DomainStatus.AVAILABLE,
                Confidence.HIGH,
                (f"All {nx_count} responding provider(s) agree on NXDOMAIN ({nx_providers})",),
            )
        elif nx_count + error_count == len(ctx.verdicts):
            candidate = Decision(
                DomainStatus.AVAILABLE,
                Confidence.MODERATE,
                (f"NXDOMAIN from {nx_providers}; remaining {error_count} provider(s) failed",),
            )

    if candidate is not None:
        if ctx.has_premium_txt_consensus:
            return Decision(
                DomainStatus.INDETERMINATE,
                Confidence.LOW,
                candidate.evidence + (
                    f"Premium TXT consensus ({ctx.premium_txt_count} provider(s)) "
                    "conflicts with NXDOMAIN; downgraded to indeterminate",
                ),
            )
        return candidate

    if ctx.wildcard_detected and (ctx.has_strong_parking_signal or ctx.has_premium_txt_consensus):
        evidence = [
            f"NXDOMAIN from {nx_providers} but wildcard DNS detected with parking/premium signals",
            "Registered (low confidence)",
        ]
        evidence.extend(_parking_notes(ctx))
        return Decision(DomainStatus.REGISTERED, Confidence.LOW, tuple(evidence))

    if ctx.wildcard_detected:
        return Decision(
            DomainStatus.INDETERMINATE,
            Confidence.LOW,
            (f"NXDOMAIN from {nx_providers} but wildcard DNS makes it unreliable",),
        )

    return Decision(
        DomainStatus.INDETERMINATE,
        Confidence.LOW,
        (f"NXDOMAIN from {nx_providers} without agreement from the other providers",),
    )


def _premium_without_answers(ctx: ClassificationContext) -> bool:
    return (
        ctx.count(ProviderVerdict.NOERROR_RECORDS) == 0
        and ctx.count(ProviderVerdict.NXDOMAIN) == 0
        and ctx.has_premium_txt_consensus
    )


def _decide_premium(ctx: ClassificationContext) -> Decision:
    evidence = [f"Premium TXT consensus from {ctx.premium_txt_count} provider(s) with no NS/SOA answer"]
    evidence.extend(_parking_notes(ctx))
    return Decision(DomainStatus.PREMIUM, Confidence.MODERATE, tuple(evidence))


def _suggests_existence(ctx: ClassificationContext) -> bool:
    if ctx.count(ProviderVerdict.SERVFAIL) > 0:
        return True
    if ctx.has_conclusive_verdict and len(ctx.existence_error_providers) >= ctx.consensus_threshold:
        return True
    no_answer = (
        ctx.count(ProviderVerdict.NOERROR_RECORDS) == 0
        and ctx.count(ProviderVerdict.NOERROR_EMPTY) == 0
        and ctx.count(ProviderVerdict.NXDOMAIN) == 0
    )
    return no_answer and ctx.has_strong_parking_signal


def _decide_suggests_existence(ctx: ClassificationContext) -> Decision:
    evidence = []
    servfail = ctx.providers_with(ProviderVerdict.SERVFAIL)
    if servfail:
        evidence.append(f"SERVFAIL from {', '.join(servfail)} (typical of registered but misconfigured zones)")
    if ctx.has_conclusive_verdict and len(ctx.existence_error_providers) >= ctx.consensus_threshold:
        evidence.append(
            f"Timeouts suggesting an existing zone from "
            f"{', '.join(sorted(ctx.existence_error_providers))}"
        )
    if ctx.has_strong_parking_signal:
        evidence.append("Strong parking signal without a NOERROR or NXDOMAIN answer")
        evidence.extend(_parking_notes(ctx))
    return Decision(DomainStatus.REGISTERED, Confidence.MODERATE, tuple(evidence))


def _noerror_empty(ctx: ClassificationContext) -> bool:
    return ctx.count(ProviderVerdict.NOERROR_EMPTY) > 0


def _decide_noerror_empty(ctx: ClassificationContext) -> Decision:
    providers = ctx.providers_with(ProviderVerdict.NOERROR_EMPTY)
    return Decision(
        DomainStatus.INDETERMINATE,
        Confidence.LOW,
        (f"NOERROR without NS/SOA records from {', '.join(providers)}",),
    )


def _only_errors(ctx: ClassificationContext) -> bool:
    return ctx.only_errors or not ctx.verdicts


def _decide_only_errors(ctx: ClassificationContext) -> Decision:
    category = ctx.error_category.value if ctx.error_category else "unknown"
    return Decision(
        DomainStatus.ERROR,
        Confidence.LOW,
        (f"All providers failed (dominant error: {category})",),
    )


def _fallback(ctx: ClassificationContext) -> bool:
    return True


def _decide_fallback(ctx: ClassificationContext) -> Decision:
    if ctx.all_failed:
        return Decision(DomainStatus.ERROR, Confidence.LOW, ("Every signal was an error",))
    return Decision(DomainStatus.INDETERMINATE, Confidence.LOW, ("No rule produced a conclusive status",))


CLASSIFICATION_RULES: tuple[ClassificationRule, ...] = (
    ClassificationRule("active-usage", _active_usage, _decide_active_usage),
    ClassificationRule("existence-records", _has_existence_records, _decide_existence_records),
    ClassificationRule("nxdomain", _nxdomain_without_conflict, _decide_nxdomain),
    ClassificationRule("premium-consensus", _premium_without_answers, _decide_premium),
    ClassificationRule("suggests-existence", _suggests_existence, _decide_suggests_existence),
    ClassificationRule("noerror-without-records", _noerror_empty, _decide_noerror_empty),
    ClassificationRule("only-errors", _only_errors, _decide_only_errors),
    ClassificationRule("fallback", _fallback, _decide_fallback),
)


def _dominant_error(outcomes: Sequence[ProviderOutcome]) -> tuple[Optional[ErrorCategory], Optional[str]]:
    errors = []
    for outcome in outcomes:
        error = outcome.error
        if error is None and outcome.record_type in EXISTENCE_RECORD_TYPES:
            error = classify_rcode(outcome.response)
        if error is not None:
            errors.append(error)
    if not errors:
        return None, None

    counts = Counter(e.category for e in errors)
    category = max(
        counts,
        key=lambda c: (counts[c], -_ERROR_CATEGORY_ORDER.index(c)),
    )
    message = next(e.message for e in errors if e.category == category)
    return category, message


class DecisionEngine:
    """
    Deterministic domain status classifier.

    ``classify`` is pure with respect to its inputs: identical outcomes,
    wildcard result and wildcard-prone flag always yield the same result.
    """

    def __init__(
        self,
        heuristics: Optional[HeuristicsConfig] = None,
        rules: tuple[ClassificationRule, ...] = CLASSIFICATION_RULES,
        analyzer: Optional[PatternAnalyzer] = None,
    ) -> None:
        self._analyzer = analyzer or PatternAnalyzer(heuristics)
        self._rules = rules

    @property
    def rules(self) -> tuple[ClassificationRule, ...]:
        return self._rules

    def build_context(
        self,
        domain: str,
        outcomes: Sequence[ProviderOutcome],
        wildcard: Optional[bool],
        wildcard_prone_tld: bool,
    ) -> ClassificationContext:
        """Derive per-provider verdicts, signals and tallies from raw outcomes."""
        providers: list[str] = []
        responding: list[str] = []
        verdicts: dict[str, ProviderVerdict] = {}
        txt_records: dict[str, list] = {}
        parked_ns_providers: set[str] = set()
        parked_hosts: set[str] = set()
        existence_errors: set[str] = set()
        dnssec = False

        for outcome in outcomes:
            name = outcome.provider
            if name not in providers:
                providers.append(name)

            if outcome.error is not None:
                if outcome.error.suggests_domain_exists:
                    existence_errors.add(name)
            else:
                if name not in responding:
                    responding.append(name)
                response = outcome.response
                dnssec = dnssec or response.flags.ad
                hosts = self._analyzer.parked_nameservers(
                    response.records(RecordType.NS, sections="answer,authority")
                )
                if hosts:
                    parked_ns_providers.add(name)
                    parked_hosts.update(hosts)
                if outcome.record_type == RecordType.TXT:
                    txt_records.setdefault(name, []).extend(
                        response.records(RecordType.TXT)
                    )

            if outcome.record_type in EXISTENCE_RECORD_TYPES:
                verdict = verdict_for(outcome)
                if name not in verdicts or verdict > verdicts[name]:
                    verdicts[name] = verdict

        signals = {
            name: self._analyzer.analyze(records)
            for name, records in txt_records.items()
        }
        error_category, error_message = _dominant_error(outcomes)

        return ClassificationContext(
            domain=domain,
            providers=tuple(providers),
            responding=tuple(responding),
            verdicts=verdicts,
            signals=signals,
            parked_ns_providers=frozenset(parked_ns_providers),
            parked_nameservers=tuple(sorted(parked_hosts)),
            existence_error_providers=frozenset(existence_errors),
            wildcard=wildcard,
            wildcard_prone_tld=wildcard_prone_tld,
            dnssec_validated=dnssec,
            all_failed=bool(outcomes) and all(not o.succeeded for o in outcomes),
            error_category=error_category,
            error_message=error_message,
        )

    def decide(self, ctx: ClassificationContext) -> tuple[ClassificationRule, Decision]:
        """Evaluate the rules top-down and return the first that applies."""
        for rule in self._rules:
            if rule.applies(ctx):
                return rule, rule.decide(ctx)
        raise RuntimeError("Classification rules must end with a catch-all rule")

    def classify(
        self,
        domain: str,
        outcomes: Sequence[ProviderOutcome],
        wildcard: Optional[bool],
        wildcard_prone_tld: bool,
        evidence: Iterable[str] = (),
    ) -> DomainResult:
        """
        Classify a domain from its provider outcomes.

        Args:
            domain: Fully qualified domain name
            outcomes: Every provider outcome gathered for the domain
            wildcard: Wildcard probe result, or None if the probe failed
            wildcard_prone_tld: Whether the TLD defaults to catch-all DNS
            evidence: Evidence already gathered by the caller

        Returns:
            DomainResult with status, link and ordered evidence trail
        """
        ctx = self.build_context(domain, outcomes, wildcard, wildcard_prone_tld)
        rule, decision = self.decide(ctx)

        trail = list(evidence)
        if wildcard_prone_tld:
            trail.append(f"TLD {tld_of(domain)} is known to default to wildcard DNS")
        trail.extend(describe_outcome(o) for o in outcomes)
        trail.extend(f"[{rule.name}] {line}" for line in decision.evidence)
        trail.append(f"Status: {decision.status.value} ({decision.confidence.value} confidence)")

        is_error = decision.status == DomainStatus.ERROR
        return DomainResult(
            domain=domain,
            status=decision.status,
            link=build_link(domain, decision.status),
            evidence=tuple(trail),
            confidence=decision.confidence,
            error_category=ctx.error_category if is_error else None,
            error_message=ctx.error_message if is_error else None,
            dnssec_validated=ctx.dnssec_validated,
            wildcard_detected=ctx.wildcard_detected,
            is_parked_by_ns=ctx.parked_ns_count > 0,
            is_parked_by_txt=ctx.parked_txt_count > 0,
        )
