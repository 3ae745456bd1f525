"""
Pattern Analyzer for parking and premium detection.

TXT payloads are matched against a declarative table of pattern rules. Each
rule names the signal family it belongs to; confidence is accumulated per
family (each family counts once) and clamped to [0, 100]. NS hostnames are
checked separately against a static set of known parking nameservers.

The DKIM, DMARC and wildcard-name families key on the owner name
(``_domainkey``, ``_dmarc``, ``*``). The orchestrator only queries TXT at
the apex, so on live checks those families stay silent; apex TXT tops out
at SPF plus registrar markers, below the default premium threshold. They
fire for callers that pass records fetched at those owner names.
"""

import re
from dataclasses import dataclass
from typing import Iterable, Optional, Union

from .config import HeuristicsConfig
from .enums import RecordType, SignalCategory
from .models import ParkingSignal, ResourceRecord

_I = re.IGNORECASE


@dataclass(frozen=True)
class PatternRule:
    """
    A single TXT pattern.

    ``pattern`` is tested against the decoded TXT text and ``name_pattern``
    against the record's owner name; a rule matches when every pattern it
    defines matches.
    """

    name: str
    category: SignalCategory
    description: str
    pattern: Optional[re.Pattern] = None
    name_pattern: Optional[re.Pattern] = None
    for_sale: bool = False

    def matches(self, text: str, owner: str) -> bool:
        if self.pattern is not None and not self.pattern.search(text):
            return False
        if self.name_pattern is not None and not self.name_pattern.search(owner):
            return False
        return self.pattern is not None or self.name_pattern is not None


PATTERN_RULES: tuple[PatternRule, ...] = (
    # SPF / DKIM / DMARC: mail locked down on a domain that sends no mail
    PatternRule(
        "spf-hard-fail", SignalCategory.SPF,
        "SPF policy ending in -all",
        pattern=re.compile(r"^v=spf1\b.*\s-all\s*$", _I),
    ),
    PatternRule(
        "dkim-empty-key", SignalCategory.DKIM,
        "DKIM record with an empty public key",
        pattern=re.compile(r"(^|;)\s*p=\s*(;|$)", _I),
        name_pattern=re.compile(r"(^|\.)_domainkey(\.|$)", _I),
    ),
    PatternRule(
        "dmarc-reject", SignalCategory.DMARC,
        "DMARC policy p=reject or p=quarantine",
        pattern=re.compile(r"\bp=(reject|quarantine)\b", _I),
        name_pattern=re.compile(r"(^|\.)_dmarc(\.|$)", _I),
    ),
    PatternRule(
        "wildcard-name-txt", SignalCategory.WILDCARD_NAME,
        "TXT record published on a wildcard owner name",
        name_pattern=re.compile(r"^\*(\.|$)"),
    ),
    # Registrar / parking service markers
    PatternRule(
        "registrar-parkingcrew", SignalCategory.REGISTRAR,
        "ParkingCrew parking marker",
        pattern=re.compile(r"parkingcrew", _I),
    ),
    PatternRule(
        "registrar-sedoparking", SignalCategory.REGISTRAR,
        "Sedo parking marker",
        pattern=re.compile(r"sedoparking", _I),
    ),
    PatternRule(
        "registrar-dcv", SignalCategory.REGISTRAR,
        "Registrar domain control validation token",
        pattern=re.compile(r"domain_control_validation", _I),
    ),
    PatternRule(
        "registrar-domain-parking", SignalCategory.REGISTRAR,
        "Generic domain parking marker",
        pattern=re.compile(r"domain[-_]?parking", _I),
    ),
    # Premium / for-sale markers
    PatternRule(
        "premium-domain", SignalCategory.PREMIUM,
        "Premium domain marker",
        pattern=re.compile(r"premium[-_]?domain", _I),
    ),
    PatternRule(
        "domain-for-sale", SignalCategory.PREMIUM,
        "Domain for sale marker",
        pattern=re.compile(r"domain[-_]?for[-_]?sale", _I),
        for_sale=True,
    ),
    PatternRule(
        "domain-broker", SignalCategory.PREMIUM,
        "Domain broker marker",
        pattern=re.compile(r"domainbroker", _I),
        for_sale=True,
    ),
    PatternRule(
        "reserved-domain", SignalCategory.PREMIUM,
        "Reserved domain marker",
        pattern=re.compile(r"reserved?[-_]?domain", _I),
    ),
    PatternRule(
        "purchase-inquiry", SignalCategory.PREMIUM,
        "Purchase inquiry phrasing",
        pattern=re.compile(
            r"\b(buy|purchase|acquire|make an offer on)\s+this\s+domain\b"
            r"|\bthis\s+domain\s+(is|may\s+be)\s+for\s+sale\b",
            _I,
        ),
        for_sale=True,
    ),
    # Active usage: third-party site verification tokens
    PatternRule(
        "verify-google", SignalCategory.ACTIVE_USAGE,
        "Google site verification",
        pattern=re.compile(r"^google-site-verification=", _I),
    ),
    PatternRule(
        "verify-microsoft", SignalCategory.ACTIVE_USAGE,
        "Microsoft domain verification",
        pattern=re.compile(r"^ms=ms\d+", _I),
    ),
    PatternRule(
        "verify-facebook", SignalCategory.ACTIVE_USAGE,
        "Facebook domain verification",
        pattern=re.compile(r"^facebook-domain-verification=", _I),
    ),
    PatternRule(
        "verify-apple", SignalCategory.ACTIVE_USAGE,
        "Apple domain verification",
        pattern=re.compile(r"^apple-domain-verification=", _I),
    ),
    PatternRule(
        "verify-docusign", SignalCategory.ACTIVE_USAGE,
        "DocuSign domain verification",
        pattern=re.compile(r"^docusign=", _I),
    ),
    PatternRule(
        "verify-stripe", SignalCategory.ACTIVE_USAGE,
        "Stripe domain verification",
        pattern=re.compile(r"^stripe-verification=", _I),
    ),
)

KNOWN_PARKING_NAMESERVERS = frozenset({
    "ns1.sedoparking.com",
    "ns2.sedoparking.com",
    "ns1.parkingcrew.net",
    "ns2.parkingcrew.net",
    "ns1.bodis.com",
    "ns2.bodis.com",
    "ns1.above.com",
    "ns2.above.com",
    "ns1.dan.com",
    "ns2.dan.com",
    "ns1.afternic.com",
    "ns2.afternic.com",
    "ns1.uniregistrymarket.link",
    "ns2.uniregistrymarket.link",
    "ns1.hugedomains.com",
    "ns2.hugedomains.com",
    "ns1.parklogic.com",
    "ns2.parklogic.com",
    "ns1.dsredirection.com",
    "ns2.dsredirection.com",
})

_QUOTED_SEGMENT = re.compile(r'"((?:[^"\\]|\\.)*)"')


def decode_txt(data: str) -> str:
    """
    Decode TXT record data as returned by DoH providers.

    Quoted character-strings are unquoted and concatenated; unquoted data is
    returned stripped.
    """
    data = data.strip()
    segments = _QUOTED_SEGMENT.findall(data)
    if not segments:
        return data.strip('"')
    return "".join(segments).replace('\\"', '"')


def normalize_hostname(host: str) -> str:
    return host.strip().lower().rstrip(".")


def is_parking_nameserver(host: str) -> bool:
    return normalize_hostname(host) in KNOWN_PARKING_NAMESERVERS


class PatternAnalyzer:
    """Scores TXT records for parking, premium and active-usage signals."""

    def __init__(
        self,
        config: Optional[HeuristicsConfig] = None,
        rules: tuple[PatternRule, ...] = PATTERN_RULES,
    ) -> None:
        self._config = config or HeuristicsConfig()
        self._rules = rules
        self._weights = {
            SignalCategory.SPF: self._config.spf_weight,
            SignalCategory.DKIM: self._config.dkim_weight,
            SignalCategory.DMARC: self._config.dmarc_weight,
            SignalCategory.WILDCARD_NAME: self._config.wildcard_txt_weight,
            SignalCategory.REGISTRAR: self._config.registrar_weight,
        }

    @property
    def rules(self) -> tuple[PatternRule, ...]:
        return self._rules

    def match(self, text: str, owner: str = "") -> list[PatternRule]:
        """Return every rule matching one decoded TXT payload."""
        return [rule for rule in self._rules if rule.matches(text, owner)]

    def analyze(
        self,
        txt_records: Iterable[Union[ResourceRecord, str]],
    ) -> ParkingSignal:
        """
        Analyze TXT records for parking and premium signals.

        Args:
            txt_records: TXT resource records, or raw TXT strings

        Returns:
            ParkingSignal with clamped confidence and matched rule names
        """
        matched: list[PatternRule] = []
        for record in txt_records:
            if isinstance(record, str):
                text, owner = decode_txt(record), ""
            else:
                if record.type != RecordType.TXT:
                    continue
                text, owner = decode_txt(record.data), record.name
            matched.extend(self.match(text, owner))

        categories = {rule.category for rule in matched}
        confidence = sum(self._weights.get(category, 0) for category in categories)
        confidence = max(0, min(100, confidence))

        is_parked = confidence >= self._config.parked_threshold
        for_sale = any(rule.for_sale for rule in matched)
        is_premium = SignalCategory.PREMIUM in categories or (
            is_parked and confidence >= self._config.premium_threshold and for_sale
        )

        return ParkingSignal(
            is_parked=is_parked,
            is_premium=is_premium,
            confidence=confidence,
            matched_patterns=frozenset(rule.name for rule in matched),
            has_active_usage_indicators=SignalCategory.ACTIVE_USAGE in categories,
        )

    def parked_nameservers(self, records: Iterable[ResourceRecord]) -> list[str]:
        """Return the NS targets that belong to known parking services."""
        return sorted({
            normalize_hostname(record.data)
            for record in records
            if record.type == RecordType.NS and is_parking_nameserver(record.data)
        })
