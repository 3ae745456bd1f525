"""
Enumeration types for the DoH domain checker.

These enums provide type-safe constants for DNS record types, response
codes, result statuses and error categories throughout the system.
"""

from enum import Enum, IntEnum


class DomainStatus(Enum):
    """Inferred status of a domain after a check."""

    AVAILABLE = "available"
    REGISTERED = "registered"
    PREMIUM = "premium"
    INDETERMINATE = "indeterminate"
    ERROR = "error"


class Confidence(Enum):
    """Confidence level attached to a status determination."""

    HIGH = "high"
    MODERATE = "moderate"
    LOW = "low"


class ErrorCategory(Enum):
    """Category of a failed provider query."""

    NETWORK = "network"
    TIMEOUT = "timeout"
    DNS_ERROR = "dns_error"
    UNKNOWN = "unknown"


class RecordType(IntEnum):
    """DNS record types understood by the checker."""

    A = 1
    NS = 2
    CNAME = 5
    SOA = 6
    MX = 15
    TXT = 16
    AAAA = 28
    RRSIG = 46
    NSEC3 = 50


class DnsRcode(IntEnum):
    """DNS response codes (RCODE)."""

    NOERROR = 0
    FORMERR = 1
    SERVFAIL = 2
    NXDOMAIN = 3
    NOTIMP = 4
    REFUSED = 5


class SignalCategory(Enum):
    """Families of TXT/name patterns inspected by the pattern analyzer."""

    SPF = "spf"
    DKIM = "dkim"
    DMARC = "dmarc"
    WILDCARD_NAME = "wildcard_name"
    REGISTRAR = "registrar"
    PREMIUM = "premium"
    ACTIVE_USAGE = "active_usage"


class CheckStage(Enum):
    """Stages a domain passes through during a batch."""

    PREPARING = "preparing"
    WILDCARD_CHECK = "wildcard_check"
    PRIMARY_QUERY = "primary_query"
    FALLBACK_QUERY = "fallback_query"
    ANALYZING = "analyzing"
    FINALIZING = "finalizing"
    COMPLETE = "complete"


class LogLevel(Enum):
    """Logging severity levels."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class DomainValidationErrorCode(Enum):
    """Error codes for input validation failures."""

    EMPTY_INPUT = "empty_input"
    EMPTY_TLD_SET = "empty_tld_set"
    FORBIDDEN_CHARS = "forbidden_chars"
    INVALID_TLD = "invalid_tld"
    IDNA_ERROR = "idna_error"
