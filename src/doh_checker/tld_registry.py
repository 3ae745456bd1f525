"""
TLD Registry - static TLD catalogs and result link builders.

This module contains read-only data consumed by the checker:
- Popular and country-code TLD catalogs offered to users
- TLDs supported by the registrar used for "register this domain" links
- TLDs whose registries are known to answer catch-all (wildcard) DNS
"""

from urllib.parse import quote

from .enums import DomainStatus

# ============================================================================
# TLD CATALOGS
# ============================================================================
POPULAR_TLDS = [
    ".com", ".org", ".net", ".info", ".co", ".io", ".app", ".dev", ".ai",
    ".me", ".tv", ".online", ".store", ".website", ".blog", ".tech", ".site",
    ".xyz",
]

COUNTRY_TLDS = [
    ".de", ".cn", ".uk", ".nl", ".ru", ".eu", ".br", ".au", ".it", ".pl",
    ".jp", ".fr", ".in", ".us", ".ca", ".ch", ".es", ".se", ".no", ".fi",
    ".be", ".at", ".dk", ".gr", ".tr", ".mx", ".kr", ".hk", ".ie", ".pt",
    ".cz", ".sg", ".tw", ".hu", ".sk", ".cl", ".il", ".nz",
]

# TLDs the registrar search link supports
REGISTRAR_TLDS = frozenset({
    ".com", ".org", ".eu", ".net", ".io", ".ai", ".co.uk", ".ca", ".dev",
    ".me", ".co", ".de", ".app", ".in", ".is", ".gg", ".to", ".ph", ".nl",
    ".id", ".inc", ".website", ".xyz", ".club", ".online", ".info", ".store",
    ".best", ".live", ".us", ".tech", ".pw", ".pro", ".uk", ".tv", ".cx",
    ".mx", ".fm", ".cc", ".world", ".space", ".life", ".shop", ".host",
    ".fun", ".biz", ".icu", ".design", ".art",
})

# Registries known to resolve any name under the TLD
WILDCARD_PRONE_TLDS = frozenset({
    ".cm", ".ph", ".ws", ".nu", ".tk", ".la", ".pw", ".vu",
})

# Multi-label suffixes that must be matched before single-label TLDs
_MULTI_LABEL_SUFFIXES = sorted(
    (tld for tld in REGISTRAR_TLDS if tld.count(".") > 1),
    key=len,
    reverse=True,
)

REGISTRAR_SEARCH_URL = "https://www.namecheap.com/domains/registration/results/?domain={domain}"
MARKETPLACE_URL = "https://sedo.com/search/?keyword={domain}"
REGISTRAR_MARKETPLACE_URL = "https://www.namecheap.com/market/search/?q={domain}"
LOOKUP_URL = "https://domainr.com/{domain}"


def tld_of(domain: str) -> str:
    """
    Return the TLD of a domain including the leading dot.

    Known multi-label suffixes such as '.co.uk' are returned whole.
    """
    domain = domain.lower().rstrip(".")
    for suffix in _MULTI_LABEL_SUFFIXES:
        if domain.endswith(suffix):
            return suffix
    if "." not in domain:
        return ""
    return "." + domain.rsplit(".", 1)[-1]


def is_wildcard_prone_tld(domain: str) -> bool:
    return tld_of(domain) in WILDCARD_PRONE_TLDS


def is_registrar_supported(domain: str) -> bool:
    return tld_of(domain) in REGISTRAR_TLDS


def registrar_search_url(domain: str) -> str:
    """Registration search link, or a neutral lookup when the registrar lacks the TLD."""
    if is_registrar_supported(domain):
        return REGISTRAR_SEARCH_URL.format(domain=quote(domain))
    return lookup_url(domain)


def marketplace_url(domain: str) -> str:
    if is_registrar_supported(domain):
        return REGISTRAR_MARKETPLACE_URL.format(domain=quote(domain))
    return MARKETPLACE_URL.format(domain=quote(domain))


def lookup_url(domain: str) -> str:
    return LOOKUP_URL.format(domain=quote(domain))


def build_link(domain: str, status: DomainStatus) -> str:
    """Derive the result link shown next to a domain from its final status."""
    if status == DomainStatus.REGISTERED:
        return domain if domain.startswith("http") else f"http://{domain}"
    if status == DomainStatus.AVAILABLE:
        return registrar_search_url(domain)
    if status == DomainStatus.PREMIUM:
        return marketplace_url(domain)
    return lookup_url(domain)
