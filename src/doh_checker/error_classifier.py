"""
Error classification for DoH provider failures.

Maps raw failures (transport exceptions, HTTP status codes and DNS-level
SERVFAIL/REFUSED answers) onto the Network / Timeout / DnsError / Unknown
taxonomy used by the orchestrator and the decision engine.
"""

import asyncio
from typing import Iterable, Optional

import httpx

from .enums import DnsRcode, ErrorCategory
from .exceptions import (
    DnsProtocolError,
    DohTimeoutError,
    NetworkError,
)
from .models import ClassifiedError, DnsResponse

# HTTP statuses treated as transient provider failures
TRANSIENT_HTTP_STATUSES = frozenset({500, 502, 503, 504})


def classify_error(
    error: BaseException,
    retryable_http_statuses: Iterable[int] = TRANSIENT_HTTP_STATUSES,
) -> ClassifiedError:
    """
    Classify an exception raised while querying a provider.

    Timeouts weakly suggest that the target domain exists (slow or complex
    zones); network failures say nothing about the target domain.

    Args:
        error: The exception raised by the transport
        retryable_http_statuses: HTTP statuses that may be retried

    Returns:
        ClassifiedError describing the failure
    """
    message = getattr(error, "message", None) or str(error) or type(error).__name__

    if isinstance(error, (DohTimeoutError, httpx.TimeoutException, asyncio.TimeoutError)):
        return ClassifiedError(
            category=ErrorCategory.TIMEOUT,
            message=message,
            suggests_domain_exists=True,
            retryable=True,
        )

    if isinstance(error, DnsProtocolError):
        status = error.http_status_code
        return ClassifiedError(
            category=ErrorCategory.DNS_ERROR,
            message=message,
            suggests_domain_exists=False,
            http_status_code=status,
            retryable=status is not None and status in set(retryable_http_statuses),
        )

    if isinstance(error, (NetworkError, httpx.TransportError, OSError)):
        return ClassifiedError(
            category=ErrorCategory.NETWORK,
            message=message,
            suggests_domain_exists=False,
        )

    return ClassifiedError(
        category=ErrorCategory.UNKNOWN,
        message=f"{type(error).__name__}: {message}",
        suggests_domain_exists=False,
    )


def classify_rcode(response: DnsResponse) -> Optional[ClassifiedError]:
    """
    Classify a DNS-level failure carried in an otherwise valid response.

    SERVFAIL correlates with registered-but-misconfigured domains, so it is
    flagged as suggesting existence. NOERROR and NXDOMAIN are answers, not
    errors, and yield None.
    """
    if response.status in (DnsRcode.NOERROR, DnsRcode.NXDOMAIN):
        return None

    return ClassifiedError(
        category=ErrorCategory.DNS_ERROR,
        message=f"DNS error {response.rcode_name} ({response.status})",
        suggests_domain_exists=response.status == DnsRcode.SERVFAIL,
    )
