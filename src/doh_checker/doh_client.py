"""
DoH client for sending single DNS questions to DoH providers.

This module provides an async DNS-over-HTTPS client that sends one question
to one provider and parses the response envelope. Two conventions are
supported:

- GET with ``?name=&type=`` and ``Accept: application/dns-json`` (JSON
  envelope, accepted by every default provider)
- POST with an RFC 8484 binary DNS message (``application/dns-message``)

Retries are not performed here; the orchestrator owns retry policy.
"""

import asyncio
import time
from typing import Any, Optional

import dns.exception
import dns.flags
import dns.message
import httpx

from .audit_logger import AuditLogger
from .enums import DnsRcode, LogLevel
from .exceptions import (
    DnsProtocolError,
    DohTimeoutError,
    MethodNotAllowedError,
    NetworkError,
)
from .models import DnsFlags, DnsQuestion, DnsResponse, ResourceRecord
from .providers import ALLOWED_METHODS, DohProvider

DNS_JSON = "application/dns-json"
DNS_MESSAGE = "application/dns-message"


def _parse_records(raw: Any, section: str) -> tuple[ResourceRecord, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise DnsProtocolError(
            code="invalid_envelope",
            message=f"DoH envelope section {section!r} is not a list",
        )

    records = []
    for item in raw:
        if not isinstance(item, dict):
            raise DnsProtocolError(
                code="invalid_envelope",
                message=f"DoH envelope section {section!r} contains a non-object record",
            )
        records.append(ResourceRecord(
            name=str(item.get("name", "")).lower().rstrip("."),
            type=int(item.get("type", 0)),
            ttl=int(item.get("TTL", 0)),
            data=str(item.get("data", "")),
        ))
    return tuple(records)


def parse_json_envelope(data: Any) -> DnsResponse:
    """
    Parse a dns-json envelope into a DnsResponse.

    Raises:
        DnsProtocolError: If the payload does not match the envelope shape
    """
    if not isinstance(data, dict) or not isinstance(data.get("Status"), int):
        raise DnsProtocolError(
            code="invalid_envelope",
            message="DoH response is not a dns-json envelope (missing integer 'Status')",
        )

    question = None
    raw_questions = data.get("Question") or []
    if isinstance(raw_questions, list) and raw_questions:
        first = raw_questions[0]
        if isinstance(first, dict) and "name" in first and "type" in first:
            try:
                question = DnsQuestion(str(first["name"]), int(first["type"]))
            except ValueError:
                question = None

    try:
        return DnsResponse(
            status=data["Status"],
            flags=DnsFlags(
                ad=bool(data.get("AD", False)),
                tc=bool(data.get("TC", False)),
                rd=bool(data.get("RD", False)),
                ra=bool(data.get("RA", False)),
                cd=bool(data.get("CD", False)),
            ),
            question=question,
            answer=_parse_records(data.get("Answer"), "Answer"),
            authority=_parse_records(data.get("Authority"), "Authority"),
            additional=_parse_records(data.get("Additional"), "Additional"),
            comment=data.get("Comment") if isinstance(data.get("Comment"), str) else None,
        )
    except (TypeError, ValueError) as e:
        raise DnsProtocolError(
            code="invalid_envelope",
            message=f"Malformed record in DoH envelope: {e}",
        )


def parse_wire_message(message: dns.message.Message) -> DnsResponse:
    """Convert a dnspython message (from a wire-format answer) into a DnsResponse."""

    def _records(rrsets) -> tuple[ResourceRecord, ...]:
        out = []
        for rrset in rrsets:
            for rdata in rrset:
                out.append(ResourceRecord(
                    name=rrset.name.to_text().lower().rstrip("."),
                    type=int(rrset.rdtype),
                    ttl=int(rrset.ttl),
                    data=rdata.to_text(),
                ))
        return tuple(out)

    question = None
    if message.question:
        q = message.question[0]
        try:
            question = DnsQuestion(q.name.to_text(), int(q.rdtype))
        except ValueError:
            question = None

    return DnsResponse(
        status=int(message.rcode()),
        flags=DnsFlags(
            ad=bool(message.flags & dns.flags.AD),
            tc=bool(message.flags & dns.flags.TC),
            rd=bool(message.flags & dns.flags.RD),
            ra=bool(message.flags & dns.flags.RA),
            cd=bool(message.flags & dns.flags.CD),
        ),
        question=question,
        answer=_records(message.answer),
        authority=_records(message.authority),
        additional=_records(message.additional),
    )


class DohClient:
    """
    Async DoH client with a hard per-call deadline.

    Every call is bounded by ``timeout_ms``; on expiry the in-flight request
    is cancelled and DohTimeoutError is raised.
    """

    def __init__(
        self,
        timeout_ms: int = 5000,
        simulation_mode: bool = False,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        user_agent: Optional[str] = None,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        """
        Initialize the DoH client.

        Args:
            timeout_ms: Default deadline for a single request in milliseconds
            simulation_mode: If True, no network requests are made and every
                question is answered with a synthetic NXDOMAIN
            transport: Optional httpx transport (used to inject mock transports)
            user_agent: Optional User-Agent header value
            logger: Optional audit logger
        """
        self._timeout_ms = timeout_ms
        self._simulation_mode = simulation_mode
        self._transport = transport
        self._user_agent = user_agent
        self._logger = logger
        self._client: Optional[httpx.AsyncClient] = None
        self.request_count = 0

    async def __aenter__(self) -> "DohClient":
        """Async context manager entry."""
        self._ensure_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {"User-Agent": self._user_agent} if self._user_agent else None
            self._client = httpx.AsyncClient(
                verify=True,
                timeout=httpx.Timeout(self._timeout_ms / 1000),
                follow_redirects=True,
                transport=self._transport,
                headers=headers,
            )
        return self._client

    @property
    def simulation_mode(self) -> bool:
        return self._simulation_mode

    async def send(
        self,
        provider: DohProvider,
        question: DnsQuestion,
        method: Optional[str] = None,
        headers: Optional[dict[str, str]] = None,
        timeout_ms: Optional[int] = None,
    ) -> DnsResponse:
        """
        Send one DNS question to one provider.

        Args:
            provider: The DoH provider to query
            question: The DNS question
            method: 'GET' or 'POST' (defaults to the provider's method)
            headers: Extra headers merged over the provider and method defaults
            timeout_ms: Deadline for this call (defaults to the client timeout)

        Returns:
            The parsed DnsResponse

        Raises:
            MethodNotAllowedError: If method is not GET or POST
            NetworkError: If the provider cannot be reached
            DohTimeoutError: If no response arrives within the deadline
            DnsProtocolError: On non-2xx HTTP status or unparseable body
        """
        method = (method or provider.method).upper()
        if method not in ALLOWED_METHODS:
            raise MethodNotAllowedError(
                code="method_not_allowed",
                message=f"Method {method} is not allowed. Use GET or POST.",
                details={"provider": provider.name},
            )

        if self._simulation_mode:
            return self._create_simulation_response(question)

        timeout_ms = timeout_ms if timeout_ms is not None else self._timeout_ms
        if method == "GET":
            merged_headers = {"Accept": DNS_JSON, **provider.headers}
        else:
            # POST always carries an RFC 8484 wire-format message
            merged_headers = {**provider.headers, "Accept": DNS_MESSAGE, "Content-Type": DNS_MESSAGE}
        merged_headers.update(headers or {})

        client = self._ensure_client()
        start_time = time.perf_counter()

        if method == "GET":
            request = client.build_request(
                "GET", provider.build_url(question), headers=merged_headers
            )
        else:
            query = dns.message.make_query(question.name, int(question.type))
            query.id = 0  # RFC 8484 section 4.1
            request = client.build_request(
                "POST", provider.base_url, headers=merged_headers, content=query.to_wire()
            )

        self.request_count += 1
        self._log(
            LogLevel.DEBUG,
            f"Querying {provider.name} for {question.name} {question.type.name}",
            {"provider": provider.name, "method": method, "url": str(request.url)},
        )

        try:
            response = await asyncio.wait_for(client.send(request), timeout_ms / 1000)
        except (asyncio.TimeoutError, httpx.TimeoutException):
            raise DohTimeoutError(
                code="timeout",
                message=f"DoH request to {provider.name} timed out after {timeout_ms}ms",
                details={"provider": provider.name, "question": question.name},
            )
        except httpx.TransportError as e:
            raise NetworkError(
                code="network_error",
                message=f"Connection error to {provider.name}: {e}",
                details={"provider": provider.name},
            )

        elapsed_ms = (time.perf_counter() - start_time) * 1000

        if not response.is_success:
            raise DnsProtocolError(
                code="http_error",
                message=f"DoH request failed with status {response.status_code} for {provider.name}",
                details={"provider": provider.name, "url": str(request.url)},
                http_status_code=response.status_code,
            )

        if method == "GET":
            try:
                payload = response.json()
            except ValueError as e:
                raise DnsProtocolError(
                    code="parse_error",
                    message=f"Failed to parse DoH JSON from {provider.name}: {e}",
                    http_status_code=response.status_code,
                )
            parsed = parse_json_envelope(payload)
        else:
            try:
                parsed = parse_wire_message(dns.message.from_wire(response.content))
            except dns.exception.DNSException as e:
                raise DnsProtocolError(
                    code="parse_error",
                    message=f"Failed to parse DNS message from {provider.name}: {e}",
                    http_status_code=response.status_code,
                )

        self._log(
            LogLevel.DEBUG,
            f"{provider.name} answered {question.name} {question.type.name}: {parsed.rcode_name}",
            {"provider": provider.name, "status": parsed.status, "duration_ms": round(elapsed_ms, 1)},
        )
        return parsed

    def _create_simulation_response(self, question: DnsQuestion) -> DnsResponse:
        """Answer a question without network access."""
        return DnsResponse(
            status=DnsRcode.NXDOMAIN,
            flags=DnsFlags(rd=True, ra=True),
            question=question,
            comment="simulation mode",
        )

    def _log(self, level: LogLevel, message: str, data: dict) -> None:
        if self._logger:
            self._logger.log(level, "DohClient", message, data)

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None
