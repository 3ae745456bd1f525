"""
Property-based tests for the DoH client.

Covers GET URL encoding, dns-json envelope parsing, HTTP and transport
failure mapping, the hard per-call deadline, method validation, the RFC 8484
POST wire format and simulation mode.
"""

import asyncio
import string

import dns.message
import dns.rcode
import httpx
import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from doh_checker.doh_client import DohClient, parse_json_envelope
from doh_checker.enums import DnsRcode, RecordType
from doh_checker.exceptions import (
    DnsProtocolError,
    DohTimeoutError,
    MethodNotAllowedError,
    NetworkError,
)
from doh_checker.models import DnsQuestion
from doh_checker.providers import DohProvider

from fakes import envelope, ns_answer, nxdomain, record


PROVIDER = DohProvider(name="cloudflare", base_url="https://cloudflare-dns.com/dns-query")


def domain_strategy() -> st.SearchStrategy[str]:
    label = st.text(
        alphabet=string.ascii_lowercase + string.digits,
        min_size=1,
        max_size=20,
    )
    tld = st.sampled_from(["com", "io", "net", "org", "de"])
    return st.builds(lambda l, t: f"{l}.{t}", label, tld)


def _send(transport, question, **kwargs):
    async def run():
        async with DohClient(transport=transport, **kwargs) as client:
            return await client.send(PROVIDER, question)
    return asyncio.run(run())


class TestGetRequests:
    """GET requests carry the question as query parameters."""

    @given(domain=domain_strategy(), rtype=st.sampled_from(list(RecordType)))
    @settings(max_examples=50)
    def test_question_encoded_in_query_string(self, domain: str, rtype: RecordType) -> None:
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=nxdomain(domain, int(rtype)))

        response = _send(httpx.MockTransport(handler), DnsQuestion(domain, rtype))

        assert len(seen) == 1
        request = seen[0]
        assert request.method == "GET"
        assert request.url.params["name"] == domain
        assert request.url.params["type"] == rtype.name
        assert request.headers["accept"] == "application/dns-json"
        assert response.status == DnsRcode.NXDOMAIN

    def test_answer_records_parsed(self) -> None:
        transport = httpx.MockTransport(
            lambda r: httpx.Response(200, json=ns_answer("example.com", "a.iana-servers.net"))
        )
        response = _send(transport, DnsQuestion("Example.COM.", RecordType.NS))

        assert response.is_noerror
        assert response.question == DnsQuestion("example.com", RecordType.NS)
        assert [r.data for r in response.records(RecordType.NS)] == ["a.iana-servers.net."]
        assert response.answer[0].name == "example.com"

    def test_provider_headers_override_defaults(self) -> None:
        seen = []
        provider = DohProvider(
            name="custom",
            base_url="https://doh.example/dns-query",
            headers={"Accept": "application/json", "X-Token": "t"},
        )

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=nxdomain())

        async def run():
            async with DohClient(transport=httpx.MockTransport(handler)) as client:
                await client.send(provider, DnsQuestion("example.com", RecordType.NS))

        asyncio.run(run())
        assert seen[0].headers["accept"] == "application/json"
        assert seen[0].headers["x-token"] == "t"


class TestEnvelopeParsing:
    """The dns-json envelope is parsed strictly."""

    def test_flags_and_sections(self) -> None:
        data = envelope(
            status=0,
            answer=[record("example.com", 2, "ns1.example.net.")],
            authority=[record("example.com", 6, "ns1 hostmaster 1 2 3 4 5")],
            ad=True,
        )
        response = parse_json_envelope(data)

        assert response.flags.ad is True
        assert response.flags.rd is True
        assert len(response.answer) == 1
        assert len(response.authority) == 1
        assert response.records(2, 6, sections="answer,authority")

    @pytest.mark.parametrize("payload", [
        [],
        {"Answer": []},
        {"Status": "0"},
        {"Status": 0, "Answer": {"name": "x"}},
        {"Status": 0, "Answer": ["not-a-record"]},
    ])
    def test_malformed_envelope_rejected(self, payload) -> None:
        with pytest.raises(DnsProtocolError):
            parse_json_envelope(payload)

    def test_non_json_body_is_protocol_error(self) -> None:
        transport = httpx.MockTransport(lambda r: httpx.Response(200, text="<html>"))
        with pytest.raises(DnsProtocolError) as exc_info:
            _send(transport, DnsQuestion("example.com", RecordType.NS))
        assert exc_info.value.code == "parse_error"


class TestFailureMapping:
    """Transport failures map onto the error taxonomy."""

    @given(status=st.integers(min_value=300, max_value=599))
    @settings(max_examples=30)
    def test_non_2xx_is_protocol_error_with_status(self, status: int) -> None:
        transport = httpx.MockTransport(lambda r: httpx.Response(status, text="nope"))
        with pytest.raises(DnsProtocolError) as exc_info:
            _send(transport, DnsQuestion("example.com", RecordType.NS))
        assert exc_info.value.http_status_code == status

    def test_connect_error_is_network_error(self) -> None:
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(NetworkError):
            _send(httpx.MockTransport(handler), DnsQuestion("example.com", RecordType.NS))

    def test_httpx_timeout_is_timeout(self) -> None:
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(DohTimeoutError):
            _send(httpx.MockTransport(handler), DnsQuestion("example.com", RecordType.NS))

    def test_deadline_cancels_slow_request(self) -> None:
        cancelled = []

        async def handler(request):
            try:
                await asyncio.sleep(5)
            except asyncio.CancelledError:
                cancelled.append(True)
                raise
            return httpx.Response(200, json=nxdomain())

        with pytest.raises(DohTimeoutError):
            _send(
                httpx.MockTransport(handler),
                DnsQuestion("example.com", RecordType.NS),
                timeout_ms=50,
            )
        assert cancelled == [True]


class TestMethodValidation:
    """Only GET and POST are accepted."""

    @given(method=st.sampled_from(["PUT", "DELETE", "PATCH", "HEAD", "OPTIONS", "FETCH"]))
    @settings(max_examples=20)
    def test_other_methods_fail_fast(self, method: str) -> None:
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json=nxdomain())

        async def run():
            async with DohClient(transport=httpx.MockTransport(handler)) as client:
                await client.send(PROVIDER, DnsQuestion("example.com", RecordType.NS), method=method)

        with pytest.raises(MethodNotAllowedError):
            asyncio.run(run())
        assert calls == []


class TestPostWireFormat:
    """POST carries an RFC 8484 binary DNS message."""

    def test_post_round_trip(self) -> None:
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            query = dns.message.from_wire(request.content)
            reply = dns.message.make_response(query)
            reply.set_rcode(dns.rcode.NXDOMAIN)
            return httpx.Response(
                200,
                content=reply.to_wire(),
                headers={"Content-Type": "application/dns-message"},
            )

        async def run():
            async with DohClient(transport=httpx.MockTransport(handler)) as client:
                return await client.send(
                    PROVIDER, DnsQuestion("example.com", RecordType.NS), method="POST"
                )

        response = asyncio.run(run())

        request = seen[0]
        assert request.method == "POST"
        assert request.headers["content-type"] == "application/dns-message"
        assert str(request.url) == PROVIDER.base_url
        query = dns.message.from_wire(request.content)
        assert query.id == 0
        assert query.question[0].name.to_text() == "example.com."
        assert response.status == DnsRcode.NXDOMAIN
        assert response.question == DnsQuestion("example.com", RecordType.NS)

    def test_provider_headers_sent_with_wire_content_type(self) -> None:
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            reply = dns.message.make_response(dns.message.from_wire(request.content))
            return httpx.Response(200, content=reply.to_wire())

        provider = DohProvider(
            name="custom",
            base_url="https://doh.example/dns-query",
            headers={"Accept": "application/dns-json", "X-Client": "doh-checker"},
            method="POST",
        )

        async def run():
            async with DohClient(transport=httpx.MockTransport(handler)) as client:
                await client.send(provider, DnsQuestion("example.com", RecordType.NS))

        asyncio.run(run())

        headers = seen[0].headers
        assert headers["x-client"] == "doh-checker"
        assert headers["accept"] == "application/dns-message"
        assert headers["content-type"] == "application/dns-message"

    def test_garbage_wire_body_is_protocol_error(self) -> None:
        transport = httpx.MockTransport(lambda r: httpx.Response(200, content=b"\x00\x01"))

        async def run():
            async with DohClient(transport=transport) as client:
                await client.send(PROVIDER, DnsQuestion("example.com", RecordType.NS), method="POST")

        with pytest.raises(DnsProtocolError):
            asyncio.run(run())


class TestSimulationMode:
    """Simulation mode never touches the network."""

    @given(domain=domain_strategy())
    @settings(max_examples=50)
    def test_no_requests_and_nxdomain(self, domain: str) -> None:
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(500)

        response = _send(
            httpx.MockTransport(handler),
            DnsQuestion(domain, RecordType.NS),
            simulation_mode=True,
        )

        assert calls == []
        assert response.is_nxdomain
        assert response.question.name == domain
