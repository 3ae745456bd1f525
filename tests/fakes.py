"""
Fake DoH endpoints for tests.

Routes httpx requests by provider host, queried name and record type to
canned dns-json envelopes, HTTP status codes or raised exceptions.
"""

import asyncio
from typing import Any, Callable, Optional, Union

import httpx

from doh_checker.config import RetryConfig, SystemConfig

PROVIDER_HOSTS = {
    "cloudflare-dns.com": "cloudflare",
    "dns.quad9.net": "quad9",
    "dns.google": "google",
}

NS, SOA, TXT, A, CNAME, AAAA = 2, 6, 16, 1, 5, 28

Answer = Union[dict, int, Callable[[httpx.Request], Any]]


def record(name: str, rtype: int, data: str, ttl: int = 300) -> dict:
    return {"name": f"{name}.", "type": rtype, "TTL": ttl, "data": data}


def envelope(
    status: int = 0,
    name: str = "example.com",
    qtype: int = NS,
    answer: Optional[list] = None,
    authority: Optional[list] = None,
    ad: bool = False,
) -> dict:
    data = {
        "Status": status,
        "TC": False,
        "RD": True,
        "RA": True,
        "AD": ad,
        "CD": False,
        "Question": [{"name": f"{name}.", "type": qtype}],
    }
    if answer:
        data["Answer"] = answer
    if authority:
        data["Authority"] = authority
    return data


def nxdomain(name: str = "example.com", qtype: int = NS) -> dict:
    return envelope(status=3, name=name, qtype=qtype)


def servfail(name: str = "example.com", qtype: int = NS) -> dict:
    return envelope(status=2, name=name, qtype=qtype)


def ns_answer(name: str, *hosts: str) -> dict:
    return envelope(
        name=name,
        qtype=NS,
        answer=[record(name, NS, f"{host}.") for host in hosts],
    )


def txt_answer(name: str, *texts: str, owner: Optional[str] = None) -> dict:
    return envelope(
        name=name,
        qtype=TXT,
        answer=[record(owner or name, TXT, f'"{text}"') for text in texts],
    )


def raise_timeout(request: httpx.Request) -> None:
    raise httpx.ReadTimeout("timed out", request=request)


def raise_connect_error(request: httpx.Request) -> None:
    raise httpx.ConnectError("connection refused", request=request)


class FakeDoh:
    """
    Canned DoH answers keyed by ``(provider, TYPE)`` for the target domain.

    Any other name is a wildcard probe and gets ``probe`` (NXDOMAIN unless
    set). Unlisted ``(provider, TYPE)`` pairs get ``default``.
    """

    def __init__(
        self,
        answers: Optional[dict[tuple[str, str], Answer]] = None,
        probe: Optional[Answer] = None,
        default: Optional[Answer] = None,
        delay: float = 0.0,
    ) -> None:
        self.answers = dict(answers or {})
        self.probe = probe
        self.default = default
        self.delay = delay
        self.requests: list[tuple[str, str, str]] = []
        self.targets: set[str] = set()

    def for_domain(self, domain: str) -> "FakeDoh":
        self.targets.add(domain)
        return self

    async def handler(self, request: httpx.Request) -> httpx.Response:
        provider = PROVIDER_HOSTS.get(request.url.host, request.url.host)
        name = request.url.params.get("name", "")
        rtype = request.url.params.get("type", "")
        self.requests.append((provider, name, rtype))

        if self.delay:
            await asyncio.sleep(self.delay)

        if self.targets and name not in self.targets:
            answer = self.probe
        else:
            answer = self.answers.get((provider, rtype), self.default)

        if answer is None:
            answer = nxdomain(name)
        if callable(answer):
            result = answer(request)
            if isinstance(result, httpx.Response):
                return result
            answer = result
        if isinstance(answer, int):
            return httpx.Response(answer, text="error")
        return httpx.Response(200, json=answer)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def count(self, rtype: Optional[str] = None, provider: Optional[str] = None) -> int:
        return sum(
            1 for p, _, t in self.requests
            if (rtype is None or t == rtype) and (provider is None or p == provider)
        )


def fast_config(**overrides: Any) -> SystemConfig:
    """SystemConfig with zero retry backoff for tests."""
    return SystemConfig(retry=RetryConfig(backoff_seconds=0.0), **overrides)
