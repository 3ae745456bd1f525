"""
Property-based tests for the batch result cache and TLD link builders.
"""

from hypothesis import given, settings
from hypothesis import strategies as st

from doh_checker.enums import DomainStatus
from doh_checker.models import DomainResult
from doh_checker.result_cache import ResultCache
from doh_checker.tld_registry import build_link, is_wildcard_prone_tld, tld_of


class FakeClock:
    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def result(domain: str, status: DomainStatus = DomainStatus.AVAILABLE) -> DomainResult:
    return DomainResult(domain=domain, status=status, link=build_link(domain, status))


class TestCacheKey:
    @given(
        base=st.text(alphabet="abcdefXYZ0123-", min_size=1, max_size=20),
        tlds=st.lists(st.sampled_from([".com", ".io", ".net", ".de"]), min_size=1, max_size=8),
    )
    @settings(max_examples=100)
    def test_order_and_duplicates_ignored(self, base: str, tlds: list[str]) -> None:
        key = ResultCache.make_key(base, tlds)
        assert key == ResultCache.make_key(base.upper(), list(reversed(tlds)) + tlds)
        assert key == f"{base.lower()}:{','.join(sorted(set(tlds)))}"


class TestExpiry:
    @given(age=st.floats(min_value=0.0, max_value=1000.0))
    @settings(max_examples=100)
    def test_fresh_only_within_ttl(self, age: float) -> None:
        clock = FakeClock(100.0)
        cache = ResultCache(ttl_seconds=300.0, clock=clock)
        cache.put("example:.com", [result("example.com")])

        clock.now += age

        assert (cache.get("example:.com") is not None) == (age < 300.0)

    def test_stale_entry_evicted_on_read(self) -> None:
        clock = FakeClock()
        cache = ResultCache(ttl_seconds=300.0, clock=clock)
        cache.put("example:.com", [result("example.com")])
        cache.put("other:.com", [result("other.com")])

        clock.now = 300.0

        assert cache.get("example:.com") is None
        assert "example:.com" not in cache
        assert len(cache) == 1

    def test_put_replaces_entry(self) -> None:
        clock = FakeClock()
        cache = ResultCache(clock=clock)
        cache.put("example:.com", [result("example.com")])
        clock.now = 10.0
        entry = cache.put("example:.com", [result("example.com", DomainStatus.REGISTERED)])

        assert len(cache) == 1
        assert cache.get("example:.com") is entry
        assert entry.created_at == 10.0
        assert entry.results[0].status == DomainStatus.REGISTERED

    def test_invalidate(self) -> None:
        cache = ResultCache()
        cache.put("a:.com", [])
        cache.put("b:.com", [])

        cache.invalidate("a:.com")
        assert "a:.com" not in cache
        assert "b:.com" in cache

        cache.invalidate()
        assert len(cache) == 0


class TestLinks:
    def test_links_by_status(self) -> None:
        assert build_link("example.com", DomainStatus.REGISTERED) == "http://example.com"
        assert build_link("example.com", DomainStatus.AVAILABLE) == (
            "https://www.namecheap.com/domains/registration/results/?domain=example.com"
        )
        assert build_link("example.zz", DomainStatus.AVAILABLE) == "https://domainr.com/example.zz"
        assert build_link("example.com", DomainStatus.PREMIUM).startswith("https://www.namecheap.com/market/")
        assert build_link("example.zz", DomainStatus.PREMIUM) == "https://sedo.com/search/?keyword=example.zz"
        assert build_link("example.com", DomainStatus.ERROR) == "https://domainr.com/example.com"

    def test_multi_label_suffix(self) -> None:
        assert tld_of("example.co.uk") == ".co.uk"
        assert tld_of("example.de") == ".de"
        assert is_wildcard_prone_tld("example.tk")
        assert not is_wildcard_prone_tld("example.com")
