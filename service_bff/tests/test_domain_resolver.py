"""
Unit tests for the cached domain resolver.
"""

import asyncio
import gc

import httpx
import pytest

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_bff.app.caching import CacheStore
from service_bff.app.directory import DomainResolver, RegionInfo, ServiceDomain
from service_bff.app.ratelimit import RateLimitedDispatcher
from shared.errors import DomainNotFoundError, DomainResolutionError, ValidationError
from shared.metrics import MetricsCollector
from shared.test_helpers import FakeUpstream, TestDataFactory


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def upstream():
    fake = FakeUpstream()
    fake.set_directory("acct-1", TestDataFactory.directory_payload("acct-1"))
    return fake


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def metrics():
    return MetricsCollector("test")


@pytest.fixture
def resolver(upstream, clock, metrics):
    dispatcher = RateLimitedDispatcher(max_concurrent=5, min_interval=0, client=upstream.client())
    return DomainResolver(
        CacheStore(default_ttl=3600, clock=clock),
        dispatcher,
        "https://api.liveperson.net",
        ttl_seconds=3600,
        metrics=metrics,
    )


class GatedDirectory:
    """Holds the first directory call open until released."""

    def __init__(self, upstream: FakeUpstream):
        self.upstream = upstream
        self.release = asyncio.Event()
        self.fail_first = False

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        first = not self.upstream.directory_calls()
        response = self.upstream.handler(request)
        if first:
            await self.release.wait()
            if self.fail_first:
                raise httpx.ConnectError("connection reset", request=request)
        return response

    async def first_call_started(self):
        while not self.upstream.directory_calls():
            await asyncio.sleep(0)

    def resolver(self, clock) -> DomainResolver:
        client = httpx.AsyncClient(transport=httpx.MockTransport(self))
        dispatcher = RateLimitedDispatcher(min_interval=0, client=client)
        return DomainResolver(CacheStore(default_ttl=3600, clock=clock), dispatcher)


class TestResolve:
    """Test cases for DomainResolver.resolve."""

    @pytest.mark.asyncio
    async def test_resolves_direct_row(self, resolver, upstream):
        host = await resolver.resolve("acct-1", "msgHist")

        assert host == "va.msghist.liveperson.net"
        calls = upstream.directory_calls("acct-1")
        assert len(calls) == 1
        assert calls[0].path == "/api/account/acct-1/service/baseURI.json"
        assert calls[0].query == "version=1.0"

    @pytest.mark.asyncio
    async def test_accepts_enum_service_names(self, resolver):
        host = await resolver.resolve("acct-1", ServiceDomain.ACCOUNT_CONFIG_WRITE)
        assert host == "va.ac.liveperson.net"

    @pytest.mark.asyncio
    async def test_cache_hit_makes_no_upstream_call(self, resolver, upstream):
        await resolver.resolve("acct-1", "msgHist")
        await resolver.resolve("acct-1", "accountConfigReadOnly")
        await resolver.resolve("acct-1", "kb")

        assert len(upstream.directory_calls()) == 1

    @pytest.mark.asyncio
    async def test_expired_entry_triggers_one_refresh(self, resolver, upstream, clock):
        await resolver.resolve("acct-1", "msgHist")
        clock.now += 3600

        await resolver.resolve("acct-1", "msgHist")
        await resolver.resolve("acct-1", "msgHist")

        assert len(upstream.directory_calls()) == 2

    @pytest.mark.asyncio
    async def test_derived_endpoint_from_region(self, resolver):
        assert await resolver.resolve("acct-1", "kb") == "va.bc-kb.liveperson.net"
        assert await resolver.resolve("acct-1", "recommendation") == "z1.askmaven.liveperson.net"
        assert await resolver.resolve("acct-1", "aistudio") == "aistudio-p-us.liveperson.net"

    @pytest.mark.asyncio
    async def test_region_only_directory_derives_hosts(self, resolver, upstream):
        """A directory with just the region-bearing row still yields derived hosts."""
        upstream.set_directory("acct-1", [
            {"service": "asyncMessagingEnt", "account": "acct-1", "baseURI": "va123.example-upstream.net"}
        ])

        assert await resolver.resolve("acct-1", "kb") == "va.bc-kb.liveperson.net"
        assert await resolver.resolve("acct-1", "recommendation") == "z1.askmaven.liveperson.net"
        assert await resolver.resolve("acct-1", "aistudio") == "aistudio-p-us.liveperson.net"
        assert resolver.get_region("acct-1") == RegionInfo(region="va", zone="z1", geo="p-us")
        assert len(upstream.directory_calls()) == 1

    @pytest.mark.asyncio
    async def test_direct_row_beats_derived_template(self, resolver, upstream):
        upstream.set_directory("acct-2", TestDataFactory.directory_payload(
            "acct-2", extra=[("kb", "kb.custom.example.net")]
        ))

        assert await resolver.resolve("acct-2", "kb") == "kb.custom.example.net"

    @pytest.mark.asyncio
    async def test_unknown_service_raises_and_is_not_cached(self, resolver, upstream):
        with pytest.raises(DomainNotFoundError) as exc_info:
            await resolver.resolve("acct-1", "noSuchService")

        assert exc_info.value.service_name == "noSuchService"
        assert exc_info.value.status_code == 502

        # The cached directory lacks the name, so the next lookup goes upstream again.
        with pytest.raises(DomainNotFoundError):
            await resolver.resolve("acct-1", "noSuchService")
        assert len(upstream.directory_calls()) == 2

    @pytest.mark.asyncio
    async def test_newly_added_service_found_after_refresh(self, resolver, upstream):
        await resolver.resolve("acct-1", "msgHist")
        upstream.set_directory("acct-1", TestDataFactory.directory_payload(
            "acct-1", extra=[("faasUI", "va.faas.liveperson.net")]
        ))

        assert await resolver.resolve("acct-1", "faasUI") == "va.faas.liveperson.net"
        assert len(upstream.directory_calls()) == 2

    @pytest.mark.asyncio
    async def test_empty_tenant_rejected_before_network(self, resolver, upstream):
        with pytest.raises(ValidationError):
            await resolver.resolve("", "msgHist")

        with pytest.raises(ValidationError):
            await resolver.resolve("   ", "msgHist")

        assert upstream.requests == []

    @pytest.mark.asyncio
    async def test_tenant_without_region_row_has_no_derived_services(self, resolver, upstream):
        upstream.set_directory("acct-3", TestDataFactory.directory_payload("acct-3", region_host=None))

        with pytest.raises(DomainNotFoundError):
            await resolver.resolve("acct-3", "kb")
        assert resolver.get_region("acct-3") is None


class TestResolutionFailures:
    """Test cases for directory call failures."""

    @pytest.mark.asyncio
    async def test_error_status_raises_resolution_error(self, resolver, upstream):
        upstream.directory_status = 503

        with pytest.raises(DomainResolutionError) as exc_info:
            await resolver.resolve("acct-1", "msgHist")

        assert exc_info.value.details["upstream_status"] == 503
        assert resolver.cache.get("csds:directory:acct-1") is None

    @pytest.mark.asyncio
    async def test_unknown_tenant_is_resolution_error(self, resolver):
        with pytest.raises(DomainResolutionError):
            await resolver.resolve("acct-unknown", "msgHist")

    @pytest.mark.asyncio
    async def test_unparseable_payload(self, resolver, upstream):
        upstream.set_directory("acct-4", "not a directory")
        with pytest.raises(DomainResolutionError):
            await resolver.resolve("acct-4", "msgHist")

        upstream.set_directory("acct-5", {"baseURIs": [{"service": "msgHist"}]})
        with pytest.raises(DomainResolutionError):
            await resolver.resolve("acct-5", "msgHist")

    @pytest.mark.asyncio
    async def test_transport_error_is_chained(self):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        dispatcher = RateLimitedDispatcher(
            min_interval=0, client=httpx.AsyncClient(transport=httpx.MockTransport(handler))
        )
        resolver = DomainResolver(CacheStore(), dispatcher)

        with pytest.raises(DomainResolutionError) as exc_info:
            await resolver.resolve("acct-1", "msgHist")

        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    @pytest.mark.asyncio
    async def test_failed_refresh_is_retried_on_next_call(self, resolver, upstream):
        upstream.directory_status = 500
        with pytest.raises(DomainResolutionError):
            await resolver.resolve("acct-1", "msgHist")

        upstream.directory_status = 200
        assert await resolver.resolve("acct-1", "msgHist") == "va.msghist.liveperson.net"
        assert len(upstream.directory_calls()) == 2


class TestRefreshAndInvalidate:
    """Test cases for refresh, invalidate and region caching."""

    @pytest.mark.asyncio
    async def test_concurrent_misses_share_one_call(self, resolver, upstream):
        hosts = await asyncio.gather(*[resolver.resolve("acct-1", "msgHist") for _ in range(10)])

        assert set(hosts) == {"va.msghist.liveperson.net"}
        assert len(upstream.directory_calls()) == 1

    @pytest.mark.asyncio
    async def test_refresh_always_calls_upstream(self, resolver, upstream):
        await resolver.get_directory("acct-1")
        await resolver.refresh("acct-1")

        assert len(upstream.directory_calls()) == 2

    @pytest.mark.asyncio
    async def test_invalidate_forces_new_call(self, resolver, upstream):
        await resolver.resolve("acct-1", "msgHist")
        resolver.invalidate("acct-1")

        assert resolver.get_region("acct-1") is None
        await resolver.resolve("acct-1", "msgHist")
        assert len(upstream.directory_calls()) == 2

    def test_invalidate_unknown_tenant_is_noop(self, resolver):
        resolver.invalidate("never-seen")
        resolver.invalidate("never-seen")

    @pytest.mark.asyncio
    async def test_region_is_cached_with_directory(self, resolver):
        directory = await resolver.get_directory("acct-1")

        assert directory.region == RegionInfo(region="va", zone="z1", geo="p-us")
        assert resolver.get_region("acct-1") == directory.region

    @pytest.mark.asyncio
    async def test_cache_metrics_recorded(self, resolver, metrics):
        await resolver.resolve("acct-1", "msgHist")
        await resolver.resolve("acct-1", "msgHist")

        registry = metrics.registry
        assert registry.get_sample_value("directory_cache_total", {"result": "miss"}) == 1
        assert registry.get_sample_value("directory_cache_total", {"result": "hit"}) == 1
        assert registry.get_sample_value("directory_resolutions_total", {"outcome": "success"}) == 1

    @pytest.mark.asyncio
    async def test_concurrent_lookups_after_expiry_share_one_call(self, resolver, upstream, clock):
        await resolver.resolve("acct-1", "msgHist")
        clock.now += 3600

        names = ["msgHist", "kb", "accountConfigReadOnly", "aistudio", "msgHist"]
        hosts = await asyncio.gather(*[resolver.resolve("acct-1", name) for name in names])

        assert hosts[0] == "va.msghist.liveperson.net"
        assert hosts[1] == "va.bc-kb.liveperson.net"
        assert len(upstream.directory_calls()) == 2

    @pytest.mark.asyncio
    async def test_concurrent_lookups_after_invalidate_share_one_call(self, resolver, upstream):
        await resolver.resolve("acct-1", "msgHist")
        resolver.invalidate("acct-1")

        names = ["msgHist", "kb", "accountConfigReadWrite", "recommendation"]
        await asyncio.gather(*[resolver.resolve("acct-1", name) for name in names])

        assert len(upstream.directory_calls()) == 2

    @pytest.mark.asyncio
    async def test_invalidate_during_load_discards_loaded_directory(self, upstream, clock):
        """A load that started before invalidate() must not repopulate the cache."""
        gate = GatedDirectory(upstream)
        resolver = gate.resolver(clock)

        pending = asyncio.ensure_future(resolver.resolve("acct-1", "msgHist"))
        await gate.first_call_started()

        upstream.set_directory("acct-1", [
            {"service": "msgHist", "account": "acct-1", "baseURI": "new.msghist.liveperson.net"}
        ])
        resolver.invalidate("acct-1")
        gate.release.set()

        assert await pending == "va.msghist.liveperson.net"
        assert resolver.get_region("acct-1") is None

        assert await resolver.resolve("acct-1", "msgHist") == "new.msghist.liveperson.net"
        assert len(upstream.directory_calls()) == 2

    @pytest.mark.asyncio
    async def test_failed_load_with_cancelled_waiters_is_not_reported_unretrieved(self, upstream, clock):
        gate = GatedDirectory(upstream)
        gate.fail_first = True
        resolver = gate.resolver(clock)

        loop = asyncio.get_running_loop()
        reported = []
        previous_handler = loop.get_exception_handler()
        loop.set_exception_handler(lambda _loop, context: reported.append(context))
        try:
            waiter = asyncio.ensure_future(resolver.resolve("acct-1", "msgHist"))
            await gate.first_call_started()
            load = resolver._inflight["acct-1"]

            waiter.cancel()
            with pytest.raises(asyncio.CancelledError):
                await waiter
            gate.release.set()
            await asyncio.wait([load])

            assert isinstance(load.exception(), DomainResolutionError)
            assert "acct-1" not in resolver._inflight

            del waiter, load
            gc.collect()
            assert reported == []
        finally:
            loop.set_exception_handler(previous_handler)

        assert await resolver.resolve("acct-1", "msgHist") == "va.msghist.liveperson.net"
