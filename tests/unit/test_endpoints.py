"""Tests for endpoint URL builders and artifact naming."""

from __future__ import annotations

from hypothesis import given
from hypothesis import strategies as st

from nodestats.collector.endpoints import DirectEndpoints, ProxyEndpoints, SourceName, url_for
from nodestats.models.endpoints import EndpointKind


class TestDirectEndpoints:
    def test_urls(self) -> None:
        d = DirectEndpoints("10.0.0.1", 10250)
        assert d.stats_summary() == "https://10.0.0.1:10250/stats/summary"
        assert d.stats_container() == "https://10.0.0.1:10250/stats/container/"
        assert d.cadvisor() == "https://10.0.0.1:10250/metrics/cadvisor"

    def test_ipv6_is_bracketed(self) -> None:
        assert DirectEndpoints("fd00::1", 10250).stats_summary() == "https://[fd00::1]:10250/stats/summary"


class TestProxyEndpoints:
    def test_urls(self) -> None:
        p = ProxyEndpoints("https://api.example:6443", "node-a")
        assert p.stats_summary() == "https://api.example:6443/api/v1/nodes/node-a/proxy/stats/summary"
        assert p.stats_container() == "https://api.example:6443/api/v1/nodes/node-a/proxy/stats/container/"
        assert p.cadvisor() == "https://api.example:6443/api/v1/nodes/node-a/proxy/metrics/cadvisor"

    def test_trailing_slash_on_host_url(self) -> None:
        p = ProxyEndpoints("https://api.example/", "node-a")
        assert p.stats_summary() == "https://api.example/api/v1/nodes/node-a/proxy/stats/summary"


class TestUrlFor:
    def test_maps_each_kind(self) -> None:
        d = DirectEndpoints("10.0.0.1", 10250)
        assert url_for(d, EndpointKind.STATS_SUMMARY) == d.stats_summary()
        assert url_for(d, EndpointKind.CONTAINER) == d.stats_container()
        assert url_for(d, EndpointKind.CADVISOR) == d.cadvisor()


_node_names = st.from_regex(r"[a-z0-9]([a-z0-9.-]{0,30}[a-z0-9])?", fullmatch=True)
_ipv4 = st.ip_addresses(v=4).map(str)


class TestIdempotence:
    @given(ip=_ipv4, port=st.integers(min_value=1, max_value=65535))
    def test_direct_builders_are_idempotent(self, ip: str, port: int) -> None:
        first = DirectEndpoints(ip, port)
        second = DirectEndpoints(ip, port)
        for kind in EndpointKind:
            assert url_for(first, kind) == url_for(second, kind) == url_for(first, kind)

    @given(name=_node_names)
    def test_proxy_builders_are_idempotent(self, name: str) -> None:
        first = ProxyEndpoints("https://api.example", name)
        second = ProxyEndpoints("https://api.example", name)
        for kind in EndpointKind:
            assert url_for(first, kind) == url_for(second, kind)
            assert f"/nodes/{name}/proxy/" in url_for(first, kind)


class TestSourceName:
    def test_names(self) -> None:
        s = SourceName(prefix="stats", node_name="node-a")
        assert s.summary() == "stats-summary-node-a"
        assert s.container() == "stats-container-node-a"
        assert s.cadvisor_metrics() == "stats-cadvisor_metrics-node-a"

    def test_for_kind(self) -> None:
        s = SourceName(prefix="baseline", node_name="n1")
        assert s.for_kind(EndpointKind.STATS_SUMMARY) == "baseline-summary-n1"
        assert s.for_kind(EndpointKind.CONTAINER) == "baseline-container-n1"
        assert s.for_kind(EndpointKind.CADVISOR) == "baseline-cadvisor_metrics-n1"
