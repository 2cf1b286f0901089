"""Tests for node snapshots, endpoint masks, sessions and failure reports."""

from __future__ import annotations

import pytest

from nodestats.collector.errors import NodeFetchError
from nodestats.models.endpoints import FETCH_ORDER, ConnectionMode, EndpointKind, EndpointMask
from nodestats.models.nodes import NodeInfo
from nodestats.models.session import FailureReport, NodeSession
from tests.conftest import make_fargate_node, make_node

# =====================================================================
# EndpointMask
# =====================================================================


class TestEndpointMask:
    def test_empty_mask_has_nothing_available(self) -> None:
        mask = EndpointMask()
        for kind in EndpointKind:
            assert mask.available(kind) is False
        assert len(mask) == 0

    def test_set_available_adds_membership(self) -> None:
        mask = EndpointMask()
        mask.set_available(EndpointKind.CADVISOR, True)
        assert mask.available(EndpointKind.CADVISOR) is True
        assert EndpointKind.CADVISOR in mask

    def test_set_unavailable_removes_membership(self) -> None:
        mask = EndpointMask([EndpointKind.STATS_SUMMARY, EndpointKind.CADVISOR])
        mask.set_available(EndpointKind.STATS_SUMMARY, False)
        assert mask.available(EndpointKind.STATS_SUMMARY) is False
        assert len(mask) == 1

    def test_unavailable_on_missing_entry_is_noop(self) -> None:
        mask = EndpointMask()
        mask.set_available(EndpointKind.CONTAINER, False)
        assert len(mask) == 0

    def test_kinds_follow_fetch_order(self) -> None:
        mask = EndpointMask([EndpointKind.CONTAINER, EndpointKind.STATS_SUMMARY, EndpointKind.CADVISOR])
        assert mask.kinds() == list(FETCH_ORDER)
        assert mask.kinds() == [EndpointKind.STATS_SUMMARY, EndpointKind.CADVISOR, EndpointKind.CONTAINER]

    def test_two_masks_are_independent(self) -> None:
        direct = EndpointMask()
        proxy = EndpointMask()
        direct.set_available(EndpointKind.STATS_SUMMARY, True)
        assert proxy.available(EndpointKind.STATS_SUMMARY) is False

    def test_frozen_mask_rejects_writes(self) -> None:
        frozen = EndpointMask([EndpointKind.STATS_SUMMARY]).freeze()
        with pytest.raises(TypeError):
            frozen.set_available(EndpointKind.CADVISOR, True)
        assert frozen.available(EndpointKind.STATS_SUMMARY) is True

    def test_freeze_copies(self) -> None:
        mask = EndpointMask([EndpointKind.STATS_SUMMARY])
        frozen = mask.freeze()
        mask.set_available(EndpointKind.CADVISOR, True)
        assert frozen.available(EndpointKind.CADVISOR) is False
        assert mask.frozen is False


# =====================================================================
# NodeInfo
# =====================================================================


class TestNodeInfo:
    def test_from_k8s_copies_fields(self) -> None:
        info = NodeInfo.from_k8s(make_node(name="node-a", internal_ip="10.1.2.3", port=10255))
        assert info.name == "node-a"
        assert info.kubelet_port == 10255
        assert info.provider_id.startswith("aws://")
        assert ("InternalIP", "10.1.2.3") in [(a.type, a.address) for a in info.addresses]

    def test_ready_requires_true_status(self) -> None:
        assert NodeInfo.from_k8s(make_node(ready=True)).ready is True
        assert NodeInfo.from_k8s(make_node(ready=False)).ready is False

    def test_missing_ready_condition_is_not_ready(self) -> None:
        info = NodeInfo.from_k8s(make_node(ready=None))
        assert info.condition("Ready") is None
        assert info.ready is False

    def test_fargate_label(self) -> None:
        assert NodeInfo.from_k8s(make_fargate_node()).is_fargate is True
        assert NodeInfo.from_k8s(make_node(labels={"eks.amazonaws.com/compute-type": "ec2"})).is_fargate is False

    def test_snapshot_is_hashable(self) -> None:
        info = NodeInfo.from_k8s(make_node(labels={"zone": "a", "eks.amazonaws.com/compute-type": "ec2"}))
        assert hash(info) == hash(NodeInfo.from_k8s(make_node(labels={"eks.amazonaws.com/compute-type": "ec2", "zone": "a"})))
        assert {info} == {info}
        assert info.label("zone") == "a"
        assert info.label("missing") is None

    def test_empty_provider_id(self) -> None:
        assert NodeInfo.from_k8s(make_node(provider_id=None)).provider_id == ""


# =====================================================================
# NodeSession / FailureReport
# =====================================================================


class TestNodeSession:
    def test_masks_are_frozen_on_construction(self) -> None:
        session = NodeSession(
            mode=ConnectionMode.PROXY,
            direct_mask=EndpointMask(),
            proxy_mask=EndpointMask([EndpointKind.STATS_SUMMARY]),
        )
        assert session.direct_mask.frozen is True
        assert session.proxy_mask.frozen is True
        with pytest.raises(TypeError):
            session.proxy_mask.set_available(EndpointKind.CADVISOR, True)


class TestFailureReport:
    def test_mapping_behaviour(self) -> None:
        err = NodeFetchError("proxy connect failed: boom")
        report = FailureReport({"node-a": err})
        assert report["node-a"] is err
        assert "node-b" not in report
        assert len(report) == 1
        assert report.as_strings() == {"node-a": "proxy connect failed: boom"}

    def test_fallbacks_are_not_failures(self) -> None:
        report = FailureReport({}, {"node-b": NodeFetchError("direct connect failed (will attempt proxy): x")})
        assert len(report) == 0
        assert not report
        assert "node-b" in report.fallbacks

    def test_fallbacks_copy_is_detached(self) -> None:
        report = FailureReport({}, {"node-b": NodeFetchError("x")})
        report.fallbacks.clear()  # type: ignore[attr-defined]
        assert "node-b" in report.fallbacks
