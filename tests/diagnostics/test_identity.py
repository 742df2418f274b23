"""Unit tests for hapnet.diagnostics.identity.EndpointRegistry."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from hapnet.diagnostics.identity import EndpointRegistry
from hapnet.network.frames import BROADCAST, LinkAddress


def _iface(endpoint_id: int, value: int) -> SimpleNamespace:
    return SimpleNamespace(endpoint_id=endpoint_id, address=LinkAddress(value))


class TestEndpointRegistry:
    """Tests for EndpointRegistry."""

    def test_populate_and_resolve(self) -> None:
        reg = EndpointRegistry()
        reg.populate([_iface(0, 1), _iface(0, 2), _iface(1, 3)], names={0: "HAP", 1: "GROUND_A"})
        assert reg.resolve(LinkAddress(1)) == 0
        assert reg.resolve(LinkAddress(2)) == 0
        assert reg.resolve(LinkAddress(3)) == 1
        assert reg.name_of(0) == "HAP"
        assert len(reg) == 3

    def test_unknown_address_resolves_to_none(self) -> None:
        reg = EndpointRegistry()
        reg.populate([_iface(0, 1)])
        assert reg.resolve(LinkAddress(42)) is None
        assert reg.resolve(None) is None

    def test_group_addresses_never_inserted(self) -> None:
        """Broadcast/multicast addresses have no single endpoint."""
        reg = EndpointRegistry()
        multicast = LinkAddress.parse("01:00:5e:00:00:01")
        reg.populate([
            SimpleNamespace(endpoint_id=5, address=BROADCAST),
            SimpleNamespace(endpoint_id=6, address=multicast),
        ])
        assert len(reg) == 0
        assert BROADCAST not in reg
        assert reg.resolve(BROADCAST) is None
        assert reg.resolve(multicast) is None

    def test_frozen_after_populate(self) -> None:
        reg = EndpointRegistry()
        reg.populate([_iface(0, 1)])
        assert reg.frozen
        with pytest.raises(RuntimeError):
            reg.register(LinkAddress(9), 9)
        with pytest.raises(RuntimeError):
            reg.populate([_iface(1, 2)])

    def test_lookup_before_populate_rejected(self) -> None:
        reg = EndpointRegistry()
        reg.register(LinkAddress(1), 0)
        with pytest.raises(RuntimeError):
            reg.resolve(LinkAddress(1))
        reg.freeze()
        assert reg.resolve(LinkAddress(1)) == 0

    def test_name_defaults_to_id(self) -> None:
        reg = EndpointRegistry()
        reg.populate([_iface(7, 1)])
        assert reg.name_of(7) == "7"
        assert reg.names == {}
