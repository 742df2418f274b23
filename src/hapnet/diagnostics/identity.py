"""Link-layer address to logical endpoint mapping.

Packet trace events only carry link-layer addresses; diagnostics are
reported per logical endpoint. The registry is built once, after all
interfaces exist, and is read-only afterwards.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, Mapping, Optional

from hapnet.network.frames import LinkAddress

logger = logging.getLogger(__name__)


class EndpointRegistry:
    """Address -> endpoint id lookup, frozen after population."""

    def __init__(self) -> None:
        self._by_address: Dict[LinkAddress, int] = {}
        self._names: Dict[int, str] = {}
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def register(self, address: LinkAddress, endpoint_id: int, name: Optional[str] = None) -> bool:
        """Map ``address`` to ``endpoint_id``.

        Group addresses have no single endpoint and are never inserted;
        returns False for them.
        """
        if self._frozen:
            raise RuntimeError("EndpointRegistry is frozen; no inserts after populate()")
        if address.is_group:
            logger.debug("Skipping group address %s", address)
            return False
        self._by_address[address] = endpoint_id
        if name is not None:
            self._names[endpoint_id] = name
        return True

    def populate(self, interfaces: Iterable, names: Optional[Mapping[int, str]] = None) -> None:
        """Enumerate every interface once, then freeze.

        Each interface must expose ``address`` and ``endpoint_id``.
        """
        if self._frozen:
            raise RuntimeError("EndpointRegistry already populated")
        names = names or {}
        for iface in interfaces:
            self.register(iface.address, iface.endpoint_id, names.get(iface.endpoint_id))
        self.freeze()
        logger.info(
            "Endpoint registry: %d addresses, %d endpoints",
            len(self._by_address),
            len(set(self._by_address.values())),
        )

    def freeze(self) -> None:
        self._frozen = True

    def resolve(self, address: Optional[LinkAddress]) -> Optional[int]:
        """Endpoint id for ``address``; None for group, unknown or missing addresses."""
        if not self._frozen:
            raise RuntimeError("EndpointRegistry must be populated before lookups")
        if address is None or address.is_group:
            return None
        return self._by_address.get(address)

    def name_of(self, endpoint_id: int) -> str:
        return self._names.get(endpoint_id, str(endpoint_id))

    @property
    def names(self) -> Dict[int, str]:
        return dict(self._names)

    def __contains__(self, address: LinkAddress) -> bool:
        return address in self._by_address

    def __len__(self) -> int:
        return len(self._by_address)
