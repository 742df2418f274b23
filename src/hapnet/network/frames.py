"""Link-layer addresses and frames seen by interface trace events."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


class FrameHeaderError(Exception):
    """Raised when a frame's link-layer header cannot be parsed."""


@dataclass(frozen=True, order=True)
class LinkAddress:
    """48-bit IEEE 802 link-layer address."""

    value: int

    def __post_init__(self) -> None:
        if not 0 <= self.value < (1 << 48):
            raise ValueError(f"Link address out of range: {self.value:#x}")

    @classmethod
    def parse(cls, text: str) -> "LinkAddress":
        """Parse ``"aa:bb:cc:dd:ee:ff"`` (``-`` separators also accepted)."""
        parts = text.replace("-", ":").split(":")
        if len(parts) != 6:
            raise ValueError(f"Malformed link address: {text!r}")
        try:
            octets = [int(p, 16) for p in parts]
        except ValueError as e:
            raise ValueError(f"Malformed link address: {text!r}") from e
        if any(not 0 <= o <= 0xFF for o in octets):
            raise ValueError(f"Malformed link address: {text!r}")
        value = 0
        for o in octets:
            value = (value << 8) | o
        return cls(value)

    @classmethod
    def broadcast(cls) -> "LinkAddress":
        return cls((1 << 48) - 1)

    @property
    def octets(self) -> tuple:
        return tuple((self.value >> (8 * i)) & 0xFF for i in reversed(range(6)))

    @property
    def is_group(self) -> bool:
        """Group (multicast or broadcast) bit: LSB of the first octet."""
        return bool(self.octets[0] & 0x01)

    @property
    def is_broadcast(self) -> bool:
        return self.value == (1 << 48) - 1

    def __str__(self) -> str:
        return ":".join(f"{o:02x}" for o in self.octets)


BROADCAST = LinkAddress.broadcast()


class AddressAllocator:
    """Hands out sequential unicast addresses (00:00:00:00:00:01, ...)."""

    def __init__(self, start: int = 1):
        self._next = start

    def allocate(self) -> LinkAddress:
        addr = LinkAddress(self._next)
        self._next += 1
        return addr


@dataclass(frozen=True)
class FrameHeader:
    source: LinkAddress
    destination: LinkAddress


@dataclass(frozen=True)
class Frame:
    """A frame as observed at the physical layer.

    ``header`` is None when the header could not be recovered (for instance
    a truncated reception); ``peek_header`` then raises FrameHeaderError.
    """

    header: Optional[FrameHeader]
    size_bytes: int = 0
    packet_id: int = 0
    flow_id: int = 0
    created_at: float = 0.0

    def peek_header(self) -> FrameHeader:
        if self.header is None:
            raise FrameHeaderError("frame header not available")
        return self.header
