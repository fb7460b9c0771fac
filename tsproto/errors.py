"""Errors raised while parsing packets, and a hex formatting helper."""

from __future__ import annotations


def hex_slice(data: bytes) -> str:
    """Format bytes as ``Hex[01 ab ff]``."""
    return "Hex[" + " ".join(f"{b:02x}" for b in data) + "]"


def _type_name(value: object) -> str:
    return str(getattr(value, "name", value))


class PacketError(ValueError):
    """Base class for errors while handling packets."""


class InvalidInitStep(PacketError):
    def __init__(self, step: int) -> None:
        super().__init__(f"Invalid init step {step}")
        self.step = step


class InvalidCodec(PacketError):
    def __init__(self, codec: int) -> None:
        super().__init__(f"Invalid audio codec {codec}")
        self.codec = codec


class PacketContentTooShort(PacketError):
    def __init__(self, length: int) -> None:
        super().__init__(f"Packet content is too short (length {length})")
        self.length = length


class PacketTooShort(PacketError):
    def __init__(self, length: int) -> None:
        super().__init__(f"Packet is too short (length {length})")
        self.length = length


class ParseCommandError(PacketError):
    def __init__(self, reason: str) -> None:
        super().__init__(f"Cannot parse command ({reason})")
        self.reason = reason


class UnknownPacketType(PacketError):
    def __init__(self, value: int) -> None:
        super().__init__(f"Got a packet with unknown type ({value})")
        self.value = value


class WrongDirectionError(PacketError):
    def __init__(self) -> None:
        super().__init__("Tried to parse a packet from the wrong direction")


class WrongInitMac(PacketError):
    def __init__(self, mac: bytes) -> None:
        super().__init__(f"Wrong mac, expected TS3INIT1 but got {list(mac)}")
        self.mac = bytes(mac)


class WrongPacketTypeError(PacketError):
    def __init__(self, packet_type: object) -> None:
        super().__init__(f"Wrong packet type ({_type_name(packet_type)})")
        self.packet_type = packet_type