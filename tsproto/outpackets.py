"""Building outgoing packets: commands, init handshakes, acks and audio."""

from __future__ import annotations

import base64
from dataclasses import dataclass
from typing import Optional, Union

from .packets import (
    INIT_MAC,
    AudioC2S,
    AudioC2SWhisper,
    AudioC2SWhisperNew,
    AudioData,
    AudioS2C,
    AudioS2CWhisper,
    Direction,
    Flags,
    InHeader,
    InPacket,
    PacketType,
)

_INIT_PACKET_ID = 0x65

_ESCAPES = {
    0x0B: b"\\v",
    0x0C: b"\\f",
    ord("\\"): b"\\\\",
    ord("\t"): b"\\t",
    ord("\r"): b"\\r",
    ord("\n"): b"\\n",
    ord("|"): b"\\p",
    ord(" "): b"\\s",
    ord("/"): b"\\/",
}


def _escape(value: bytes) -> bytes:
    return b"".join(_ESCAPES.get(b, bytes((b,))) for b in value)


def _u8(value: int) -> bytes:
    return value.to_bytes(1, "big")


def _u16(value: int) -> bytes:
    return value.to_bytes(2, "big")


def _u32(value: int) -> bytes:
    return value.to_bytes(4, "big")


def _u64(value: int) -> bytes:
    return value.to_bytes(8, "big")


def _fixed(name: str, value: bytes, length: int) -> bytes:
    value = bytes(value)
    if len(value) != length:
        raise ValueError(f"{name} must be {length} bytes long, got {len(value)}")
    return value


class OutPacket:
    """An outgoing packet: header bytes followed by the content."""

    __slots__ = ("direction", "data")

    def __init__(self, direction: Direction, flags: Flags, packet_type: PacketType) -> None:
        self.direction = direction
        self.data = bytearray(direction.header_len)
        self.flags = flags
        self.packet_type = packet_type

    @classmethod
    def from_data(cls, direction: Direction, data: bytes) -> "OutPacket":
        """Wrap already built packet bytes."""
        packet = cls.__new__(cls)
        packet.direction = direction
        packet.data = bytearray(data)
        return packet

    @classmethod
    def with_header(
        cls,
        mac: bytes,
        packet_id: int,
        client_id: Optional[int],
        flags: Flags,
        packet_type: PacketType,
    ) -> "OutPacket":
        """Create a packet with a filled header; a client id makes it client-to-server."""
        direction = Direction.S2C if client_id is None else Direction.C2S
        packet = cls(direction, flags, packet_type)
        packet.mac = mac
        packet.packet_id = packet_id
        if client_id is not None:
            packet.client_id = client_id
        return packet

    @property
    def _offset(self) -> int:
        return self.direction.header_len

    @property
    def content(self) -> bytes:
        return bytes(self.data[self._offset :])

    @property
    def header_bytes(self) -> bytes:
        return bytes(self.data[: self._offset])

    @property
    def header(self) -> InHeader:
        return InHeader(self.direction, self.header_bytes)

    @property
    def packet(self) -> InPacket:
        return InPacket(self.direction, bytes(self.data))

    @property
    def mac(self) -> bytes:
        return bytes(self.data[:8])

    @mac.setter
    def mac(self, value: bytes) -> None:
        self.data[:8] = _fixed("mac", value, 8)

    @property
    def packet_id(self) -> int:
        return int.from_bytes(self.data[8:10], "big")

    @packet_id.setter
    def packet_id(self, value: int) -> None:
        self.data[8:10] = _u16(value)

    @property
    def client_id(self) -> Optional[int]:
        if self.direction is Direction.S2C:
            return None
        return int.from_bytes(self.data[10:12], "big")

    @client_id.setter
    def client_id(self, value: int) -> None:
        if self.direction is not Direction.C2S:
            raise ValueError("Client id is only valid for client to server packets")
        self.data[10:12] = _u16(value)

    @property
    def flags(self) -> Flags:
        return Flags(self.data[self.direction.type_offset] & 0xF0)

    @flags.setter
    def flags(self, value: Flags) -> None:
        off = self.direction.type_offset
        self.data[off] = (self.data[off] & 0x0F) | (int(value) & 0xF0)

    @property
    def packet_type(self) -> PacketType:
        return PacketType(self.data[self.direction.type_offset] & 0x0F)

    @packet_type.setter
    def packet_type(self, value: PacketType) -> None:
        off = self.direction.type_offset
        self.data[off] = (self.data[off] & 0xF0) | (int(value) & 0x0F)

    def __bytes__(self) -> bytes:
        return bytes(self.data)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, OutPacket):
            return NotImplemented
        return self.direction is other.direction and self.data == other.data

    def __repr__(self) -> str:
        return f"OutPacket({self.direction.name}, {bytes(self.data)!r})"


@dataclass
class OutUdpPacket:
    """A packet tagged with the generation of its packet id."""

    generation_id: int
    data: OutPacket

    @property
    def packet_id(self) -> int:
        if self.packet_type == PacketType.INIT:
            content = self.data.content
            return content[0] if self.data.direction is Direction.S2C else content[4]
        return self.data.packet_id

    @property
    def packet_type(self) -> PacketType:
        return self.data.packet_type


def _display(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class OutCommand:
    """Incrementally builds a command packet with escaped arguments."""

    __slots__ = ("packet",)

    def __init__(
        self, direction: Direction, flags: Flags, packet_type: PacketType, name: str
    ) -> None:
        self.packet = OutPacket(direction, Flags(0), packet_type)
        self.packet.flags = flags
        self.packet.data += name.encode("utf-8")

    def _separate(self) -> None:
        content = self.packet.content
        if content and content[-1] != ord("|"):
            self.packet.data.append(ord(" "))

    def write_bin_arg(self, name: str, value: bytes) -> None:
        """Append a binary argument; the value is still escaped."""
        self._separate()
        self.packet.data += name.encode("utf-8")
        if value:
            self.packet.data.append(ord("="))
            self.packet.data += _escape(bytes(value))

    def write_arg(self, name: str, value: object) -> None:
        """Append an argument, formatting and escaping its value."""
        self._separate()
        self.packet.data += name.encode("utf-8")
        text = _display(value)
        if text:
            self.packet.data.append(ord("="))
            self.packet.data += _escape(text.encode("utf-8"))

    def start_new_part(self) -> None:
        """Append a pipe symbol, starting the next part of the command."""
        self.packet.data.append(ord("|"))

    def into_packet(self) -> OutPacket:
        return self.packet


def _init_packet(direction: Direction) -> OutPacket:
    packet = OutPacket(direction, Flags(0), PacketType.INIT)
    packet.mac = INIT_MAC
    packet.packet_id = _INIT_PACKET_ID
    return packet


def c2s_init0(version: int, timestamp: int, random0: bytes) -> OutPacket:
    packet = _init_packet(Direction.C2S)
    packet.data += _u32(version) + _u8(0) + _u32(timestamp)
    packet.data += _fixed("random0", random0, 4)
    packet.data += bytes(8)  # reserved
    return packet


def c2s_init2(version: int, random1: bytes, random0_r: bytes) -> OutPacket:
    packet = _init_packet(Direction.C2S)
    packet.data += _u32(version) + _u8(2)
    packet.data += _fixed("random1", random1, 16)
    packet.data += _fixed("random0_r", random0_r, 4)
    return packet


def c2s_init4(
    version: int,
    x: bytes,
    n: bytes,
    level: int,
    random2: bytes,
    y: bytes,
    alpha: bytes,
    omega: bytes,
    ip: str,
) -> OutPacket:
    packet = _init_packet(Direction.C2S)
    packet.data += _u32(version) + _u8(4)
    packet.data += _fixed("x", x, 64)
    packet.data += _fixed("n", n, 64)
    packet.data += _u32(level)
    packet.data += _fixed("random2", random2, 100)
    packet.data += _fixed("y", y, 64)
    ip_part = f"={ip}" if ip else ""
    command = (
        f"clientinitiv alpha={base64.b64encode(bytes(alpha)).decode('ascii')} "
        f"omega={base64.b64encode(bytes(omega)).decode('ascii')} ot=1 ip{ip_part}"
    )
    packet.data += command.encode("utf-8")
    return packet


def s2c_init1(random1: bytes, random0_r: bytes) -> OutPacket:
    packet = _init_packet(Direction.S2C)
    packet.data += _u8(1)
    packet.data += _fixed("random1", random1, 16)
    packet.data += _fixed("random0_r", random0_r, 4)
    return packet


def s2c_init3(x: bytes, n: bytes, level: int, random2: bytes) -> OutPacket:
    packet = _init_packet(Direction.S2C)
    packet.data += _u8(3)
    packet.data += _fixed("x", x, 64)
    packet.data += _fixed("n", n, 64)
    packet.data += _u32(level)
    packet.data += _fixed("random2", random2, 100)
    return packet


_ACK_TYPES = {
    PacketType.COMMAND: PacketType.ACK,
    PacketType.COMMAND_LOW: PacketType.ACK_LOW,
    PacketType.PING: PacketType.PONG,
}


def ack(direction: Direction, for_type: PacketType, packet_id: int) -> OutPacket:
    """Acknowledge a packet of type ``for_type`` (e.g. a command)."""
    try:
        p_type = _ACK_TYPES[for_type]
    except KeyError:
        raise ValueError(f"Invalid packet type to create ack {for_type!r}") from None
    packet = OutPacket(direction, Flags(0), p_type)
    packet.data += _u16(packet_id)
    return packet


AudioInput = Union[AudioC2S, AudioC2SWhisper, AudioC2SWhisperNew, AudioS2C, AudioS2CWhisper]


def audio_packet(data: AudioData) -> OutPacket:
    """Serialize audio data into a voice or whisper packet."""
    packet = OutPacket(data.direction, data.flags, data.packet_type)
    out = packet.data
    out += _u16(data.id)
    if isinstance(data, AudioC2S):
        out += _u8(int(data.codec))
    elif isinstance(data, AudioC2SWhisper):
        if len(data.channels) > 0xFF or len(data.clients) > 0xFF:
            raise ValueError("Too many whisper targets")
        out += _u8(int(data.codec)) + _u8(len(data.channels)) + _u8(len(data.clients))
        for channel in data.channels:
            out += _u64(channel)
        for client in data.clients:
            out += _u16(client)
    elif isinstance(data, AudioC2SWhisperNew):
        out += _u8(int(data.codec)) + _u8(data.whisper_type) + _u8(data.target)
        out += _u64(data.target_id)
    elif isinstance(data, (AudioS2C, AudioS2CWhisper)):
        out += _u16(data.from_id) + _u8(int(data.codec))
    else:
        raise TypeError(f"Not audio data: {data!r}")
    out += bytes(data.data)
    return packet