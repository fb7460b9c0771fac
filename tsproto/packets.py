"""Parsing of incoming protocol packets: headers, init handshakes and audio."""

from __future__ import annotations

import enum
import json
from dataclasses import dataclass, field
from typing import ClassVar, Optional, Union

from .errors import (
    InvalidCodec,
    InvalidInitStep,
    PacketContentTooShort,
    PacketError,
    PacketTooShort,
    UnknownPacketType,
    WrongDirectionError,
    WrongInitMac,
    WrongPacketTypeError,
    hex_slice,
)

S2C_HEADER_LEN = 11
C2S_HEADER_LEN = 13
INIT_MAC = b"TS3INIT1"


class PacketType(enum.IntEnum):
    VOICE = 0
    VOICE_WHISPER = 1
    COMMAND = 2
    COMMAND_LOW = 3
    PING = 4
    PONG = 5
    ACK = 6
    ACK_LOW = 7
    INIT = 8

    def is_command(self) -> bool:
        return self in (PacketType.COMMAND, PacketType.COMMAND_LOW)

    def is_ack(self) -> bool:
        return self in (PacketType.ACK, PacketType.ACK_LOW, PacketType.PONG)

    def is_voice(self) -> bool:
        return self in (PacketType.VOICE, PacketType.VOICE_WHISPER)


class Direction(enum.Enum):
    S2C = "s2c"
    """Going from the server to the client."""
    C2S = "c2s"
    """Going from the client to the server."""

    def reverse(self) -> "Direction":
        return Direction.C2S if self is Direction.S2C else Direction.S2C

    @property
    def header_len(self) -> int:
        return S2C_HEADER_LEN if self is Direction.S2C else C2S_HEADER_LEN

    @property
    def type_offset(self) -> int:
        """Offset of the flags/type byte inside the header."""
        return 10 if self is Direction.S2C else 12


class Flags(enum.IntFlag):
    UNENCRYPTED = 0x80
    COMPRESSED = 0x40
    NEWPROTOCOL = 0x20
    FRAGMENTED = 0x10


class CodecType(enum.IntEnum):
    SPEEX_NARROWBAND = 0
    SPEEX_WIDEBAND = 1
    SPEEX_ULTRAWIDEBAND = 2
    CELT_MONO = 3
    OPUS_VOICE = 4
    OPUS_MUSIC = 5


def _be(data: bytes) -> int:
    return int.from_bytes(data, "big")


class InHeader:
    """The header of an incoming packet."""

    __slots__ = ("direction", "data")

    def __init__(self, direction: Direction, data: bytes) -> None:
        header_len = direction.header_len
        if len(data) < header_len:
            raise PacketTooShort(len(data))
        self.direction = direction
        self.data = bytes(data[:header_len])

    @property
    def mac(self) -> bytes:
        return self.data[:8]

    @property
    def packet_id(self) -> int:
        return _be(self.data[8:10])

    @property
    def client_id(self) -> Optional[int]:
        if self.direction is Direction.S2C:
            return None
        return _be(self.data[10:12])

    @property
    def flags(self) -> Flags:
        return Flags(self.data[self.direction.type_offset] & 0xF0)

    @property
    def packet_type(self) -> PacketType:
        return PacketType(self.data[self.direction.type_offset] & 0x0F)

    @property
    def meta(self) -> bytes:
        return self.data[8:]

    def __repr__(self) -> str:
        parts = []
        if self.mac != bytes(8):
            parts.append(f"mac: {hex_slice(self.mac)}, ")
        parts.append(f"id: {self.packet_id:#x}, ")
        if self.client_id is not None:
            parts.append(f"c_id: {self.client_id:#x}, ")
        parts.append(f"{self.packet_type.name}, ")
        flags = self.flags
        for flag, letter in (
            (Flags.UNENCRYPTED, "u"),
            (Flags.COMPRESSED, "c"),
            (Flags.NEWPROTOCOL, "n"),
            (Flags.FRAGMENTED, "f"),
        ):
            parts.append(letter if flag in flags else "-")
        return "Header(" + "".join(parts) + ")"


# Init handshake data ------------------------------------------------------


@dataclass(frozen=True)
class C2SInit0:
    version: int
    timestamp: int
    random0: bytes
    step: ClassVar[int] = 0

    def __str__(self) -> str:
        return "Init0"


@dataclass(frozen=True)
class C2SInit2:
    version: int
    random1: bytes
    random0_r: bytes
    step: ClassVar[int] = 2

    def __str__(self) -> str:
        return "Init2"


@dataclass(frozen=True)
class C2SInit4:
    version: int
    x: bytes
    n: bytes
    level: int
    random2: bytes
    y: bytes
    """y = x ^ (2 ^ level) % n"""
    command: bytes
    """A ``clientinitiv alpha=… omega=…`` command."""
    step: ClassVar[int] = 4

    def __str__(self) -> str:
        try:
            command = json.dumps(self.command.decode("utf-8"), ensure_ascii=False)
        except UnicodeDecodeError:
            command = hex_slice(self.command)
        return f"Init4(level: {self.level}, {command})"


@dataclass(frozen=True)
class S2CInit1:
    random1: bytes
    random0_r: bytes
    step: ClassVar[int] = 1

    def __str__(self) -> str:
        return "Init1"


@dataclass(frozen=True)
class S2CInit3:
    x: bytes
    n: bytes
    level: int
    random2: bytes
    step: ClassVar[int] = 3

    def __str__(self) -> str:
        return f"Init3(level: {self.level})"


@dataclass(frozen=True)
class S2CInit127:
    step: ClassVar[int] = 127

    def __str__(self) -> str:
        return "Init127"


C2SInitData = Union[C2SInit0, C2SInit2, C2SInit4]
S2CInitData = Union[S2CInit1, S2CInit3, S2CInit127]


@dataclass(frozen=True)
class InS2CInit:
    packet: "InPacket"
    data: S2CInitData


@dataclass(frozen=True)
class InC2SInit:
    packet: "InPacket"
    data: C2SInitData


# Audio data ---------------------------------------------------------------


@dataclass(frozen=True)
class AudioC2S:
    id: int
    codec: CodecType
    data: bytes
    direction: ClassVar[Direction] = Direction.C2S
    packet_type: ClassVar[PacketType] = PacketType.VOICE
    flags: ClassVar[Flags] = Flags(0)


@dataclass(frozen=True)
class AudioC2SWhisper:
    id: int
    codec: CodecType
    channels: tuple = field(default_factory=tuple)
    clients: tuple = field(default_factory=tuple)
    data: bytes = b""
    direction: ClassVar[Direction] = Direction.C2S
    packet_type: ClassVar[PacketType] = PacketType.VOICE_WHISPER
    flags: ClassVar[Flags] = Flags(0)

    def __post_init__(self) -> None:
        object.__setattr__(self, "channels", tuple(self.channels))
        object.__setattr__(self, "clients", tuple(self.clients))


@dataclass(frozen=True)
class AudioC2SWhisperNew:
    """Whisper packet used when ``Flags.NEWPROTOCOL`` is set."""

    id: int
    codec: CodecType
    whisper_type: int
    target: int
    target_id: int
    data: bytes
    direction: ClassVar[Direction] = Direction.C2S
    packet_type: ClassVar[PacketType] = PacketType.VOICE_WHISPER
    flags: ClassVar[Flags] = Flags.NEWPROTOCOL


@dataclass(frozen=True)
class AudioS2C:
    id: int
    from_id: int
    codec: CodecType
    data: bytes
    direction: ClassVar[Direction] = Direction.S2C
    packet_type: ClassVar[PacketType] = PacketType.VOICE
    flags: ClassVar[Flags] = Flags(0)


@dataclass(frozen=True)
class AudioS2CWhisper:
    id: int
    from_id: int
    codec: CodecType
    data: bytes
    direction: ClassVar[Direction] = Direction.S2C
    packet_type: ClassVar[PacketType] = PacketType.VOICE_WHISPER
    flags: ClassVar[Flags] = Flags(0)


AudioData = Union[AudioC2S, AudioC2SWhisper, AudioC2SWhisperNew, AudioS2C, AudioS2CWhisper]


def _codec(value: int) -> CodecType:
    try:
        return CodecType(value)
    except ValueError:
        raise InvalidCodec(value) from None


def _require(content: bytes, length: int) -> None:
    if len(content) < length:
        raise PacketContentTooShort(len(content))


def parse_audio(
    packet_type: PacketType, newprotocol: bool, direction: Direction, content: bytes
) -> AudioData:
    """Parse the content of a voice or whisper packet."""
    content = bytes(content)
    _require(content, 2)
    audio_id = _be(content[0:2])

    if direction is Direction.S2C:
        _require(content, 5)
        cls = AudioS2C if packet_type == PacketType.VOICE else AudioS2CWhisper
        return cls(
            id=audio_id,
            from_id=_be(content[2:4]),
            codec=_codec(content[4]),
            data=content[5:],
        )

    _require(content, 3)
    codec = _codec(content[2])
    if packet_type == PacketType.VOICE:
        return AudioC2S(id=audio_id, codec=codec, data=content[3:])

    if newprotocol:
        _require(content, 14)
        return AudioC2SWhisperNew(
            id=audio_id,
            codec=codec,
            whisper_type=content[3],
            target=content[4],
            target_id=_be(content[5:13]),
            data=content[13:],
        )

    _require(content, 5)
    channel_count, client_count = content[3], content[4]
    client_off = 5 + channel_count * 8
    end = client_off + client_count * 2
    _require(content, end)
    channels = tuple(_be(content[o : o + 8]) for o in range(5, client_off, 8))
    clients = tuple(_be(content[o : o + 2]) for o in range(client_off, end, 2))
    return AudioC2SWhisper(
        id=audio_id, codec=codec, channels=channels, clients=clients, data=content[end:]
    )


@dataclass(frozen=True, repr=False)
class InAudio:
    packet: "InPacket"
    data: AudioData

    def __repr__(self) -> str:
        d = self.data
        codec = d.codec.name
        payload = hex_slice(d.data)
        if isinstance(d, AudioC2S):
            return f"Audio(id: {d.id}, {codec}, {payload})"
        if isinstance(d, AudioC2SWhisper):
            return (
                f"Whisper(id: {d.id}, {codec}, channels: {list(d.channels)}, "
                f"clients: {list(d.clients)}, {payload})"
            )
        if isinstance(d, AudioC2SWhisperNew):
            return (
                f"WhisperNew(id: {d.id}, {codec}, type: {d.whisper_type}, "
                f"target: {d.target}, target_id: {d.target_id}, {payload})"
            )
        if isinstance(d, AudioS2C):
            return f"Audio(id: {d.id}, from: {d.from_id}, {codec}, {payload})"
        return f"Whisper(id: {d.id}, from: {d.from_id}, {codec}, {payload})"


# Packets ------------------------------------------------------------------


class InPacket:
    """An incoming packet, split into header and content."""

    __slots__ = ("header", "content")

    def __init__(self, direction: Direction, data: bytes) -> None:
        data = bytes(data)
        header_len = direction.header_len
        if len(data) < header_len:
            raise PacketTooShort(len(data))
        p_type = data[header_len - 1] & 0x0F
        if p_type > PacketType.INIT:
            raise UnknownPacketType(p_type)
        self.header = InHeader(direction, data)
        self.content = data[header_len:]

    @property
    def direction(self) -> Direction:
        return self.header.direction

    @property
    def data(self) -> bytes:
        return self.header.data + self.content

    def ack_packet(self) -> Optional[int]:
        """The packet id this packet acknowledges, if it is an ack."""
        p_type = self.header.packet_type
        content = self.content
        if p_type.is_ack():
            _require(content, 2)
            return _be(content[:2])
        if p_type != PacketType.INIT:
            return None
        if self.direction is Direction.S2C:
            _require(content, 1)
            step = content[0]
            acked = {1: 0, 3: 2, 127: 2}  # 127 restarts with Init0, drop Init2 anyway
        else:
            _require(content, 5)
            step = content[4]
            acked = {0: None, 2: 1, 4: 3}
        if step not in acked:
            raise InvalidInitStep(step)
        return acked[step]

    def into_audio(self) -> InAudio:
        data = parse_audio(
            self.header.packet_type,
            Flags.NEWPROTOCOL in self.header.flags,
            self.direction,
            self.content,
        )
        return InAudio(packet=self, data=data)

    def _check_init(self, direction: Direction) -> None:
        if self.direction is not direction:
            raise WrongDirectionError()
        p_type = self.header.packet_type
        if p_type != PacketType.INIT:
            raise WrongPacketTypeError(p_type)
        if self.header.mac != INIT_MAC:
            raise WrongInitMac(self.header.mac)

    def into_s2cinit(self) -> InS2CInit:
        self._check_init(Direction.S2C)
        c = self.content
        _require(c, 1)
        step = c[0]
        data: S2CInitData
        if step == 1:
            _require(c, 21)
            data = S2CInit1(random1=c[1:17], random0_r=c[17:21])
        elif step == 3:
            _require(c, 233)
            data = S2CInit3(x=c[1:65], n=c[65:129], level=_be(c[129:133]), random2=c[133:233])
        elif step == 127:
            data = S2CInit127()
        else:
            raise InvalidInitStep(step)
        return InS2CInit(packet=self, data=data)

    def into_c2sinit(self) -> InC2SInit:
        self._check_init(Direction.C2S)
        c = self.content
        _require(c, 5)
        version = _be(c[0:4])
        step = c[4]
        data: C2SInitData
        if step == 0:
            _require(c, 13)
            data = C2SInit0(version=version, timestamp=_be(c[5:9]), random0=c[9:13])
        elif step == 2:
            _require(c, 25)
            data = C2SInit2(version=version, random1=c[5:21], random0_r=c[21:25])
        elif step == 4:
            command_start = 5 + 128 + 4 + 100 + 64
            _require(c, command_start + 20)
            data = C2SInit4(
                version=version,
                x=c[5:69],
                n=c[69:133],
                level=_be(c[133:137]),
                random2=c[137:237],
                y=c[237:301],
                command=c[command_start:],
            )
        else:
            raise InvalidInitStep(step)
        return InC2SInit(packet=self, data=data)

    def _describe(self) -> Optional[str]:
        p_type = self.header.packet_type
        try:
            if p_type.is_voice():
                return ", " + repr(self.into_audio())
            if p_type.is_command():
                text = self.content.decode("utf-8")
                return ", " + json.dumps(text, ensure_ascii=False)
            if p_type == PacketType.INIT:
                if self.direction is Direction.C2S:
                    return ", " + str(self.into_c2sinit().data)
                return ", " + str(self.into_s2cinit().data)
        except (PacketError, UnicodeDecodeError):
            return None
        return ", 0x" + self.content.hex() if self.content else ""

    def __repr__(self) -> str:
        desc = self._describe()
        if desc is None:
            desc = f", failed to parse, content: {hex_slice(self.content)})"
        return f"Packet({self.header!r}{desc})"


def parse_packet(direction: Direction, data: bytes) -> InPacket:
    """Check and split raw packet bytes."""
    return InPacket(direction, data)