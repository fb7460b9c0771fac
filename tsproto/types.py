"""Basic identifiers and value types used within the protocol."""

from __future__ import annotations

import base64
from dataclasses import dataclass
from datetime import datetime
from typing import ClassVar, Optional, Union

_SERVER_ADMIN = b"ServerAdmin"


@dataclass(frozen=True)
class _IntId:
    value: int
    _bits: ClassVar[int] = 64

    def __post_init__(self) -> None:
        if not 0 <= self.value < (1 << self._bits):
            raise ValueError(
                f"{type(self).__name__} must fit in {self._bits} unsigned bits, got {self.value}"
            )

    def __int__(self) -> int:
        return self.value

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class ClientId(_IntId):
    """Identifies a client connected to a server, including our own connection."""

    _bits: ClassVar[int] = 16


@dataclass(frozen=True)
class ClientDbId(_IntId):
    """The database id of a client on one specific server."""


@dataclass(frozen=True)
class ChannelId(_IntId):
    """Identifies a channel on a server."""


@dataclass(frozen=True)
class ServerGroupId(_IntId):
    """Identifies a server group on a server."""


@dataclass(frozen=True)
class ChannelGroupId(_IntId):
    """Identifies a channel group on a server."""


@dataclass(frozen=True)
class IconId(_IntId):
    _bits: ClassVar[int] = 32


@dataclass(frozen=True)
class Permission(_IntId):
    _bits: ClassVar[int] = 32


@dataclass(frozen=True)
class Uid:
    """A client or server uid, stored base64-decoded, or a reserved name."""

    data: bytes

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", bytes(self.data))

    def as_avatar(self) -> str:
        """Hex encoding of the uid using the letters a-p, as used for avatars."""
        return "".join(
            chr(ord("a") + (b >> 4)) + chr(ord("a") + (b & 0xF)) for b in self.data
        )

    def is_server_admin(self) -> bool:
        return self.data == _SERVER_ADMIN

    def __str__(self) -> str:
        return base64.b64encode(self.data).decode("ascii")


@dataclass(frozen=True)
class NormalClient:
    """A regular voice client."""


@dataclass(frozen=True)
class QueryClient:
    """A server query client."""

    admin: bool


ClientType = Union[NormalClient, QueryClient]

_MAX_CLIENTS_KINDS = ("unlimited", "inherited", "limited")


@dataclass(frozen=True)
class MaxClients:
    """A client limit: unlimited, inherited from the parent, or a fixed count."""

    kind: str
    count: Optional[int] = None

    def __post_init__(self) -> None:
        if self.kind not in _MAX_CLIENTS_KINDS:
            raise ValueError(f"Unknown max clients kind {self.kind!r}")
        if self.kind == "limited":
            if self.count is None or not 0 <= self.count <= 0xFFFF:
                raise ValueError(f"Client limit must be between 0 and 65535, got {self.count}")
        elif self.count is not None:
            raise ValueError(f"A {self.kind} client limit has no count")

    @classmethod
    def unlimited(cls) -> "MaxClients":
        return cls("unlimited")

    @classmethod
    def inherited(cls) -> "MaxClients":
        return cls("inherited")

    @classmethod
    def limited(cls, count: int) -> "MaxClients":
        return cls("limited", count)


@dataclass(frozen=True)
class TalkPowerRequest:
    time: datetime
    message: str


@dataclass(frozen=True)
class Invoker:
    """The client that caused an action."""

    name: str
    id: ClientId
    uid: Optional[Uid] = None