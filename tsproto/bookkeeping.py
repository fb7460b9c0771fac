"""Errors, server addresses, message targets and disconnect options for keeping track of a server."""

from __future__ import annotations

import ipaddress
from dataclasses import dataclass, replace
from typing import Optional, Union

from .types import ClientId

IpAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


class BookkeepingError(Exception):
    """Base class for errors while keeping track of the server state."""


class MessageWithoutTargetClientId(BookkeepingError):
    def __init__(self) -> None:
        super().__init__("Target client id missing for a client text message")


class UnknownTextMessageTargetMode(BookkeepingError):
    def __init__(self) -> None:
        super().__init__("Unknown TextMessageTargetMode")


class NotFoundError(BookkeepingError):
    """An object that should exist was not found."""

    def __init__(self, kind: str, ident: object) -> None:
        super().__init__(f"{kind} {ident} not found")
        self.kind = kind
        self.ident = ident


class RemoveNotFoundError(BookkeepingError):
    """An object should be removed but does not exist."""

    def __init__(self, kind: str) -> None:
        super().__init__(f"{kind} should be removed but does not exist")
        self.kind = kind


class InvalidConnectionIp(BookkeepingError):
    """A connection ip could not be parsed."""

    def __init__(self, source: object) -> None:
        super().__init__(f"Failed to parse connection ip: {source}")
        self.source = source


@dataclass(frozen=True)
class ServerAddress:
    """Either a resolved socket address (ip and port) or an unresolved name."""

    host: Union[IpAddress, str]
    port: Optional[int] = None

    def __post_init__(self) -> None:
        if isinstance(self.host, (ipaddress.IPv4Address, ipaddress.IPv6Address)):
            if self.port is None or not 0 <= self.port <= 0xFFFF:
                raise ValueError(f"Port must be between 0 and 65535, got {self.port}")
        elif isinstance(self.host, str):
            if self.port is not None:
                raise ValueError("An unresolved address carries its port in the string")
        else:
            raise TypeError(f"Not an address: {self.host!r}")

    @property
    def is_socket_addr(self) -> bool:
        return not isinstance(self.host, str)

    @classmethod
    def from_value(cls, value: object) -> "ServerAddress":
        """Build an address from a string, an ``(ip, port)`` tuple or an address."""
        if isinstance(value, ServerAddress):
            return value
        if isinstance(value, str):
            return cls(value)
        if isinstance(value, tuple) and len(value) == 2:
            host, port = value
            if not isinstance(host, (ipaddress.IPv4Address, ipaddress.IPv6Address)):
                try:
                    host = ipaddress.ip_address(host)
                except ValueError as e:
                    raise InvalidConnectionIp(e) from e
            return cls(host, int(port))
        raise TypeError(f"Cannot make a server address from {value!r}")

    def __str__(self) -> str:
        if isinstance(self.host, ipaddress.IPv6Address):
            return f"[{self.host}]:{self.port}"
        if isinstance(self.host, ipaddress.IPv4Address):
            return f"{self.host}:{self.port}"
        return self.host


_TARGET_KINDS = ("server", "channel", "client", "poke")


@dataclass(frozen=True)
class MessageTarget:
    """Where a message is sent: server or channel chat, a client, or a poke."""

    kind: str
    client_id: Optional[ClientId] = None

    def __post_init__(self) -> None:
        if self.kind not in _TARGET_KINDS:
            raise ValueError(f"Unknown message target {self.kind!r}")
        needs_client = self.kind in ("client", "poke")
        if needs_client and self.client_id is None:
            raise ValueError(f"A {self.kind} target needs a client id")
        if not needs_client and self.client_id is not None:
            raise ValueError(f"A {self.kind} target has no client id")
        if isinstance(self.client_id, int):
            object.__setattr__(self, "client_id", ClientId(self.client_id))

    @classmethod
    def server(cls) -> "MessageTarget":
        return cls("server")

    @classmethod
    def channel(cls) -> "MessageTarget":
        return cls("channel")

    @classmethod
    def client(cls, client_id: Union[ClientId, int]) -> "MessageTarget":
        return cls("client", client_id)

    @classmethod
    def poke(cls, client_id: Union[ClientId, int]) -> "MessageTarget":
        return cls("poke", client_id)


@dataclass(frozen=True)
class DisconnectOptions:
    """Reason and message sent when leaving a server."""

    reason: Optional[object] = None
    message: Optional[str] = None

    def with_reason(self, reason: object) -> "DisconnectOptions":
        """Set the reason for leaving."""
        return replace(self, reason=reason)

    def with_message(self, message: object) -> "DisconnectOptions":
        """Set the leave message; it is only shown if a reason is set too."""
        return replace(self, message=str(message))