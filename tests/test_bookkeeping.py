import ipaddress

import pytest

from tsproto.bookkeeping import (
    BookkeepingError,
    DisconnectOptions,
    InvalidConnectionIp,
    MessageTarget,
    MessageWithoutTargetClientId,
    NotFoundError,
    RemoveNotFoundError,
    ServerAddress,
    UnknownTextMessageTargetMode,
)
from tsproto.types import ClientId


def test_address_from_string():
    addr = ServerAddress.from_value("ts.example.com")
    assert addr.host == "ts.example.com"
    assert not addr.is_socket_addr
    assert str(addr) == "ts.example.com"


def test_address_from_ipv4_tuple():
    addr = ServerAddress.from_value(("127.0.0.1", 9987))
    assert addr.is_socket_addr
    assert addr.host == ipaddress.ip_address("127.0.0.1")
    assert str(addr) == "127.0.0.1:9987"


def test_address_from_ipv6_tuple():
    addr = ServerAddress.from_value(("::1", 9987))
    assert str(addr) == "[::1]:9987"


def test_address_from_address_is_same():
    addr = ServerAddress("name")
    assert ServerAddress.from_value(addr) is addr


def test_address_invalid_ip():
    with pytest.raises(InvalidConnectionIp) as info:
        ServerAddress.from_value(("not-an-ip", 1))
    assert isinstance(info.value, BookkeepingError)
    assert str(info.value).startswith("Failed to parse connection ip: ")


def test_address_port_out_of_range():
    with pytest.raises(ValueError):
        ServerAddress(ipaddress.ip_address("127.0.0.1"), 70000)


def test_address_wrong_type():
    with pytest.raises(TypeError):
        ServerAddress.from_value(42)


def test_message_targets():
    assert MessageTarget.server().kind == "server"
    assert MessageTarget.server().client_id is None
    assert MessageTarget.channel().kind == "channel"
    target = MessageTarget.client(ClientId(5))
    assert target.client_id == ClientId(5)
    assert MessageTarget.client(5) == target
    poke = MessageTarget.poke(ClientId(5))
    assert poke.kind == "poke"
    assert poke.client_id == target.client_id
    assert (poke == target) is False


def test_message_target_validation():
    with pytest.raises(ValueError):
        MessageTarget("client")
    with pytest.raises(ValueError):
        MessageTarget("server", ClientId(1))
    with pytest.raises(ValueError):
        MessageTarget("everyone")


def test_disconnect_options():
    opts = DisconnectOptions()
    assert opts.reason is None
    assert opts.message is None
    changed = opts.with_reason("leave").with_message("bye")
    assert changed.reason == "leave"
    assert changed.message == "bye"
    assert opts.message is None


def test_error_messages():
    assert str(NotFoundError("Client", 5)) == "Client 5 not found"
    assert str(RemoveNotFoundError("Channel")) == "Channel should be removed but does not exist"
    assert (
        str(MessageWithoutTargetClientId())
        == "Target client id missing for a client text message"
    )
    assert str(UnknownTextMessageTargetMode()) == "Unknown TextMessageTargetMode"