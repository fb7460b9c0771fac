import base64
from datetime import datetime, timezone

import pytest

from tsproto.types import (
    ChannelGroupId,
    ChannelId,
    ClientDbId,
    ClientId,
    IconId,
    Invoker,
    MaxClients,
    NormalClient,
    Permission,
    QueryClient,
    ServerGroupId,
    TalkPowerRequest,
    Uid,
)


@pytest.mark.parametrize(
    "cls", [ClientId, ClientDbId, ChannelId, ServerGroupId, ChannelGroupId, IconId, Permission]
)
def test_id_display_and_int(cls):
    ident = cls(42)
    assert str(ident) == "42"
    assert int(ident) == 42
    assert ident == cls(42)
    assert hash(ident) == hash(cls(42))


def test_ids_of_different_kinds_differ():
    assert ChannelId(1) != ClientDbId(1)


def test_client_id_range():
    assert ClientId(0xFFFF).value == 0xFFFF
    with pytest.raises(ValueError):
        ClientId(0x10000)
    with pytest.raises(ValueError):
        ClientId(-1)


@pytest.mark.parametrize("cls", [IconId, Permission])
def test_u32_range(cls):
    assert cls(0xFFFFFFFF).value == 0xFFFFFFFF
    with pytest.raises(ValueError):
        cls(1 << 32)


def test_u64_range():
    assert ChannelId((1 << 64) - 1).value == (1 << 64) - 1
    with pytest.raises(ValueError):
        ChannelId(1 << 64)


def test_uid_server_admin():
    assert Uid(b"ServerAdmin").is_server_admin()
    assert not Uid(b"serveradmin").is_server_admin()


def test_uid_display_is_base64():
    raw = b"\x01\x02\x03\xfe\xff"
    uid = Uid(raw)
    assert base64.b64decode(str(uid)) == raw


def test_uid_avatar_small_values():
    assert Uid(b"\x00\x1f").as_avatar() == "aabp"


def test_uid_avatar_roundtrip():
    raw = bytes(range(256))
    avatar = Uid(raw).as_avatar()
    assert len(avatar) == 2 * len(raw)
    assert set(avatar) <= set("abcdefghijklmnop")
    decoded = bytes(
        ((ord(avatar[i]) - ord("a")) << 4) | (ord(avatar[i + 1]) - ord("a"))
        for i in range(0, len(avatar), 2)
    )
    assert decoded == raw


def test_client_types():
    assert QueryClient(admin=True) != QueryClient(admin=False)
    assert NormalClient() == NormalClient()
    assert QueryClient(admin=True).admin is True


def test_max_clients_constructors():
    assert MaxClients.unlimited() == MaxClients("unlimited")
    assert MaxClients.inherited().count is None
    limited = MaxClients.limited(32)
    assert limited.kind == "limited"
    assert limited.count == 32
    assert MaxClients.limited(32) != MaxClients.unlimited()


def test_max_clients_invalid():
    with pytest.raises(ValueError):
        MaxClients.limited(70000)
    with pytest.raises(ValueError):
        MaxClients("sometimes")
    with pytest.raises(ValueError):
        MaxClients("unlimited", 3)


def test_talk_power_request():
    when = datetime(2020, 1, 1, tzinfo=timezone.utc)
    request = TalkPowerRequest(time=when, message="let me talk")
    assert request.time == when
    assert request.message == "let me talk"


def test_invoker():
    invoker = Invoker(name="Alice", id=ClientId(3), uid=Uid(b"ServerAdmin"))
    assert invoker.uid.is_server_admin()
    assert str(invoker.id) == "3"
    assert Invoker(name="Bob", id=ClientId(4)).uid is None