import pytest

from tsproto.commands import (
    CommandArgument,
    CommandArgumentValue,
    CommandParser,
    NextCommand,
    parse_command,
)
from tsproto.outpackets import OutCommand
from tsproto.packets import Direction, Flags, PacketType


def roundtrip(data: str) -> str:
    name, parser = parse_command(data.encode("utf-8"))
    out = OutCommand(Direction.S2C, Flags(0), PacketType.COMMAND, name.decode("utf-8"))
    for item in parser:
        if isinstance(item, NextCommand):
            out.start_new_part()
        else:
            out.write_arg(item.name.decode("utf-8"), item.value.get_str())
    return out.into_packet().content.decode("utf-8")


def _arg(key, value=None):
    if value is None:
        return key
    text = str(value).replace(" ", "\\s").replace("|", "\\p")
    return f"{key}={text}"


_SERVER_HEAD = [
    ("name", "Server der Verplanten"),
    ("welcomemessage", "This is Splamys World"),
    ("platform", "Linux"),
    ("version", "3.0.13.8 [Build: 1500452811]"),
    ("maxclients", 32),
    ("created", 0),
    ("nodec_encryption_mode", 1),
    ("hostmessage", "Lé Server de Splamy"),
    ("name", "Server_mode=0"),
    ("default_server", None),
]
_SERVER_TAIL = [
    ("default_channel_group", 8),
    ("hostbanner_url", None),
    ("hostmessagegfx_url", None),
    ("hostmessagegfx_interval", 2000),
    ("priority_speaker_dimm_modificat", None),
]
INIT_SERVER = " ".join(
    ["initserver"]
    + [_arg("virtualserver_" + k, v) for k, v in _SERVER_HEAD]
    + ["group=8"]
    + [_arg("virtualserver_" + k, v) for k, v in _SERVER_TAIL]
)

_CHANNEL_KEYS = ["cid", "cpid"] + [
    "channel_" + k
    for k in (
        "name topic codec codec_quality maxclients maxfamilyclients order "
        "flag_permanent flag_semi_permanent flag_default flag_password "
        "codec_latency_factor codec_is_unencrypted delete_delay "
        "flag_maxclients_unlimited flag_maxfamilyclients_unlimited "
        "flag_maxfamilyclients_inherited needed_talk_power forced_silence "
        "name_phonetic icon_id flag_private"
    ).split()
]
_CHANNELS = [
    [2, 0, "Trusted Channel", None, 0, 0, 0, -1, 1, 1, 0, 0, 0, 1, 1, 0, 0, 0, 1, 0, 0,
     None, 0, 0],
    [4, 2, "Ding • 1 | Splamy´s Bett", None, 4, 7, -1, -1, 0, 1, 0, 0, 0, 1, 1, 0, 1, 0, 1,
     0, 0, "Neo Seebi Evangelion", 0, 0],
]
CHANNEL_LIST = "channellist " + "|".join(
    " ".join(_arg(k, v) for k, v in zip(_CHANNEL_KEYS, values)) for values in _CHANNELS
)

NOTIFY_SUBSCRIBED = "notifychannelsubscribed " + "|".join(
    ["cid=2", "cid=4 es=3867"]
    + [f"cid={cid} es=18694" for cid in (5, 6, 7, 11, 13, 14, 16, 22, 23, 24, 25, 30, 163)]
)

_GROUP_ENDS = [0, 7, 13, 18, 21, 21, 33, 47, 77, 82, 83, 106, 126, 132, 143, 151, 160, 162,
               170, 172, 190, 197, 215, 227, 232, 248]
_PERMS = [
    ("b_serverinstance_help_view", "Retrieve information about ServerQuery commands"),
    ("b_serverinstance_version_view",
     "Retrieve global server version (including platform and build number)"),
    ("b_serverinstance_info_view", "Retrieve global server information"),
    ("b_serverinstance_virtualserver_list", "List virtual servers stored in the database"),
]
NOTIFY_PERMISSIONS = "notifypermissionlist " + "|".join(
    [f"group_id_end={g}" for g in _GROUP_ENDS]
    + [f"{_arg('permname', n)} {_arg('permdesc', d)}" for n, d in _PERMS]
)

TEST_COMMANDS = [
    "cmd a=1 b=2 c=3",
    "cmd a=\\s\\\\ b=\\p c=abc\\tdef",
    "cmd a=1 c=3 b=2|b=4|b=5",
    "initivexpand2 l=AQCVXTlKF+UQc0yga99dOQ9FJCwLaJqtDb1G7xYPMvHFMwIKVfKADF6zAAcAAAAgQW5vbnltb3VzAAAKQo71lhtEMbqAmtuMLlY8Snr0k2Wmymv4hnHNU6tjQCALKHewCykgcA== beta=\\/8kL8lcAYyMJovVOP6MIUC1oZASyuL\\/Y\\/qjVG06R4byuucl9oPAvR7eqZI7z8jGm9jkGmtJ6 omega=MEsDAgcAAgEgAiBxu2eCLQf8zLnuJJ6FtbVjfaOa1210xFgedoXuGzDbTgIgcGk35eqFavKxS4dROi5uKNSNsmzIL4+fyh5Z\\/+FWGxU= ot=1 proof=MEUCIQDRCP4J9e+8IxMJfCLWWI1oIbNPGcChl+3Jr2vIuyDxzAIgOrzRAFPOuJZF4CBw\\/xgbzEsgKMtEtgNobF6WXVNhfUw= tvd time=1544221457",
    "clientinitiv alpha=41Te9Ar7hMPx+A== omega=MEwDAgcAAgEgAiEAq2iCMfcijKDZ5tn2tuZcH+\\/GF+dmdxlXjDSFXLPGadACIHzUnbsPQ0FDt34Su4UXF46VFI0+4wjMDNszdoDYocu0 ip",
    INIT_SERVER,
    CHANNEL_LIST,
    NOTIFY_SUBSCRIBED,
    NOTIFY_PERMISSIONS,
    "cmd=1 cid=2",
    "channellistfinished",
    "sendtextmessage text=\\nmess\\nage\\n return_code=11",
]


@pytest.mark.parametrize("command", TEST_COMMANDS)
def test_loop(command):
    assert roundtrip(command) == command


@pytest.mark.parametrize("command", ["cmd a", "cmd a b=1"])
def test_optional_arg_loop(command):
    assert roundtrip(command) == command


@pytest.mark.parametrize(
    ("command", "expected"),
    [("cmd a=", "cmd a"), ("cmd a= b=1", "cmd a b=1")],
)
def test_optional_arg_empty_value(command, expected):
    assert roundtrip(command) == expected


def test_no_slash_escape():
    omega = "MEsDAgcAAgEgAiAIXJBlj1hQbaH0Eq0DuLlCmH8bl+veTAO2+k9EQjEYSgIgNnImcmKo7ls5mExb6skfK2Tw+u54aeDr0OP1ITsC{}50="
    in_cmd = f"clientinitiv alpha=giGMvmfHzbY3ig== omega={omega.format('/')} ot=1 ip"
    out_cmd = f"clientinitiv alpha=giGMvmfHzbY3ig== omega={omega.format(chr(92) + '/')} ot=1 ip"
    assert roundtrip(in_cmd) == out_cmd


def test_items_of_simple_command():
    name, parser = parse_command(b"cmd a=1 b|c=x")
    assert name == b"cmd"
    items = list(parser)
    assert items == [
        CommandArgument(b"a", CommandArgumentValue(b"1")),
        CommandArgument(b"b", CommandArgumentValue(b"")),
        NextCommand(),
        CommandArgument(b"c", CommandArgumentValue(b"x")),
    ]


def test_no_name_when_first_word_has_equals():
    name, parser = parse_command(b"cmd=1 cid=2")
    assert name == b""
    names = [item.name for item in parser]
    assert names == [b"cmd", b"cid"]


def test_name_only():
    parser = CommandParser(b"channellistfinished")
    assert parser.name == b"channellistfinished"
    assert list(parser) == []


def test_escaped_value_is_unescaped():
    _, parser = parse_command(b"sendtextmessage text=\\nmess\\nage\\n return_code=11")
    text, code = list(parser)
    assert text.value.escapes == 3
    assert text.value.raw == b"\\nmess\\nage\\n"
    assert text.value.get_str() == "\nmess\nage\n"
    assert code.value.get() == b"11"


def test_all_escapes():
    _, parser = parse_command(b"cmd a=\\v\\f\\t\\r\\n\\p\\s\\\\\\/")
    (arg,) = list(parser)
    assert arg.value.get() == b"\x0b\x0c\t\r\n| \\/"


def test_trailing_backslash_is_dropped():
    _, parser = parse_command(b"cmd a=abc\\")
    (arg,) = list(parser)
    assert arg.value.raw == b"abc\\"
    assert arg.value.get() == b"abc"


def test_pipe_ends_value():
    _, parser = parse_command(b"notify cid=2|cid=4")
    items = list(parser)
    assert items[1] == NextCommand()
    assert [i.value.get_str() for i in items if isinstance(i, CommandArgument)] == ["2", "4"]


def test_part_count():
    _, parser = parse_command(NOTIFY_SUBSCRIBED.encode("utf-8"))
    assert sum(isinstance(i, NextCommand) for i in parser) == 14


def test_invalid_utf8_raises():
    _, parser = parse_command(b"cmd a=\xff\xfe")
    (arg,) = list(parser)
    with pytest.raises(UnicodeDecodeError):
        arg.value.get_str()


def test_iteration_is_exhausted_once():
    _, parser = parse_command(b"cmd a=1")
    assert len(list(parser)) == 1
    assert list(parser) == []