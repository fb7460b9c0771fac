# tsproto

Building blocks for the TeamSpeak 3 protocol in Python:

- `tsproto.packets`: parse incoming raw UDP packets. It reads headers
  (`InHeader`), finds acknowledged packet ids (`InPacket.ack_packet`), and
  parses voice and whisper packets (`InPacket.into_audio`, `parse_audio`) and
  the init handshake steps (`InPacket.into_c2sinit`, `InPacket.into_s2cinit`).
- `tsproto.outpackets`: build outgoing packets. `OutCommand` writes commands
  with escaping. The module also has the init steps (`c2s_init0`, `c2s_init2`,
  `c2s_init4`, `s2c_init1`, `s2c_init3`), `ack` and `audio_packet`.
- `tsproto.commands`: `CommandParser` is a tolerant tokenizer for command text
  such as `notifycliententerview clid=1 client_nickname=Foo|clid=2`.
- `tsproto.types`: ids (`ClientId`, `ChannelId`, ...), `Uid`, client types,
  `MaxClients`, `TalkPowerRequest` and `Invoker`.
- `tsproto.crypto`: P-256 identities in the TeamSpeak formats. It can import
  and export them (tomcrypt, short and obfuscated forms), compute uids, sign
  and verify, and run ECDH. It also handles Ed25519 keys and has
  `encode_password`.
- `tsproto.bookkeeping`: bookkeeping errors, `ServerAddress`, `MessageTarget`
  and `DisconnectOptions`.
- `tsproto.messages`: the errors raised while parsing messages.
- `tsproto.events`: state change events (`PropertyAdded`, `PropertyChanged`,
  `PropertyRemoved`, `MessageEvent`) and `get_invoker`.
- `tsproto.errors`: packet errors and `hex_slice`.

## Installation

```
pip install .
```

## Examples

Parse a command and write it out again:

```python
from tsproto.commands import CommandParser, NextCommand
from tsproto.outpackets import OutCommand
from tsproto.packets import Direction, Flags, PacketType

parser = CommandParser(b"cmd a=1 b=\\s|b=2")
out = OutCommand(Direction.S2C, Flags(0), PacketType.COMMAND, parser.name.decode())
for item in parser:
    if isinstance(item, NextCommand):
        out.start_new_part()
    else:
        out.write_arg(item.name.decode(), item.value.get_str())
print(out.into_packet().content)   # b'cmd a=1 b=\\s|b=2'
```

Round-trip an audio packet:

```python
from tsproto.outpackets import audio_packet
from tsproto.packets import AudioC2S, CodecType, Direction, parse_packet

packet = audio_packet(AudioC2S(id=0x1234, codec=CodecType.OPUS_VOICE, data=b"\x01\x02"))
audio = parse_packet(Direction.C2S, packet.data).into_audio()
assert audio.data.data == b"\x01\x02"
```

Work with an identity:

```python
from tsproto.crypto import EccKeyPrivP256

key = EccKeyPrivP256.create()
print(key.to_pub().get_uid())
stored = key.to_ts_obfuscated()
assert EccKeyPrivP256.from_ts_obfuscated(stored).to_short() == key.to_short()
```

## What it does not do

The package works on bytes only. It does not open connections, resolve
server addresses or send anything over the network. It does not encrypt,
decrypt, compress or reassemble fragmented packets. It has no typed classes
for individual commands and no structure that holds a server's clients and
channels. The events and errors are there for code that builds such a
structure, but the package does not produce events itself.

## Tests

```
pip install .[test]
pytest
```