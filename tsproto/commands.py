"""Tokenizing of command strings into arguments and part separators."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Tuple, Union

_WHITESPACE = b"\x0b\x0c\t\r\n "
_VALUE_END = _WHITESPACE + b"|"
_NAME_END = b" =|"
_BACKSLASH = ord("\\")
_PIPE = ord("|")
_EQUALS = ord("=")
_SPACE = ord(" ")

_UNESCAPES = {
    ord("v"): 0x0B,
    ord("f"): 0x0C,
    ord("t"): ord("\t"),
    ord("r"): ord("\r"),
    ord("n"): ord("\n"),
    ord("p"): ord("|"),
    ord("s"): ord(" "),
}


@dataclass(frozen=True)
class NextCommand:
    """Pipe symbol marking the start of the next command part."""


@dataclass(frozen=True)
class CommandArgumentValue:
    """The still escaped value of an argument."""

    raw: bytes
    escapes: int = 0
    """The number of escape sequences in this value."""

    def _unescape(self) -> bytes:
        out = bytearray()
        it = iter(self.raw)
        for byte in it:
            if byte == _BACKSLASH:
                escaped = next(it, None)
                if escaped is None:
                    break
                out.append(_UNESCAPES.get(escaped, escaped))
            else:
                out.append(byte)
        return bytes(out)

    def get(self) -> bytes:
        """The unescaped value."""
        return self.raw if self.escapes == 0 else self._unescape()

    def get_str(self) -> str:
        """The unescaped value decoded as UTF-8."""
        return self.get().decode("utf-8")


@dataclass(frozen=True)
class CommandArgument:
    name: bytes
    value: CommandArgumentValue


CommandItem = Union[CommandArgument, NextCommand]


def _name_end(data: bytes) -> int:
    for i, byte in enumerate(data):
        if not bytes((byte,)).isalnum():
            # Anything other than a space means there is no command name.
            return i if byte == _SPACE else 0
    return len(data)


class CommandParser:
    """Iterates over the arguments of a command.

    The command name is available as ``name`` (empty if there is none).
    """

    def __init__(self, data: bytes) -> None:
        self.data = bytes(data)
        end = _name_end(self.data)
        self.name = self.data[:end]
        self._index = end

    def __iter__(self) -> Iterator[CommandItem]:
        return self

    def __next__(self) -> CommandItem:
        data = self.data
        n = len(data)
        i = self._index
        while i < n and data[i] in _WHITESPACE:
            i += 1
        if i >= n:
            self._index = i
            raise StopIteration
        if data[i] == _PIPE:
            self._index = i + 1
            return NextCommand()

        name_start = i
        while i < n and data[i] not in _NAME_END:
            i += 1
        name = data[name_start:i]
        if i >= n or data[i] != _EQUALS:
            self._index = i
            return CommandArgument(name, CommandArgumentValue(b""))

        i += 1
        value_start = i
        escapes = 0
        while i < n:
            if data[i] in _VALUE_END:
                break
            if data[i] == _BACKSLASH:
                escapes += 1
                i += 1
                if i >= n or data[i] in _VALUE_END:
                    break
            i += 1
        self._index = i
        return CommandArgument(name, CommandArgumentValue(data[value_start:i], escapes))


def parse_command(data: bytes) -> Tuple[bytes, CommandParser]:
    """Return the name of a command and a parser over its arguments."""
    parser = CommandParser(data)
    return parser.name, parser