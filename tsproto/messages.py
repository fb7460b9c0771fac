"""Errors raised while parsing incoming messages."""

from __future__ import annotations

from typing import Optional


def _debug_name(value: object) -> str:
    return str(getattr(value, "name", value))


class ParseError(ValueError):
    """Base class for errors while parsing a message."""


class ParameterNotFound(ParseError):
    def __init__(self, arg: str, name: str) -> None:
        super().__init__(f"Parameter {arg} not found in {name}")
        self.arg = arg
        self.name = name


class UnknownCommand(ParseError):
    def __init__(self, command: str) -> None:
        super().__init__(f"Command {command} is unknown")
        self.command = command


class WrongCommand(ParseError):
    """A specific command was parsed from the wrong input."""

    def __init__(self, command: str) -> None:
        super().__init__(f"Command {command} is wrong")
        self.command = command


class WrongNewprotocol(ParseError):
    def __init__(self, flag: bool) -> None:
        super().__init__(f"Wrong newprotocol flag ({'true' if flag else 'false'})")
        self.flag = flag


class WrongPacketType(ParseError):
    def __init__(self, packet_type: object) -> None:
        super().__init__(f"Wrong packet type {_debug_name(packet_type)}")
        self.packet_type = packet_type


class WrongDirection(ParseError):
    def __init__(self, direction: object) -> None:
        super().__init__(f"Wrong direction {_debug_name(direction)}")
        self.direction = direction


class ParseValueError(ParseError):
    """A parameter value could not be parsed as the expected kind (int, float, ...)."""

    def __init__(
        self, arg: str, value: str, kind: str, source: Optional[BaseException] = None
    ) -> None:
        message = f'Cannot parse "{value}" as {kind} for parameter {arg}'
        if source is not None:
            message += f" ({source})"
        super().__init__(message)
        self.arg = arg
        self.value = value
        self.kind = kind
        self.source = source


class InvalidValue(ParseError):
    def __init__(self, arg: str, value: str) -> None:
        super().__init__(f'Invalid value "{value}" for parameter {arg}')
        self.arg = arg
        self.value = value