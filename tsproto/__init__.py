"""Packets, commands, types, keys, errors and events for the TeamSpeak 3 protocol."""

__version__ = "0.1.0"

__all__ = [
    "bookkeeping",
    "commands",
    "crypto",
    "errors",
    "events",
    "messages",
    "outpackets",
    "packets",
    "types",
]