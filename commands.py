# ─────────────────────────────────────────────────────────────────
# commands.py — Command Representation & Wire Encoding
#
# A queued command is one of two things:
#   PlainCommand   → a literal shell line, e.g. "notepad.exe"
#   EncodedScript  → a script body carried as bytes
#
# Only at the edge (HTTP response / WebSocket frame) is a command
# turned into a string. A script becomes:
#
#     <prefix>:<base64 of the UTF-8 body>      e.g. "PS64:R2V0LURhdGU="
#
# Alongside the string we always send kind = "plain" | "script", so a
# plain command that happens to start with "PS64:" stays plain.
# ─────────────────────────────────────────────────────────────────

import base64
import binascii
from dataclasses import dataclass
from typing import Optional, Union

from errors import ValidationError

DEFAULT_PREFIX = "PS64"

PLAIN = "plain"
SCRIPT = "script"


@dataclass(frozen=True)
class PlainCommand:
    text: str

    kind = PLAIN


@dataclass(frozen=True)
class EncodedScript:
    body: bytes

    kind = SCRIPT

    @property
    def text(self) -> str:
        return self.body.decode("utf-8")


Command = Union[PlainCommand, EncodedScript]


def plain_command(text: str) -> PlainCommand:
    try:
        text.encode("utf-8")
    except UnicodeEncodeError:
        raise ValidationError("command is not valid UTF-8 text", code="bad_payload")
    return PlainCommand(text)


def encode_script(script: str) -> EncodedScript:
    try:
        return EncodedScript(script.encode("utf-8"))
    except UnicodeEncodeError:
        raise ValidationError("script is not valid UTF-8 text", code="bad_payload")


def to_wire(command: Command, prefix: str = DEFAULT_PREFIX) -> str:
    if isinstance(command, EncodedScript):
        return f"{prefix}:{base64.b64encode(command.body).decode('ascii')}"
    return command.text


def from_wire(text: str, kind: Optional[str] = None, prefix: str = DEFAULT_PREFIX) -> Command:
    """
    Turns a wire string back into a Command.

    When the sender told us the kind, that wins. Without it (older hubs)
    the prefix decides.
    """

    marker = prefix + ":"

    if kind == PLAIN:
        return PlainCommand(text)

    if kind == SCRIPT or (kind is None and text.startswith(marker)):
        if not text.startswith(marker):
            raise ValidationError(f"script payload must start with '{marker}'", code="bad_payload")
        try:
            body = base64.b64decode(text[len(marker):], validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValidationError(f"script payload is not valid base64: {e}", code="bad_payload")
        return EncodedScript(body)

    if kind is not None:
        raise ValidationError(f"unknown command kind '{kind}'", code="bad_payload")

    return PlainCommand(text)
