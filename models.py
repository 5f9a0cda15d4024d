# ─────────────────────────────────────────────────────────────────
# models.py — Data Models (Pydantic Schemas)
#
# The JSON shapes the hub accepts and returns. Field names follow the
# wire format agents already speak (camelCase deviceId).
#
# Required fields are declared Optional here and checked by require()
# in the handlers, so a missing deviceId answers 400 "deviceId required"
# rather than pydantic's generic error.
# ─────────────────────────────────────────────────────────────────

from typing import Optional

from pydantic import BaseModel

from errors import ValidationError


def require(value: Optional[str], name: str) -> str:
    """Trimmed value, or ValidationError when missing/blank."""

    value = (value or "").strip()
    if not value:
        raise ValidationError(f"{name} required")
    return value


class HeartbeatBody(BaseModel):
    """
    POST /api/heartbeat
    {
        "deviceId": "PC1",
        "hostname": "DESKTOP-01",
        "username": "alice",
        "os": "Windows 11"
    }
    Only deviceId is required. Anything not sent keeps its old value.
    """

    deviceId: Optional[str] = None
    hostname: Optional[str] = None
    username: Optional[str] = None
    os: Optional[str] = None


class CommandBody(BaseModel):
    """POST /api/command  {"deviceId": "PC1", "command": "notepad.exe"}"""

    deviceId: Optional[str] = None
    command: Optional[str] = None


class ScriptBody(BaseModel):
    """POST /api/ps  {"deviceId": "PC1", "script": "Get-Date"}"""

    deviceId: Optional[str] = None
    script: Optional[str] = None


class PullResponse(BaseModel):
    command: Optional[str] = None     # None → nothing queued
    kind: Optional[str] = None        # "plain" | "script" | None


class DeviceView(BaseModel):
    id: str
    ip: str
    hostname: str
    username: str
    os: str
    last_seen: float                  # epoch seconds
    online: bool


class DeviceList(BaseModel):
    devices: list[DeviceView]
