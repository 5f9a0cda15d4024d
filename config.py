# ─────────────────────────────────────────────────────────────────
# config.py — Environment Configuration
#
# Every tunable value of the hub and the agent is read here, once.
# A .env file next to the process is loaded first, then the real
# environment wins. Other modules receive a Settings object and never
# call os.getenv themselves.
# ─────────────────────────────────────────────────────────────────

import os
import shlex
import sys
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

HUB_MODES = ("poll", "push")
AGENT_MODES = HUB_MODES


def _env_str(name: str, default: str = "") -> str:
    return (os.getenv(name, default) or "").strip()


def _env_int(name: str, default: int) -> int:
    raw = _env_str(name)
    return int(raw) if raw else default


def _env_float(name: str, default: float) -> float:
    raw = _env_str(name)
    return float(raw) if raw else default


def _default_interpreter() -> list[str]:
    # Windows PowerShell ships everywhere on Windows; pwsh elsewhere
    if sys.platform == "win32":
        return ["powershell.exe", "-NoProfile", "-NonInteractive", "-File"]
    return ["pwsh", "-NoProfile", "-NonInteractive", "-File"]


@dataclass(frozen=True)
class Settings:
    """Hub settings. Defaults match a local development run."""

    host: str = "0.0.0.0"
    port: int = 4000
    hub_mode: str = "poll"            # poll | push
    admin_token: str = ""             # empty → every operator route answers 401
    stats_token: str = ""             # empty → /stats answers 403
    online_window_seconds: float = 30.0
    queue_max: int = 0                # 0 → unbounded
    script_prefix: str = "PS64"
    cors_origins: tuple = ("*",)
    log_level: str = "INFO"

    def __post_init__(self):
        if self.hub_mode not in HUB_MODES:
            raise ValueError(f"HUB_MODE must be one of {HUB_MODES}, got '{self.hub_mode}'")
        if self.online_window_seconds <= 0:
            raise ValueError("ONLINE_WINDOW_SECONDS must be greater than 0")
        if self.queue_max < 0:
            raise ValueError("QUEUE_MAX cannot be negative")
        if not self.script_prefix or ":" in self.script_prefix:
            raise ValueError("SCRIPT_PREFIX must be non-empty and contain no ':'")


@dataclass(frozen=True)
class AgentSettings:
    """Settings for the endpoint agent process (device_agent.py)."""

    hub_url: str = "http://127.0.0.1:4000"
    device_id: str = ""
    mode: str = "poll"
    poll_seconds: float = 5.0
    heartbeat_seconds: float = 15.0
    reconnect_seconds: float = 5.0
    command_timeout: float = 120.0
    request_timeout: float = 10.0
    script_prefix: str = "PS64"
    script_interpreter: list = field(default_factory=_default_interpreter)
    script_suffix: str = ".ps1"

    def __post_init__(self):
        if self.mode not in AGENT_MODES:
            raise ValueError(f"AGENT_MODE must be one of {AGENT_MODES}, got '{self.mode}'")


def load_settings(env_file: Optional[str] = None) -> Settings:
    """Reads hub settings from the environment (after loading .env)."""

    load_dotenv(env_file)

    origins = [o.strip() for o in _env_str("CORS_ORIGINS", "*").split(",") if o.strip()]

    return Settings(
        host=_env_str("HOST", "0.0.0.0"),
        port=_env_int("PORT", 4000),
        hub_mode=_env_str("HUB_MODE", "poll").lower(),
        admin_token=_env_str("ADMIN_TOKEN"),
        stats_token=_env_str("STATS_TOKEN"),
        online_window_seconds=_env_float("ONLINE_WINDOW_SECONDS", 30.0),
        queue_max=_env_int("QUEUE_MAX", 0),
        script_prefix=_env_str("SCRIPT_PREFIX", "PS64"),
        cors_origins=tuple(origins or ["*"]),
        log_level=_env_str("LOG_LEVEL", "INFO").upper(),
    )


def load_agent_settings(env_file: Optional[str] = None) -> AgentSettings:
    load_dotenv(env_file)

    interpreter = _env_str("AGENT_SCRIPT_INTERPRETER")

    return AgentSettings(
        hub_url=_env_str("HUB_URL", "http://127.0.0.1:4000").rstrip("/"),
        device_id=_env_str("DEVICE_ID"),
        mode=_env_str("AGENT_MODE", "poll").lower(),
        poll_seconds=_env_float("AGENT_POLL_SECONDS", 5.0),
        heartbeat_seconds=_env_float("AGENT_HEARTBEAT_SECONDS", 15.0),
        reconnect_seconds=_env_float("AGENT_RECONNECT_SECONDS", 5.0),
        command_timeout=_env_float("AGENT_COMMAND_TIMEOUT", 120.0),
        request_timeout=_env_float("AGENT_REQUEST_TIMEOUT", 10.0),
        script_prefix=_env_str("SCRIPT_PREFIX", "PS64"),
        script_interpreter=shlex.split(interpreter) if interpreter else _default_interpreter(),
        script_suffix=_env_str("AGENT_SCRIPT_SUFFIX", ".ps1"),
    )
