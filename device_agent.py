# ─────────────────────────────────────────────────────────────────
# device_agent.py — The Process That Runs on Each Device
#
# Two ways to talk to the hub, matching HUB_MODE on the server:
#
#   PollAgent  → POST /api/heartbeat every AGENT_HEARTBEAT_SECONDS,
#                GET /api/pull every AGENT_POLL_SECONDS
#   PushAgent  → keeps WS /ws/agent open, runs every "command" frame,
#                answers with a "result" frame
#
# Either way a command is a PlainCommand (run through the shell) or an
# EncodedScript (written to a temp file and run by the script
# interpreter). The temp file is removed on every exit path.
#
# Usage:
#   python device_agent.py --hub http://hub:4000 --device-id PC1
#   python device_agent.py --hub http://hub:4000 --mode push
# ─────────────────────────────────────────────────────────────────

import argparse
import asyncio
import getpass
import json
import logging
import os
import platform
import socket
import subprocess
import tempfile
from dataclasses import dataclass, replace
from typing import Optional
from urllib.parse import urlencode

import httpx
import websockets
from websockets.exceptions import WebSocketException

from commands import Command, EncodedScript, from_wire
from config import AgentSettings, load_agent_settings
from errors import ValidationError
from notices import configure_logging

logger = logging.getLogger("agent")

EXIT_TIMEOUT = 124
EXIT_NOT_FOUND = 127
# same as sysexits EX_DATAERR
EXIT_BAD_COMMAND = 65


@dataclass
class ExecResult:
    output: str
    exit_code: int


def describe_host() -> dict:
    try:
        username = getpass.getuser()
    except Exception:
        username = os.getenv("USERNAME") or os.getenv("USER") or ""

    return {
        "hostname": socket.gethostname(),
        "username": username,
        "os": f"{platform.system()} {platform.release()}".strip(),
    }


# ─────────────────────────────────────────────────────────────────
# COMMAND EXECUTION — blocking, called through asyncio.to_thread
# ─────────────────────────────────────────────────────────────────

def _run(args, timeout: float, shell: bool = False) -> ExecResult:
    try:
        proc = subprocess.run(
            args,
            shell=shell,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        partial = e.output if isinstance(e.output, str) else (e.output or b"").decode("utf-8", "replace")
        return ExecResult(partial + f"\n[timed out after {timeout:g}s]", EXIT_TIMEOUT)
    except FileNotFoundError as e:
        return ExecResult(f"[not found: {e.filename or e}]", EXIT_NOT_FOUND)

    return ExecResult(proc.stdout or "", proc.returncode)


def run_shell(text: str, timeout: float) -> ExecResult:
    if os.name == "nt":
        return _run(["cmd.exe", "/c", text], timeout)
    return _run(text, timeout, shell=True)


def run_script(body: bytes, settings: AgentSettings) -> ExecResult:
    """
    Writes the decoded script to a uniquely named temp file, runs it
    with the configured interpreter, and deletes the file afterwards
    whether the run succeeded, failed, timed out or never started.
    """

    script = body.decode("utf-8")
    fd, path = tempfile.mkstemp(prefix="devicehub-", suffix=settings.script_suffix)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(script)
        return _run([*settings.script_interpreter, path], settings.command_timeout)
    finally:
        try:
            os.remove(path)
        except FileNotFoundError:
            pass


def execute(command: Command, settings: AgentSettings) -> ExecResult:
    if isinstance(command, EncodedScript):
        logger.info(f"▶️  Running script ({len(command.body)} bytes)")
        return run_script(command.body, settings)

    logger.info(f"▶️  Running: {command.text}")
    return run_shell(command.text, settings.command_timeout)


def bad_command(e: Exception) -> ExecResult:
    return ExecResult(f"[bad command: {e}]", EXIT_BAD_COMMAND)


def log_result(result: ExecResult):
    output = result.output.rstrip()
    if result.exit_code == 0:
        logger.info(f"✅ exit 0\n{output}" if output else "✅ exit 0")
    else:
        logger.warning(f"❌ exit {result.exit_code}\n{output}")


# ─────────────────────────────────────────────────────────────────
# POLL AGENT
# ─────────────────────────────────────────────────────────────────

class PollAgent:
    def __init__(self, settings: AgentSettings, client: Optional[httpx.AsyncClient] = None):
        self.settings = settings
        self.client = client or httpx.AsyncClient(base_url=settings.hub_url, timeout=settings.request_timeout)
        self.host = describe_host()

    async def heartbeat(self):
        r = await self.client.post("/api/heartbeat", json={"deviceId": self.settings.device_id, **self.host})
        r.raise_for_status()

    async def pull(self) -> Optional[Command]:
        r = await self.client.get("/api/pull", params={"deviceId": self.settings.device_id})
        r.raise_for_status()
        data = r.json()

        wire = data.get("command")
        if wire is None:
            return None
        return from_wire(wire, data.get("kind"), self.settings.script_prefix)

    async def run_once(self) -> Optional[ExecResult]:
        """One pull; runs the command if there was one."""

        try:
            command = await self.pull()
            if command is None:
                return None
            result = await asyncio.to_thread(execute, command, self.settings)
        except (ValidationError, UnicodeDecodeError) as e:
            # already dequeued on the hub, so it is reported and dropped
            result = bad_command(e)

        log_result(result)
        return result

    async def run_forever(self):
        loop = asyncio.get_running_loop()
        next_heartbeat = 0.0

        logger.info(f"Polling {self.settings.hub_url} as '{self.settings.device_id}'")

        while True:
            try:
                if loop.time() >= next_heartbeat:
                    await self.heartbeat()
                    next_heartbeat = loop.time() + self.settings.heartbeat_seconds
                await self.run_once()
            except httpx.HTTPError as e:
                logger.warning(f"Hub unreachable: {e}")
            except Exception:
                logger.exception("Poll cycle failed")

            await asyncio.sleep(self.settings.poll_seconds)


# ─────────────────────────────────────────────────────────────────
# PUSH AGENT
# ─────────────────────────────────────────────────────────────────

def ws_url(settings: AgentSettings, host: dict) -> str:
    base = settings.hub_url
    if base.startswith("https://"):
        base = "wss://" + base[len("https://"):]
    elif base.startswith("http://"):
        base = "ws://" + base[len("http://"):]

    params = {k: v for k, v in host.items() if v}
    if settings.device_id:
        params = {"deviceId": settings.device_id, **params}

    return f"{base}/ws/agent?{urlencode(params)}"


class PushAgent:
    def __init__(self, settings: AgentSettings):
        self.settings = settings
        self.host = describe_host()
        self.device_id = settings.device_id

    async def handle_frame(self, raw: str) -> Optional[dict]:
        """Returns the frame to send back, if any."""

        try:
            data = json.loads(raw)
        except ValueError:
            logger.debug(f"Ignoring non-JSON frame: {raw!r}")
            return None

        if not isinstance(data, dict):
            return None

        if data.get("type") == "welcome":
            self.device_id = data.get("deviceId") or self.device_id
            logger.info(f"Hub knows us as '{self.device_id}'")
            return None

        if data.get("type") != "command" or data.get("command") is None:
            return None

        try:
            command = from_wire(data["command"], data.get("kind"), self.settings.script_prefix)
            result = await asyncio.to_thread(execute, command, self.settings)
        except (ValidationError, UnicodeDecodeError) as e:
            result = bad_command(e)

        log_result(result)
        return {"type": "result", "output": result.output, "exit_code": result.exit_code}

    async def session(self):
        # reuse the id the hub assigned last time, if any
        url = ws_url(replace(self.settings, device_id=self.device_id), self.host)
        async with websockets.connect(url, ping_interval=20, ping_timeout=20) as ws:
            logger.info(f"Connected to {url}")
            async for raw in ws:
                reply = await self.handle_frame(raw)
                if reply is not None:
                    await ws.send(json.dumps(reply))

    async def run_forever(self):
        while True:
            try:
                await self.session()
            except (OSError, WebSocketException) as e:
                logger.warning(f"Connection lost: {e}")
            except Exception:
                logger.exception("Push session failed")

            await asyncio.sleep(self.settings.reconnect_seconds)


# ─────────────────────────────────────────────────────────────────
# CLI
# ─────────────────────────────────────────────────────────────────

def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="DeviceHub agent")
    parser.add_argument("--hub", help="hub base URL, e.g. http://127.0.0.1:4000 (env HUB_URL)")
    parser.add_argument("--device-id", help="id to report (env DEVICE_ID; defaults to the hostname in poll mode)")
    parser.add_argument("--mode", choices=["poll", "push"], help="env AGENT_MODE, default poll")
    parser.add_argument("--log-level", default=os.getenv("LOG_LEVEL", "INFO"))
    return parser.parse_args(argv)


def build_settings(args) -> AgentSettings:
    settings = load_agent_settings()

    overrides = {}
    if args.hub:
        overrides["hub_url"] = args.hub.rstrip("/")
    if args.device_id:
        overrides["device_id"] = args.device_id
    if args.mode:
        overrides["mode"] = args.mode

    settings = replace(settings, **overrides)

    # the poll API has no way to hand out an id, so fall back to the hostname
    if settings.mode == "poll" and not settings.device_id:
        settings = replace(settings, device_id=socket.gethostname())

    return settings


def main(argv=None):
    args = parse_args(argv)
    configure_logging(args.log_level.upper())
    settings = build_settings(args)

    if settings.mode == "push":
        agent = PushAgent(settings)
    else:
        agent = PollAgent(settings)

    try:
        asyncio.run(agent.run_forever())
    except KeyboardInterrupt:
        logger.info("Agent stopped")


if __name__ == "__main__":
    main()
