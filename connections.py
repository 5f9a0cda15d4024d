# ─────────────────────────────────────────────────────────────────
# connections.py — Live Agent Connections (push mode)
#
# Maps device id → the WebSocket that device currently holds open.
# A reconnect under the same id replaces the old socket. A command is
# written straight to the socket; if the device is not connected the
# send fails with NotFoundError and nothing is kept for later.
# ─────────────────────────────────────────────────────────────────

import logging
import secrets
from typing import Any, Optional

from fastapi import WebSocket

import notices
from errors import NotFoundError

logger = logging.getLogger("connections")


class ConnectionRegistry:
    def __init__(self):
        self.live: dict[str, WebSocket] = {}
        # every id ever handed out, so synthesized ids never repeat
        self.assigned: set[str] = set()

    def resolve_identity(self, claimed: Optional[str], peer_host: Optional[str]) -> str:
        """
        Picks the id for a new connection.

        A claimed id (from the deviceId query parameter) is used as-is.
        Without one the connection is still accepted: the id becomes
        "<peer host>-<8 hex chars>", drawn again until it is new.
        """

        claimed = (claimed or "").strip()
        if claimed:
            self.assigned.add(claimed)
            return claimed

        host = (peer_host or "").strip() or "anon"
        while True:
            candidate = f"{host}-{secrets.token_hex(4)}"
            if candidate not in self.assigned:
                self.assigned.add(candidate)
                return candidate

    def attach(self, device_id: str, ws: WebSocket, peer_host: str = "") -> bool:
        """Registers the socket. Returns True when it replaced an older one."""

        replaced = device_id in self.live
        self.live[device_id] = ws
        notices.announce_connected(device_id, peer_host, replaced)
        return replaced

    def detach(self, device_id: str, ws: WebSocket) -> bool:
        """Removes the id only if `ws` is still its current socket."""

        if self.live.get(device_id) is not ws:
            return False
        del self.live[device_id]
        notices.announce_disconnected(device_id)
        return True

    def is_connected(self, device_id: str) -> bool:
        return device_id in self.live

    async def send(self, device_id: str, payload: dict[str, Any]):
        ws = self.live.get(device_id)
        if ws is None:
            raise NotFoundError(f"Device '{device_id}' is not connected")

        try:
            await ws.send_json(payload)
        except Exception as e:
            # the socket is dead even if the receive loop has not noticed yet
            logger.warning(f"Send to '{device_id}' failed: {e}")
            self.detach(device_id, ws)
            raise NotFoundError(f"Device '{device_id}' is not connected")

    async def close(self, device_id: str) -> bool:
        ws = self.live.get(device_id)
        if ws is None:
            return False
        self.detach(device_id, ws)
        try:
            await ws.close()
        except RuntimeError:
            # already closed by the other side
            pass
        return True
