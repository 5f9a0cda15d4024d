# ─────────────────────────────────────────────────────────────────
# routes/push.py — WebSocket Endpoint for Push Mode
#
# WS /ws/agent?deviceId=PC1&hostname=...&username=...&os=...
#
# Front-end proxies sometimes strip the query string, so a missing
# deviceId never rejects the connection: the hub makes one up from the
# peer address and tells the agent in the welcome frame.
#
# Frames hub → agent:
#   {"type": "welcome", "deviceId": "..."}
#   {"type": "command", "command": "...", "kind": "plain" | "script"}
# Frames agent → hub:
#   {"type": "result", "output": "...", "exit_code": 0}
#   anything else is only a presence signal
# ─────────────────────────────────────────────────────────────────

import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from deps import client_ip, get_connections, get_registry

logger = logging.getLogger("routes.push")

router = APIRouter()


@router.websocket("/ws/agent")
async def ws_agent(ws: WebSocket):
    connections = get_connections(ws)
    registry = get_registry(ws)

    peer = client_ip(ws)
    params = ws.query_params
    device_id = connections.resolve_identity(params.get("deviceId"), peer)

    await ws.accept()
    connections.attach(device_id, ws, peer)
    registry.record_contact(
        device_id,
        peer,
        hostname=params.get("hostname"),
        username=params.get("username"),
        os=params.get("os"),
    )

    try:
        await ws.send_json({"type": "welcome", "deviceId": device_id})

        while True:
            message = await ws.receive()
            if message["type"] == "websocket.disconnect":
                break

            registry.record_contact(device_id, peer)

            # binary frames are read as UTF-8 text
            msg = message.get("text")
            if msg is None:
                msg = (message.get("bytes") or b"").decode("utf-8", "replace")

            try:
                data = json.loads(msg)
            except ValueError:
                data = {"output": msg}

            if not isinstance(data, dict):
                logger.debug(f"Ignoring non-object frame from '{device_id}'")
                continue

            if data.get("type") == "result" or "exit_code" in data:
                output = str(data.get("output") or "").rstrip()
                logger.info(f"📨 Result from '{device_id}' (exit {data.get('exit_code')}):\n{output}")
            else:
                logger.debug(f"Frame from '{device_id}': {data}")

    except WebSocketDisconnect:
        pass
    finally:
        connections.detach(device_id, ws)
