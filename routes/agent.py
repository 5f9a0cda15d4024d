# ─────────────────────────────────────────────────────────────────
# routes/agent.py — Endpoints Agents Call
#
# No operator token here: agents identify themselves only by the
# deviceId they send. Every call is also a presence signal, so a device
# with an empty queue still shows online as long as it keeps polling.
# ─────────────────────────────────────────────────────────────────

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request

from commands import to_wire
from config import Settings
from deps import client_ip, get_registry, get_settings
from models import HeartbeatBody, PullResponse, require
from registry import Registry

logger = logging.getLogger("routes.agent")

heartbeat_router = APIRouter(prefix="/api", tags=["Agent"])
pull_router = APIRouter(prefix="/api", tags=["Agent"])


# ─────────────────────────────────────────────────────────────────
# GET /api/pull?deviceId=PC1 — Fetch the next queued command
# ─────────────────────────────────────────────────────────────────

@pull_router.get("/pull", response_model=PullResponse)
async def pull(
    request: Request,
    deviceId: Optional[str] = None,
    registry: Registry = Depends(get_registry),
    settings: Settings = Depends(get_settings),
):
    """
    Flow:
    1. deviceId missing → 400
    2. Mark the device as seen (address from X-Forwarded-For / peer)
    3. Pop the oldest queued command, if any
    """

    device_id = require(deviceId, "deviceId")
    registry.record_contact(device_id, client_ip(request))

    command = registry.dequeue_one(device_id)
    if command is None:
        return PullResponse()

    logger.info(f"📤 '{device_id}' pulled a {command.kind} command")
    return PullResponse(command=to_wire(command, settings.script_prefix), kind=command.kind)


# ─────────────────────────────────────────────────────────────────
# POST /api/heartbeat — Report metadata
# ─────────────────────────────────────────────────────────────────

@heartbeat_router.post("/heartbeat")
async def heartbeat(body: HeartbeatBody, request: Request, registry: Registry = Depends(get_registry)):
    device_id = require(body.deviceId, "deviceId")

    registry.record_contact(
        device_id,
        client_ip(request),
        hostname=body.hostname,
        username=body.username,
        os=body.os,
    )

    logger.debug(f"💓 Heartbeat from '{device_id}'")
    return {"ok": True}
