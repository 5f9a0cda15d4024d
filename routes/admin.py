# ─────────────────────────────────────────────────────────────────
# routes/admin.py — Operator Endpoints
#
# Everything here except /stats needs the operator token (auth.py).
# Commands go through whichever Dispatcher the app was built with,
# so the same endpoint either queues (poll) or sends live (push).
# ─────────────────────────────────────────────────────────────────

import logging

from fastapi import APIRouter, Depends

from auth import require_admin, require_stats_token
from commands import encode_script, plain_command
from config import Settings
from connections import ConnectionRegistry
from deps import get_connections, get_dispatcher, get_registry, get_settings
from models import CommandBody, DeviceList, ScriptBody, require
from registry import Registry

logger = logging.getLogger("routes.admin")

router = APIRouter(prefix="/api", tags=["Admin"], dependencies=[Depends(require_admin)])
queues_router = APIRouter(prefix="/api", tags=["Admin"], dependencies=[Depends(require_admin)])
stats_router = APIRouter(tags=["Stats"])


# ─────────────────────────────────────────────────────────────────
# POST /api/command — Send a shell line to one device
# ─────────────────────────────────────────────────────────────────

@router.post("/command")
async def send_command(body: CommandBody, dispatcher=Depends(get_dispatcher)):
    device_id = require(body.deviceId, "deviceId")
    require(body.command, "command")

    return await dispatcher.send(device_id, plain_command(body.command))


# ─────────────────────────────────────────────────────────────────
# POST /api/ps — Send a script, carried base64-encoded
# ─────────────────────────────────────────────────────────────────

@router.post("/ps")
async def send_script(body: ScriptBody, dispatcher=Depends(get_dispatcher)):
    """
    The script text is UTF-8 encoded and shipped as
    "<SCRIPT_PREFIX>:<base64>", which sidesteps command-line length and
    quoting limits on the agent side.
    """

    device_id = require(body.deviceId, "deviceId")
    require(body.script, "script")

    return await dispatcher.send(device_id, encode_script(body.script))


# ─────────────────────────────────────────────────────────────────
# GET /api/devices — All known devices, newest contact first
# ─────────────────────────────────────────────────────────────────

@router.get("/devices", response_model=DeviceList)
async def list_devices(
    registry: Registry = Depends(get_registry),
    connections: ConnectionRegistry = Depends(get_connections),
    settings: Settings = Depends(get_settings),
):
    devices = registry.list()

    # with push delivery a device is only reachable while its socket is open
    if settings.hub_mode == "push":
        for d in devices:
            d["online"] = connections.is_connected(d["id"])

    return {"devices": devices}


# ─────────────────────────────────────────────────────────────────
# DELETE /api/devices/{device_id} — Forget a device and its queue
# ─────────────────────────────────────────────────────────────────

@router.delete("/devices/{device_id}")
async def delete_device(
    device_id: str,
    registry: Registry = Depends(get_registry),
    connections: ConnectionRegistry = Depends(get_connections),
):
    device_id = require(device_id, "deviceId")

    registry.remove(device_id)
    await connections.close(device_id)

    return {"ok": True}


# ─────────────────────────────────────────────────────────────────
# GET /api/queues — Pending command count per device (poll mode)
# ─────────────────────────────────────────────────────────────────

@queues_router.get("/queues")
async def queue_sizes(registry: Registry = Depends(get_registry)):
    return registry.queue_sizes()


# ─────────────────────────────────────────────────────────────────
# GET /stats?token=... — Fleet counters for external dashboards
# Separate token (STATS_TOKEN) so dashboards never hold the admin one.
# ─────────────────────────────────────────────────────────────────

@stats_router.get("/stats", dependencies=[Depends(require_stats_token)])
async def stats(
    registry: Registry = Depends(get_registry),
    connections: ConnectionRegistry = Depends(get_connections),
    settings: Settings = Depends(get_settings),
):
    counters = registry.stats()

    if settings.hub_mode == "push":
        tracked = len(registry.devices)
        active = sum(1 for device_id in registry.devices if connections.is_connected(device_id))
        counters["active"] = active
        counters["offline"] = tracked - active

    return counters
