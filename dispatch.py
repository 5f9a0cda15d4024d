# ─────────────────────────────────────────────────────────────────
# dispatch.py — Command Delivery
#
# The hub runs with exactly one delivery model, chosen by HUB_MODE:
#
#   QueueDispatcher  (poll)  → command waits in the device queue until
#                              the agent pulls it. Survives the agent
#                              being offline, not a hub restart.
#   LiveDispatcher   (push)  → command is written to the open socket
#                              right now, or the send fails with 404.
#                              Nothing is kept for later.
#
# /api/command and /api/ps only ever talk to a Dispatcher.
# ─────────────────────────────────────────────────────────────────

from commands import Command, to_wire
from connections import ConnectionRegistry
from registry import Registry


class QueueDispatcher:
    mode = "poll"

    def __init__(self, registry: Registry):
        self.registry = registry

    async def send(self, device_id: str, command: Command) -> dict:
        pending = self.registry.enqueue(device_id, command)
        return {"ok": True, "queued": pending}


class LiveDispatcher:
    mode = "push"

    def __init__(self, connections: ConnectionRegistry, prefix: str):
        self.connections = connections
        self.prefix = prefix

    async def send(self, device_id: str, command: Command) -> dict:
        await self.connections.send(device_id, {
            "type": "command",
            "command": to_wire(command, self.prefix),
            "kind": command.kind,
        })
        return {"ok": True, "delivered": True}
