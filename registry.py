# ─────────────────────────────────────────────────────────────────
# registry.py — In-Memory Device Registry & Command Queues
#
# This file owns all hub state for the poll mode:
#   devices  → device id → record dict (address, metadata, last_seen)
#   queues   → device id → deque of pending Command objects
#
# Nothing is persisted: a restart forgets every device and command.
#
# One Registry lives on app.state and is handed to route handlers
# through a FastAPI dependency, so tests build a fresh one per app.
#
# Every method runs to completion without awaiting, and the routes are
# async, so all mutations happen on the single event loop thread and
# need no lock. Calling these from worker threads would need one.
# ─────────────────────────────────────────────────────────────────

import logging
import time
from collections import deque
from typing import Callable, Optional

import notices
from commands import Command
from errors import ValidationError
from presence import STALE, UNKNOWN, is_online, presence_state

logger = logging.getLogger("registry")

METADATA_FIELDS = ("hostname", "username", "os")


class Registry:
    def __init__(self, window: float = 30.0, queue_max: int = 0, clock: Callable[[], float] = time.time):
        self.window = window
        self.queue_max = queue_max
        self.clock = clock

        self.devices: dict[str, dict] = {}
        self.queues: dict[str, deque] = {}

        # lifetime counters for /stats
        self.ever_seen: set[str] = set()
        self.deleted: set[str] = set()

    # ── presence ──────────────────────────────────────────────────

    def record_contact(self, device_id: str, address: str = "", **metadata) -> dict:
        """
        Upserts the device record and refreshes last_seen.

        Metadata fields passed as None (or not passed at all) keep their
        previous value. An empty address keeps the previous address.
        """

        now = self.clock()
        prev = self.devices.get(device_id)
        state = presence_state(prev, now, self.window)

        if prev is None:
            prev = {"id": device_id, "ip": "", "hostname": "", "username": "", "os": "", "last_seen": 0.0}

        record = {
            "id": device_id,
            "ip": address or prev["ip"],
            "last_seen": now,
        }
        for name in METADATA_FIELDS:
            value = metadata.get(name)
            record[name] = prev[name] if value is None else str(value)

        self.devices[device_id] = record
        self.ever_seen.add(device_id)

        if state == UNKNOWN:
            notices.announce_new_device(device_id, record["ip"])
        elif state == STALE:
            notices.announce_return(device_id, record["ip"], now - prev["last_seen"])

        return record

    def get(self, device_id: str) -> Optional[dict]:
        return self.devices.get(device_id)

    def list(self) -> list[dict]:
        """All records with a computed `online` flag, most recent contact first."""

        now = self.clock()
        out = [
            {**record, "online": is_online(now, record["last_seen"], self.window)}
            for record in self.devices.values()
        ]
        out.sort(key=lambda r: r["last_seen"], reverse=True)
        return out

    # ── queues ────────────────────────────────────────────────────

    def enqueue(self, device_id: str, command: Command) -> int:
        """Appends a command and returns the new queue length."""

        queue = self.queues.setdefault(device_id, deque())

        if self.queue_max and len(queue) >= self.queue_max:
            raise ValidationError(
                f"Queue for '{device_id}' already holds {len(queue)} command(s)",
                code="queue_full",
            )

        queue.append(command)
        logger.info(f"📥 Queued {command.kind} command for '{device_id}' ({len(queue)} pending)")
        return len(queue)

    def dequeue_one(self, device_id: str) -> Optional[Command]:
        """Oldest pending command, or None when there is nothing to do."""

        queue = self.queues.get(device_id)
        if not queue:
            return None
        return queue.popleft()

    def queue_sizes(self) -> dict[str, int]:
        return {device_id: len(queue) for device_id, queue in self.queues.items()}

    # ── removal & stats ───────────────────────────────────────────

    def remove(self, device_id: str) -> bool:
        """Drops the record and its queue. Returns False if neither existed."""

        record = self.devices.pop(device_id, None)
        queue = self.queues.pop(device_id, None)
        self.deleted.add(device_id)

        notices.announce_removed(device_id, len(queue) if queue else 0)
        return record is not None or queue is not None

    def stats(self) -> dict:
        now = self.clock()
        active = sum(1 for r in self.devices.values() if is_online(now, r["last_seen"], self.window))

        return {
            "ts": int(now * 1000),
            "installed": len(self.ever_seen) or len(self.devices),
            "active": active,
            "offline": len(self.devices) - active,
            "deleted": len(self.deleted),
        }
