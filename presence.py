# ─────────────────────────────────────────────────────────────────
# presence.py — Online / Offline Derivation
#
# Presence is never stored. A device is "online" when its last contact
# is within the presence window, and that is computed fresh every time
# somebody asks. There is no background countdown: the state only
# moves when a device calls in (pull, heartbeat, or a push frame).
#
#   unknown ──first contact──▶ seen ──window passes──▶ stale
#                               ▲                        │
#                               └──────next contact──────┘
# ─────────────────────────────────────────────────────────────────

from typing import Optional

UNKNOWN = "unknown"
SEEN = "seen"
STALE = "stale"


def is_online(now: float, last_seen: float, window: float) -> bool:
    """True iff (now - last_seen) <= window. All values in seconds."""
    return (now - last_seen) <= window


def presence_state(record: Optional[dict], now: float, window: float) -> str:
    """
    Returns "unknown", "seen" or "stale" for a registry record.

    `record` is the dict kept by the Registry (or None when the device
    has never called in / was removed).
    """

    if not record:
        return UNKNOWN

    if is_online(now, record["last_seen"], window):
        return SEEN

    return STALE
