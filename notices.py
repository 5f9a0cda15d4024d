# ─────────────────────────────────────────────────────────────────
# notices.py — Logging Setup & Device Notices
#
# All logging configuration lives here, and so do the human-readable
# notices the hub emits when a device appears, comes back after going
# stale, or is removed by an operator. Other modules only call the
# announce_* functions and never format these lines themselves.
# ─────────────────────────────────────────────────────────────────

import logging

LOG_FORMAT = "%(asctime)s — %(levelname)s — [%(name)s] — %(message)s"


def configure_logging(level: str = "INFO"):
    """
    basicConfig sets the global format for ALL log messages.
    Safe to call more than once: only the first call installs handlers,
    later calls just adjust the level.
    """

    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger().setLevel(level)


logger = logging.getLogger("notices")


def announce_new_device(device_id: str, ip: str):
    logger.info(f"🆕 New device '{device_id}' from {ip or 'unknown address'}")


def announce_return(device_id: str, ip: str, away_seconds: float):
    logger.info(f"🔄 Device '{device_id}' is back after {away_seconds:.0f}s ({ip or 'unknown address'})")


def announce_removed(device_id: str, dropped_commands: int):
    if dropped_commands:
        logger.warning(f"🗑️  Device '{device_id}' removed — {dropped_commands} queued command(s) discarded")
    else:
        logger.info(f"🗑️  Device '{device_id}' removed")


def announce_connected(device_id: str, ip: str, replaced: bool):
    if replaced:
        logger.info(f"🔌 Device '{device_id}' reconnected from {ip or 'unknown address'} — old socket replaced")
    else:
        logger.info(f"🔌 Device '{device_id}' connected from {ip or 'unknown address'}")


def announce_disconnected(device_id: str):
    logger.info(f"⛔ Device '{device_id}' disconnected")
