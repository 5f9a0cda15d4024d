# ─────────────────────────────────────────────────────────────────
# deps.py — FastAPI Dependencies
#
# Route handlers never import hub state directly. They ask for it with
# Depends(get_registry) etc., and these read it off app.state, where
# create_app() put it.
# ─────────────────────────────────────────────────────────────────

from starlette.requests import HTTPConnection

from config import Settings
from connections import ConnectionRegistry
from registry import Registry


def get_settings(conn: HTTPConnection) -> Settings:
    return conn.app.state.settings


def get_registry(conn: HTTPConnection) -> Registry:
    return conn.app.state.registry


def get_connections(conn: HTTPConnection) -> ConnectionRegistry:
    return conn.app.state.connections


def get_dispatcher(conn: HTTPConnection):
    return conn.app.state.dispatcher


def client_ip(conn: HTTPConnection) -> str:
    """First X-Forwarded-For hop, else the socket peer, else ""."""

    xff = conn.headers.get("x-forwarded-for", "")
    ip = xff.split(",")[0].strip() if xff else ""
    if ip:
        return ip
    return conn.client.host if conn.client else ""
