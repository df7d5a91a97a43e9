# ─────────────────────────────────────────────────────────────────
# deps.py: Wiring & Request Dependencies
#
# build_relay() assembles the core around ONE store instance:
#
#   MemoryStore ─┬─ LivenessStore ─┐
#                └─ ConfigStore ───┴─ HeartbeatIngest
#                        └──────────── ConfigSync
#
# main.py keeps the result on app.state; routes reach it through
# the FastAPI dependencies below instead of importing globals.
# ─────────────────────────────────────────────────────────────────

import logging
import secrets
from dataclasses import dataclass
from typing import Optional

from fastapi import Header, HTTPException, Request

import config
from config_store import ConfigStore
from database import MemoryStore, now_ms
from ingest import HeartbeatIngest
from liveness import LivenessStore
from sync import ConfigSync

logger = logging.getLogger("deps")


@dataclass
class Relay:
    store: MemoryStore
    liveness: LivenessStore
    configs: ConfigStore
    ingest: HeartbeatIngest
    sync: ConfigSync


def build_relay(store=None, clock=now_ms,
                offline_threshold_s: float = config.OFFLINE_THRESHOLD_S,
                slot_count: int = config.SLOT_COUNT,
                timeout: Optional[float] = config.STORE_TIMEOUT_S):
    store = store if store is not None else MemoryStore()
    liveness = LivenessStore(store, offline_threshold_s=offline_threshold_s,
                             clock=clock, timeout=timeout)
    configs = ConfigStore(store, slot_count=slot_count, clock=clock, timeout=timeout)
    return Relay(
        store=store,
        liveness=liveness,
        configs=configs,
        ingest=HeartbeatIngest(liveness, configs),
        sync=ConfigSync(configs),
    )


def get_relay(request: Request) -> Relay:
    return request.app.state.relay


def require_operator(
    x_admin_user: str = Header(""),
    x_admin_pass: str = Header(""),
):
    """
    Config writes are privileged; device reads and heartbeats are not.
    The store itself never checks who is calling, so this is the gate.
    """
    user_ok = secrets.compare_digest(x_admin_user.encode(), config.ADMIN_USER.encode())
    pass_ok = secrets.compare_digest(x_admin_pass.encode(), config.ADMIN_PASS.encode())
    if not (user_ok and pass_ok):
        logger.warning(f"⛔ Rejected operator credentials for user '{x_admin_user}'")
        raise HTTPException(status_code=401, detail="Operator credentials required")
    return x_admin_user
