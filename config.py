# ─────────────────────────────────────────────────────────────────
# config.py: Runtime Settings
#
# Every knob the relay reads is defined once here.
# Each value can be overridden with an environment variable of
# the same name, e.g.  OFFLINE_THRESHOLD_S=45 python main.py
# ─────────────────────────────────────────────────────────────────

import os

APP_NAME = "Junction Relay"
APP_VERSION = "1.0.0"

# A device is "online" while its last heartbeat is at most this old.
# Devices ping roughly every 10s, so 30s tolerates two lost pings.
OFFLINE_THRESHOLD_S = float(os.environ.get("OFFLINE_THRESHOLD_S", 30))

# Message slots per device per signal class
SLOT_COUNT = int(os.environ.get("SLOT_COUNT", 5))

# How often the background sweep re-derives statuses (0 = no sweep)
SWEEP_INTERVAL_S = float(os.environ.get("SWEEP_INTERVAL_S", 10))

# Upper bound for a single store call made by the HTTP layer
STORE_TIMEOUT_S = float(os.environ.get("STORE_TIMEOUT_S", 5))

# Operator credentials for config writes (sent as x-admin-user / x-admin-pass)
ADMIN_USER = os.environ.get("ADMIN_USER", "admin")
ADMIN_PASS = os.environ.get("ADMIN_PASS", "admin123")

HOST = os.environ.get("HOST", "0.0.0.0")
PORT = int(os.environ.get("PORT", 5000))
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
