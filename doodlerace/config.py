from __future__ import annotations

import os


def env_bool(name: str, default: bool) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    return v.strip().lower() in ("1", "true", "yes", "y", "on")


def env_int(name: str, default: int) -> int:
    v = os.getenv(name)
    return default if v is None else int(v)


def env_float(name: str, default: float) -> float:
    v = os.getenv(name)
    return default if v is None else float(v)


def env_str(name: str, default: str) -> str:
    v = os.getenv(name)
    return default if v is None else v


# ============================
# MQTT transport
# ============================
MQTT_BROKER_URL = env_str("MQTT_BROKER_URL", "")  # empty disables the transport
MQTT_USER = env_str("MQTT_USER", "")
MQTT_PASS = env_str("MQTT_PASS", "")
MQTT_TOPIC = env_str("MQTT_TOPIC", "yokohama/hackathon/running/player1")
MQTT_CONTROL_TOPIC = env_str("MQTT_CONTROL_TOPIC", "dorosupi/controller")
MQTT_KEEPALIVE_S = env_int("MQTT_KEEPALIVE_S", 30)

LOG_RX = env_bool("LOG_RX", True)
LOG_EVENTS = env_bool("LOG_EVENTS", True)

# ============================
# Controller -> player mapping
# ============================
PLAYER1_ID = env_str("PLAYER1_ID", "")  # e.g. 00:4B:12:C4:FF:18
PLAYER2_ID = env_str("PLAYER2_ID", "")
CONTROLLER_MAP_FILE = env_str("CONTROLLER_MAP_FILE", "")  # yaml {identity: slot}

# ============================
# Drawing store
# ============================
DRAWINGS_URL = env_str("DRAWINGS_URL", "")  # base url, /api/blobs is appended
DRAWINGS_FILE = env_str("DRAWINGS_FILE", "")  # yaml manifest for offline play
DRAWINGS_TIMEOUT_S = env_float("DRAWINGS_TIMEOUT_S", 5.0)

# ============================
# Selection stage
# ============================
STAGE_LIMIT = env_float("STAGE_LIMIT", 40.0)
DEFAULT_STEP = env_float("DEFAULT_STEP", 6.0)

# ============================
# Race
# ============================
WINNING_POSITION = env_int("WINNING_POSITION", 100)
MOVE_AMOUNT = env_int("MOVE_AMOUNT", 2)
COUNTDOWN_TICKS = env_int("COUNTDOWN_TICKS", 3)
COUNTDOWN_TICK_S = env_float("COUNTDOWN_TICK_S", 1.0)

# ============================
# Main loop
# ============================
LOOP_HZ = env_float("LOOP_HZ", 60.0)
DEBUG_KEYS = env_bool("DEBUG_KEYS", True)
