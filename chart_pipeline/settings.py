from __future__ import annotations

import os


def get_env(name: str, default: str | None = None) -> str:
    v = os.getenv(name, default)
    if v is None:
        raise RuntimeError(f"Missing required env var: {name}")
    return v


def get_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise RuntimeError(f"Invalid number for env var {name}: {raw!r}")


# Per-period entries live longer than the shared "all logs" snapshot.
PERIOD_CACHE_TTL_SECONDS = get_float("PERIOD_CACHE_TTL_SECONDS", 300.0)
SESSION_CACHE_TTL_SECONDS = get_float("SESSION_CACHE_TTL_SECONDS", 60.0)

DEFAULT_MAX_DATA_POINTS = int(get_float("DEFAULT_MAX_DATA_POINTS", 50))

LOG_LEVEL = get_env("LOG_LEVEL", "INFO").upper()
LOG_JSON = os.getenv("LOG_JSON", "false").lower() in ("1", "true", "yes", "y")

HOST = get_env("HOST", "0.0.0.0")
PORT = int(get_float("PORT", 8765))
