#!/usr/bin/env python3
"""
Check the connection to the Redis server (backend/.env settings).

Usage (from the repository root):
    python backend/scripts/check_redis.py
    REDIS_HOST=... REDIS_PORT=... REDIS_PASSWORD=... python backend/scripts/check_redis.py
"""
from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from backend.cache_inspector.cli import check_redis_main  # noqa: E402

if __name__ == "__main__":
    raise SystemExit(check_redis_main())
