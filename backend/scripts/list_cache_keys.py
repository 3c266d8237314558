#!/usr/bin/env python3
"""
List the keys currently cached in Redis (prefix "cache:": dashboard, stats, ...).

Usage (from the repository root):
    python backend/scripts/list_cache_keys.py
    python backend/scripts/list_cache_keys.py --show-values   # value previews
"""
from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from backend.cache_inspector.cli import list_cache_keys_main  # noqa: E402

if __name__ == "__main__":
    raise SystemExit(list_cache_keys_main())
