#!/usr/bin/env python3
"""
Start the TrendScope API.

Usage:
  python3 main.py
"""

from __future__ import annotations

import os

import uvicorn


def main() -> int:
    host = os.environ.get("TRENDSCOPE_HOST", "127.0.0.1")
    port = int(os.environ.get("TRENDSCOPE_PORT", "8000"))
    print(f"[START] Launching TrendScope API on http://{host}:{port} ...")
    uvicorn.run(
        "trendscope.app:app",
        host=host,
        port=port,
        log_level="info",
    )
    print("[STOP] TrendScope API stopped.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
