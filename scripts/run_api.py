#!/usr/bin/env python3
"""Run the perpetual auction API server.

This script starts the uvicorn server for the auction HTTP API.

Usage:
    python scripts/run_api.py [--host HOST] [--port PORT]

Environment:
    AUCTION_ADMIN - Required. Address granted the admin capability.
    AUCTION_*     - Optional overrides of auction parameters (see AuctionConfig).

Examples:
    AUCTION_ADMIN=0xadmin python scripts/run_api.py
    AUCTION_ADMIN=0xadmin python scripts/run_api.py --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

# Ensure imports work when invoked as a script
_REPO_ROOT = Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))


ENDPOINTS = (
    ("GET", "/health"),
    ("GET", "/tokens"),
    ("GET", "/tokens/{token_id}"),
    ("GET", "/tokens/{token_id}/quote"),
    ("POST", "/tokens/mint"),
    ("POST", "/tokens/{token_id}/buy"),
    ("POST", "/tokens/{token_id}/approve"),
    ("POST", "/tokens/{token_id}/transfer"),
    ("POST", "/tokens/{token_id}/permit"),
    ("POST", "/tokens/{token_id}/burn"),
    ("GET", "/fees"),
    ("POST", "/fees/collect"),
    ("GET", "/permits/nonce/{owner}"),
    ("GET", "/permits/domain"),
    ("POST", "/admin/deposit"),
    ("GET", "/admin/balances/{holder}"),
    ("POST", "/admin/signers"),
    ("POST", "/admin/pools"),
    ("POST", "/admin/pause"),
    ("POST", "/admin/unpause"),
)


def main() -> int:
    """Run the API server."""
    parser = argparse.ArgumentParser(description="Run the perpetual auction API server.")
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host to bind to (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to bind to (default: 8000)",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development",
    )
    parser.add_argument(
        "--log-level",
        default=os.environ.get("LOG_LEVEL", "info"),
        help="Log level (default: LOG_LEVEL or info)",
    )
    args = parser.parse_args()

    if not os.environ.get("AUCTION_ADMIN"):
        print("Error: AUCTION_ADMIN environment variable is required", file=sys.stderr)
        return 1

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    print(f"Starting auction API on {args.host}:{args.port}")
    print("Endpoints:")
    for method, path in ENDPOINTS:
        print(f"  - {method:<4} http://{args.host}:{args.port}{path}")
    print()

    import uvicorn

    uvicorn.run(
        "api.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level.lower(),
    )

    return 0


if __name__ == "__main__":
    sys.exit(main())
