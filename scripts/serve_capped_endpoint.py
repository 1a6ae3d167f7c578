#!/usr/bin/env python
"""Serve a local WebSocket echo endpoint with a connection cap.

Usage:
    python scripts/serve_capped_endpoint.py --port 3500 --max-connections 255
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from poolparty.server import CappedEchoServer


async def amain(args):
    server = CappedEchoServer(args.host, args.port, args.max_connections)
    await server.start()
    print(f"Serving {server.url} (cap {server.max_connections})")
    try:
        await server.serve_forever()
    finally:
        await server.stop()


def main():
    parser = argparse.ArgumentParser(description="Capped WebSocket echo endpoint")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=3500)
    parser.add_argument("--max-connections", type=int, default=255)
    parser.add_argument("--verbose", "-v", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)
    try:
        asyncio.run(amain(args))
    except KeyboardInterrupt:
        print("Stopped.")


if __name__ == "__main__":
    main()
