"""
Dashboard Event Watcher
=======================

Connects to the dashboard WebSocket and prints ticket changes as they
happen. Handy for checking broadcasts without the staff app.

Requirements:
    pip install websockets

Usage:
    python scripts/watch_dashboard.py
    python scripts/watch_dashboard.py --team maintenance
"""

import argparse
import asyncio
import json

import websockets


async def watch(uri):
    print(f"Connecting to: {uri}")

    async with websockets.connect(uri) as websocket:
        print("✅ Connected! Waiting for ticket events (Ctrl+C to stop)")
        print("-" * 60)

        while True:
            try:
                message = await asyncio.wait_for(websocket.recv(), timeout=30.0)
            except asyncio.TimeoutError:
                await websocket.send(json.dumps({"type": "ping"}))
                continue

            data = json.loads(message)
            ticket = data.get("ticket")
            if not ticket:
                print(f"   Control message: {data.get('type')}")
                continue

            print(
                f"{data['type']:<15} {ticket.get('displayId')} "
                f"team={ticket.get('team')} status={ticket.get('status')} "
                f"queue={ticket.get('queuePosition')} urgency={ticket.get('urgency')}"
            )


def main():
    parser = argparse.ArgumentParser(description="Print live ticket events")
    parser.add_argument("--host", default="127.0.0.1:8000")
    parser.add_argument("--team", choices=["ra", "maintenance"])
    args = parser.parse_args()

    uri = f"ws://{args.host}/ws/dashboard/"
    if args.team:
        uri += f"?team={args.team}"

    try:
        asyncio.run(watch(uri))
    except KeyboardInterrupt:
        print("\nStopped.")


if __name__ == "__main__":
    main()
