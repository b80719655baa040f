"""
Utterance Upload Client
=======================

Sends a recorded audio file to a running backend the same way the mobile
app does, prints the transcript, reply and ticket, and optionally saves
the spoken reply.

Requirements:
    pip install requests

Usage:
    1. Start the server:
       cd backend/core && daphne main.asgi:application -p 8000

    2. Run this script (repeat with the same --conversation to continue):
       python scripts/send_utterance.py recording.m4a --conversation conv-demo
       python scripts/send_utterance.py more.m4a --conversation conv-demo --save-reply reply.mp3
"""

import argparse
import base64
import json
import mimetypes
import sys

import requests


def send_utterance(base_url, audio_path, conversation_id=None, user_id=None):
    """POST one recording to /api/process-input/ and return the decoded JSON."""
    content_type = mimetypes.guess_type(audio_path)[0] or "application/octet-stream"
    data = {}
    if conversation_id:
        data["conversationId"] = conversation_id
    if user_id:
        data["userId"] = user_id

    with open(audio_path, "rb") as f:
        response = requests.post(
            f"{base_url.rstrip('/')}/api/process-input/",
            files={"file": (audio_path, f, content_type)},
            data=data,
            timeout=60,
        )

    if response.status_code != 200:
        print(f"❌ Server returned {response.status_code}: {response.text}")
        sys.exit(1)
    return response.json()


def main():
    parser = argparse.ArgumentParser(description="Send a recorded utterance to MoveMate")
    parser.add_argument("audio", help="Path to the audio recording")
    parser.add_argument("--url", default="http://127.0.0.1:8000", help="Backend base URL")
    parser.add_argument("--conversation", help="Conversation id to continue")
    parser.add_argument("--user", help="Resident id recorded as the ticket owner")
    parser.add_argument("--save-reply", help="Write the spoken reply (mp3) to this path")
    args = parser.parse_args()

    print("\n" + "=" * 60)
    print("🎤 MoveMate Utterance Client")
    print("=" * 60)

    result = send_utterance(args.url, args.audio, args.conversation, args.user)

    print(f"Conversation: {result.get('conversationId')}")
    print(f"Transcript:   {result.get('transcript')!r}")
    print(f"Reply:        {result.get('reply')}")

    ticket = result.get("ticket")
    if ticket:
        print("-" * 60)
        print(
            f"✅ Ticket {ticket['displayId']} -> {ticket['team']} "
            f"(queue #{ticket['queuePosition']}, {ticket['urgency']})"
        )
    elif result.get("context"):
        print("-" * 60)
        print("Still collecting details:")
        print(json.dumps(result["context"], indent=2))

    audio = result.get("audio")
    if args.save_reply and audio:
        with open(args.save_reply, "wb") as f:
            f.write(base64.b64decode(audio["data"]))
        print(f"🔊 Reply audio saved to {args.save_reply}")


if __name__ == "__main__":
    main()
