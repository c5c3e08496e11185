#!/usr/bin/env python3
"""
Client script for the lip-track API.

Reads per-frame face-mesh landmarks and face detections from a JSON file,
attaches the matching video frames, and submits everything to the one-shot
analyze endpoint (or streams it through a session).

The landmarks file is a list of frames:

    [{"timestamp": 0, "landmarks": [[{"x": .., "y": .., "z": ..}, ...]],
      "detections": [{"xmin": .., "ymin": .., "width": .., "height": ..}]}, ...]

Timestamps are microseconds from the start of the video.

Usage:
    python examples/analyze_landmarks.py frames.json --video talk.mp4
    python examples/analyze_landmarks.py frames.json --video talk.mp4 --stream
    python examples/analyze_landmarks.py frames.json --video talk.mp4 --min-shot-span 3.0
"""

import argparse
import base64
import json
import os
import sys
from pathlib import Path

import cv2
import requests
from dotenv import load_dotenv

# Load .env file
load_dotenv()

# Configuration
BASE_URL = os.getenv("LIPTRACK_URL", "http://localhost:8000")
API_KEY = os.getenv("LIPTRACK_API_KEY")


def get_headers() -> dict:
    headers = {"Content-Type": "application/json"}
    if API_KEY:
        headers["X-LipTrack-API-Key"] = API_KEY
    return headers


def attach_images(frames: list[dict], video_path: Path) -> list[dict]:
    """Read the video frame at each timestamp and attach it as base64 JPEG."""
    cap = cv2.VideoCapture(str(video_path))
    if not cap.isOpened():
        raise FileNotFoundError(f"Failed to open video: {video_path}")

    try:
        for frame in frames:
            cap.set(cv2.CAP_PROP_POS_MSEC, frame["timestamp"] / 1000)
            ret, image = cap.read()
            if not ret:
                print(f"⚠️  No video frame at {frame['timestamp']}us")
                continue
            ok, buffer = cv2.imencode(".jpg", image, [cv2.IMWRITE_JPEG_QUALITY, 85])
            if ok:
                frame["image_base64"] = base64.b64encode(buffer).decode("utf-8")
    finally:
        cap.release()

    return frames


def analyze(frames: list[dict], options: dict) -> dict:
    """Submit all frames at once."""
    response = requests.post(
        f"{BASE_URL}/lip-track/analyze",
        headers=get_headers(),
        json={"frames": frames, "options": options or None},
        timeout=300,
    )
    response.raise_for_status()
    return response.json()


def stream(frames: list[dict], options: dict) -> dict:
    """Push frames one by one through a streaming session."""
    headers = get_headers()
    response = requests.post(
        f"{BASE_URL}/lip-track/sessions",
        headers=headers,
        json={"options": options or None},
        timeout=30,
    )
    response.raise_for_status()
    session_id = response.json()["session_id"]
    print(f"✅ Session opened: {session_id}")

    outputs = {"frames": [], "shot_signals": [], "windows": []}
    for frame in frames:
        response = requests.post(
            f"{BASE_URL}/lip-track/sessions/{session_id}/frames",
            headers=headers,
            json=frame,
            timeout=30,
        )
        response.raise_for_status()
        _merge(outputs, response.json())

    response = requests.post(
        f"{BASE_URL}/lip-track/sessions/{session_id}/close",
        headers=headers,
        timeout=30,
    )
    response.raise_for_status()
    _merge(outputs, response.json())
    return outputs


def _merge(outputs: dict, released: dict) -> None:
    for key in ("frames", "shot_signals", "windows"):
        outputs[key].extend(released.get(key, []))


def print_summary(outputs: dict) -> None:
    frames = outputs["frames"]
    with_speaker = sum(1 for f in frames if f["speakers"])
    print(f"\n📊 {len(frames)} frames, {with_speaker} with an active speaker, {len(outputs['windows'])} windows")

    for signal in outputs["shot_signals"]:
        if signal["is_speaker_change"]:
            print(f"   🎬 Speaker change at {signal['timestamp'] / 1_000_000:.2f}s")


def main() -> int:
    parser = argparse.ArgumentParser(description="Submit landmarks to the lip-track API")
    parser.add_argument("landmarks", type=Path, help="JSON file with per-frame landmarks and detections")
    parser.add_argument("--video", type=Path, required=True, help="Source video for the frames")
    parser.add_argument("--stream", action="store_true", help="Use a streaming session")
    parser.add_argument("--min-speaker-span", type=int, help="Window span in microseconds")
    parser.add_argument("--min-shot-span", type=float, help="Debounce in seconds")
    parser.add_argument("--output", type=Path, help="Write the raw response JSON here")
    args = parser.parse_args()

    with open(args.landmarks, "r", encoding="utf-8") as f:
        frames = json.load(f)

    options = {}
    if args.min_speaker_span is not None:
        options["min_speaker_span"] = args.min_speaker_span
    if args.min_shot_span is not None:
        options["min_shot_span"] = args.min_shot_span

    try:
        frames = attach_images(frames, args.video)
        outputs = stream(frames, options) if args.stream else analyze(frames, options)
    except (requests.RequestException, FileNotFoundError) as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1

    print_summary(outputs)
    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            json.dump(outputs, f, indent=2)
        print(f"✅ Response saved to: {args.output}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
