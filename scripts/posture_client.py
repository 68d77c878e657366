#!/usr/bin/env python3
"""Send an image file to the posture API for analysis or calibration."""
from __future__ import annotations

import argparse
import base64
import json
from pathlib import Path
from typing import Any

import requests


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Analyze or calibrate posture from an image file")
    parser.add_argument("command", choices=["analyze", "calibrate", "status"], help="Operation to run")
    parser.add_argument("image", nargs="?", help="JPEG/PNG file (required for analyze and calibrate)")
    parser.add_argument("--force", action="store_true", help="Bypass power-save gating when analyzing")
    parser.add_argument("--base-url", default="http://127.0.0.1:8000", help="Backend URL (default: %(default)s)")
    parser.add_argument("--token", help="X-API-Key if required", default=None)
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    base = args.base_url.rstrip("/")
    headers = {"Content-Type": "application/json"}
    if args.token:
        headers["X-API-Key"] = args.token
    if args.command == "status":
        resp = requests.get(f"{base}/posture/status", headers=headers, timeout=10)
    else:
        if not args.image:
            raise SystemExit(f"{args.command} needs an image path")
        encoded = base64.b64encode(Path(args.image).read_bytes()).decode("ascii")
        payload: dict[str, Any] = {"image": encoded}
        if args.command == "analyze":
            payload["force"] = args.force
        resp = requests.post(f"{base}/posture/{args.command}", headers=headers, data=json.dumps(payload), timeout=30)
    resp.raise_for_status()
    data = resp.json()
    if not data.get("success", False):
        raise SystemExit(f"Backend error: {data.get('error')} {data.get('data')}")
    print(json.dumps(data["data"], indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
