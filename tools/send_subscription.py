#!/usr/bin/env python3
"""
tools/send_subscription.py
Post a popup submission to a running API, the same way the storefront does:
  python tools/send_subscription.py jane@example.com --tags vip
  python tools/send_subscription.py jane@example.com --url https://my-api.example.com/api/webhook
Prints the HTTP status and the JSON answer.
"""
from __future__ import annotations

import argparse
import json
import sys
from typing import Any, Dict, Optional

import httpx

DEFAULT_URL = "http://localhost:8000/api/webhook"


def build_payload(
    email: str,
    source: Optional[str] = None,
    discount_code: Optional[str] = None,
    tags: Optional[str] = None,
) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"email": email, "marketing_consent": True}
    if source:
        payload["source"] = source
    if discount_code:
        payload["discount_code"] = discount_code
    if tags:
        payload["tags"] = tags
    return payload


def main(argv=None) -> int:
    ap = argparse.ArgumentParser(description="Send a test popup subscription")
    ap.add_argument("email")
    ap.add_argument("--url", default=DEFAULT_URL)
    ap.add_argument("--source", default=None)
    ap.add_argument("--discount-code", default=None)
    ap.add_argument("--tags", default=None, help="comma-separated, e.g. vip,summer")
    ap.add_argument("--origin", default=None, help="send an Origin header (CORS check)")
    args = ap.parse_args(argv)

    headers = {"Content-Type": "application/json"}
    if args.origin:
        headers["Origin"] = args.origin

    payload = build_payload(args.email, args.source, args.discount_code, args.tags)
    try:
        r = httpx.post(args.url, json=payload, headers=headers, timeout=60)
    except httpx.HTTPError as e:
        print("❌ Request error:", repr(e))
        return 3

    print("HTTP:", r.status_code)
    try:
        print(json.dumps(r.json(), indent=2))
    except ValueError:
        print(r.text)
    return 0 if r.is_success else 2


if __name__ == "__main__":
    sys.exit(main())
