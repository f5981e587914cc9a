#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
regression_client.py — Command-line client for the Content Integrity API.

Common examples:
  python tools/regression_client.py status 42
  python tools/regression_client.py summary
  python tools/regression_client.py mark-intentional 42
  python tools/regression_client.py reset-baseline 42
  python tools/regression_client.py settings 42 --short-form yes
  python tools/regression_client.py run-detection --api-key "$API_KEY" --timeout 600
"""
import sys, json, argparse, requests

DEFAULT_BASE = "http://127.0.0.1:8000"


def call_json(method: str, url: str, headers: dict, json_body: dict | None, timeout_read: int):
    # connection timeout 10s, read timeout configurable
    return requests.request(method, url, headers=headers, json=json_body, timeout=(10, timeout_read))


def _flag(value: str | None) -> bool | None:
    if value is None:
        return None
    return value.lower() in ("1", "true", "yes", "on")


def run(args: argparse.Namespace) -> dict | list:
    base = args.base.rstrip("/")
    hdrs = {}
    if args.api_key:
        hdrs["X-API-Key"] = args.api_key

    if args.command == "summary":
        method, url, body = "GET", f"{base}/regression", None
    elif args.command == "status":
        method, url, body = "GET", f"{base}/regression/{args.document_id}", None
    elif args.command == "mark-intentional":
        method, url, body = "POST", f"{base}/regression/{args.document_id}/mark-intentional", None
    elif args.command == "reset-baseline":
        method, url, body = "POST", f"{base}/regression/{args.document_id}/reset-baseline", None
    elif args.command == "settings":
        body = {
            "detection_disabled": _flag(args.disabled),
            "is_short_form": _flag(args.short_form),
        }
        method, url = "POST", f"{base}/regression/{args.document_id}/settings"
    elif args.command == "run-detection":
        method, url, body = "POST", f"{base}/run-detection", None
    else:
        raise RuntimeError(f"Unknown command: {args.command}")

    r = call_json(method, url, hdrs, body, args.timeout)
    r.raise_for_status()
    return r.json()


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Client for content regression status and actions.")
    ap.add_argument("--base", default=DEFAULT_BASE, help="API base URL")
    ap.add_argument("--timeout", type=int, default=60, help="Read timeout seconds (default 60)")
    ap.add_argument("--api-key", default=None, help="Optional X-API-Key value")
    sub = ap.add_subparsers(dest="command", required=True)

    sub.add_parser("summary", help="Warning counts for all evaluated documents")
    for name, help_text in (
        ("status", "Current regression status of one document"),
        ("mark-intentional", "Accept the current warnings"),
        ("reset-baseline", "Clear the snapshot history"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("document_id")

    p = sub.add_parser("settings", help="Update per-document settings")
    p.add_argument("document_id")
    p.add_argument("--disabled", default=None, help="yes/no: turn detection off for this document")
    p.add_argument("--short-form", default=None, help="yes/no: skip word count checks")

    sub.add_parser("run-detection", help="Evaluate all eligible documents now")
    return ap


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        out = run(args)
        print(json.dumps(out, indent=2))
    except Exception as e:
        print(json.dumps({"ok": False, "error": str(e)}), file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
