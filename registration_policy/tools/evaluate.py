"""
CLI to evaluate a registration request against the configured policy.

- Reads a request JSON from a file path argument, or from STDIN when omitted.
- Evaluates it with the default rule set and an in-memory reputation tracker.
- Prints the decision JSON: {"verdict": ..., "violations": [...], "warnings": [...]}.

Exit codes: 0 for any decision, 2 for a request that fails input validation,
1 for unreadable input.

Usage examples:
  python -m registration_policy.tools.evaluate request.json
  cat request.json | python -m registration_policy.tools.evaluate
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any, Sequence

from registration_policy.adapters.reputation.in_memory import InMemoryReputationTracker
from registration_policy.core.config import settings
from registration_policy.core.errors import InputError
from registration_policy.services.policy_service import create_policy_service


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Evaluate a client registration request and print the policy decision as JSON."
    )
    parser.add_argument(
        "request_path",
        nargs="?",
        help="Path to the request JSON file (reads STDIN when omitted).",
    )
    parser.add_argument(
        "--indent",
        type=int,
        default=None,
        help="Pretty-print the output with this indentation.",
    )
    return parser.parse_args(argv)


def _load_request(path: str | None) -> Any:
    if path is None:
        return json.load(sys.stdin)
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def main(argv: Sequence[str] | None = None) -> int:
    """
    Main entrypoint for the CLI.

    Returns:
        Process exit code.
    """
    args = _parse_args(argv)
    try:
        raw = _load_request(args.request_path)
    except (OSError, json.JSONDecodeError) as exc:
        print(f"Error: cannot read request: {exc}", file=sys.stderr)
        return 1

    tracker = InMemoryReputationTracker(window_seconds=settings.reputation.window_seconds)
    service = create_policy_service(tracker)
    try:
        decision = asyncio.run(service.evaluate(raw))
    except InputError as exc:
        error = {"error": {"code": exc.code, "message": exc.message, "details": exc.details}}
        print(json.dumps(error, indent=args.indent), file=sys.stderr)
        return 2

    print(json.dumps(decision.to_dict(), indent=args.indent, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
