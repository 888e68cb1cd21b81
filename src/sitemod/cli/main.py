#!/usr/bin/env python3
"""Entry point for the sitemod CLI."""

from __future__ import annotations

import argparse
import json
import sys
from collections import deque
from pathlib import Path
from textwrap import dedent
from typing import Any, Dict

import requests
import yaml

from sitemod import __version__
from sitemod.app.detection import CMSDetector
from sitemod.app.modifications import ModificationService
from sitemod.domain.modifications import (
    CMSConnection,
    ModificationChanges,
    ModificationError,
    ModificationResult,
    manual_instructions,
)
from sitemod.settings import SETTINGS
from sitemod.utils.telemetry import clear as telemetry_clear
from sitemod.utils.telemetry import iter_events as telemetry_iter
from sitemod.utils.telemetry import summarize as telemetry_summarize

HELP_OVERVIEW = dedent(
    """
    Apply SEO fixes to a CMS-backed site and capture rollback data.

    Core commands:
      - sitemod apply --request REQ.yaml --connection CONN.yaml
      - sitemod check --connection CONN.yaml
      - sitemod instructions --action meta --target homepage --after '{"title": "..."}'
      - sitemod detect example.com
    """
)


class DocumentError(ValueError):
    """Raised when a request or connection file cannot be read."""


def _load_document(path_arg: str) -> Dict[str, Any]:
    path = Path(path_arg).expanduser()
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise DocumentError(f"cannot read {path}: {exc.strerror or exc}") from exc
    try:
        # YAML is a superset of JSON, so one loader covers both formats.
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise DocumentError(f"{path} is not valid JSON or YAML: {exc}") from exc
    if not isinstance(data, dict):
        raise DocumentError(f"{path} must contain a mapping at the top level")
    return data


def _print_result(result: ModificationResult, as_json: bool) -> None:
    if as_json:
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
        return
    if result.success and result.rollback_data is not None:
        record = result.rollback_data
        state = "no-op" if record.noop else "applied"
        print(f"Modification {state} ({record.type})")
        if record.rollback_token:
            print(f"  rollback token: {record.rollback_token}")
    elif result.error is not None:
        print(f"Modification failed: {result.error.kind.value}: {result.error.message}", file=sys.stderr)
        if result.error.status is not None:
            print(f"  backend status: {result.error.status}", file=sys.stderr)
    if result.instructions:
        print()
        print(result.instructions)


def _apply_cmd(args: argparse.Namespace) -> int:
    try:
        request_doc = _load_document(args.request)
        connection_doc = _load_document(args.connection)
    except DocumentError as exc:
        print(str(exc), file=sys.stderr)
        return 2
    service = ModificationService(SETTINGS)
    result = service.apply_dict(request_doc, connection_doc)
    _print_result(result, args.json)
    return 0 if result.success else 1


def _check_cmd(args: argparse.Namespace) -> int:
    try:
        connection = CMSConnection.from_dict(_load_document(args.connection))
    except (DocumentError, ModificationError) as exc:
        print(str(exc), file=sys.stderr)
        return 2
    check = ModificationService(SETTINGS).check_connection(connection)
    if args.json:
        print(json.dumps(check.to_dict(), indent=2, ensure_ascii=False))
    elif check.ok:
        print(f"{check.provider}: connection ok")
    else:
        assert check.error is not None
        print(f"{check.provider}: {check.error.kind.value}: {check.error.message}", file=sys.stderr)
    return 0 if check.ok else 1


def _instructions_cmd(args: argparse.Namespace) -> int:
    changes = ModificationChanges(before=args.before or "", after=args.after)
    try:
        text = manual_instructions(args.action, args.target, changes)
    except ModificationError as exc:
        print(str(exc), file=sys.stderr)
        return 2
    print(text)
    return 0


def _detect_cmd(args: argparse.Namespace) -> int:
    result = CMSDetector(SETTINGS, session=requests.Session()).detect(args.url)
    if args.json:
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
        return 0
    print(f"{result.url}: {result.cms} (confidence {result.confidence}%, provider {result.provider.value})")
    for signal in result.detected_by:
        print(f"  - {signal}")
    return 0


def _telemetry_cmd(args: argparse.Namespace) -> int:
    if args.telemetry_command == "report":
        recent = getattr(args, "recent", 0)
        if recent and recent > 0:
            window: deque = deque(maxlen=recent)
            for evt in telemetry_iter(SETTINGS):
                window.append(evt)
            events = list(window)
        else:
            events = list(telemetry_iter(SETTINGS))
        summary = telemetry_summarize(events)
        print(json.dumps(summary, indent=2, ensure_ascii=False))
        return 0
    if args.telemetry_command == "clear":
        telemetry_clear(SETTINGS)
        print("Telemetry log cleared")
        return 0
    if args.telemetry_command == "tail":
        dq: deque = deque(maxlen=args.limit)
        for evt in telemetry_iter(SETTINGS):
            dq.append(evt)
        for evt in dq:
            print(json.dumps(evt, ensure_ascii=False))
        return 0
    print("Unsupported telemetry command", file=sys.stderr)
    return 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sitemod",
        description=HELP_OVERVIEW,
        formatter_class=argparse.RawTextHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"sitemod {__version__}")

    sub = parser.add_subparsers(dest="command", required=True)

    apply_cmd = sub.add_parser("apply", help="Apply one modification and print the result")
    apply_cmd.add_argument("--request", required=True, help="Modification request file (JSON or YAML)")
    apply_cmd.add_argument("--connection", required=True, help="CMS connection file (JSON or YAML)")
    apply_cmd.add_argument("--json", action="store_true", help="Print the result as JSON")
    apply_cmd.set_defaults(func=_apply_cmd)

    check_cmd = sub.add_parser("check", help="Validate credentials and run the provider preflight")
    check_cmd.add_argument("--connection", required=True, help="CMS connection file (JSON or YAML)")
    check_cmd.add_argument("--json", action="store_true")
    check_cmd.set_defaults(func=_check_cmd)

    instructions_cmd = sub.add_parser("instructions", help="Render manual instructions without a backend")
    instructions_cmd.add_argument("--action", required=True, help="meta, heading, altText, robots, sitemap, internalLinks")
    instructions_cmd.add_argument("--target", required=True)
    instructions_cmd.add_argument("--after", required=True, help="JSON payload for the action")
    instructions_cmd.add_argument("--before", default="", help="Current value, if known")
    instructions_cmd.set_defaults(func=_instructions_cmd)

    detect_cmd = sub.add_parser("detect", help="Guess which CMS serves a URL")
    detect_cmd.add_argument("url")
    detect_cmd.add_argument("--json", action="store_true")
    detect_cmd.set_defaults(func=_detect_cmd)

    telemetry_cmd = sub.add_parser("telemetry", help="Inspect local telemetry logs")
    telemetry_sub = telemetry_cmd.add_subparsers(dest="telemetry_command", required=True)

    telemetry_report = telemetry_sub.add_parser("report", help="Print aggregated telemetry stats")
    telemetry_report.add_argument(
        "--recent",
        type=int,
        default=0,
        help="Limit aggregation to the last N telemetry events",
    )
    telemetry_report.set_defaults(func=_telemetry_cmd)

    telemetry_clear_cmd = telemetry_sub.add_parser("clear", help="Remove telemetry log file")
    telemetry_clear_cmd.set_defaults(func=_telemetry_cmd)

    telemetry_tail = telemetry_sub.add_parser("tail", help="Print last N telemetry events")
    telemetry_tail.add_argument("--limit", type=int, default=20)
    telemetry_tail.set_defaults(func=_telemetry_cmd)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(sys.argv[1:] if argv is None else argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
