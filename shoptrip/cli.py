"""CLI entry point for the shopping trip engine."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import datetime
from pathlib import Path

from dotenv import load_dotenv

from .classifier import create_classifier
from .config import TripConfig, load_config
from .db import SQLiteSessionStore
from .errors import SessionCorruptError
from .plan import parse_plan
from .route import RouteBuilder, render_route


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="shoptrip",
        description="Plan aisle-ordered shopping routes and manage trip sessions",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default=None,
        help="Path to a TOML config file",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable debug logging"
    )

    sub = parser.add_subparsers(dest="command")

    # route
    route_parser = sub.add_parser("route", help="Build a route from a plan file")
    route_parser.add_argument("plan", type=str, help="Plan JSON file")
    route_parser.add_argument("--json", action="store_true", help="Output as JSON")
    route_parser.add_argument(
        "--refine",
        action="store_true",
        help="Re-classify fast-path items with the configured lookup",
    )

    # classify
    classify_parser = sub.add_parser("classify", help="Classify product names")
    classify_parser.add_argument("names", nargs="+", help="Product names")
    classify_parser.add_argument("--json", action="store_true", help="Output as JSON")
    classify_parser.add_argument(
        "--lookup", action="store_true", help="Use the async lookup as well"
    )

    # session
    session_parser = sub.add_parser("session", help="Inspect saved trip sessions")
    session_sub = session_parser.add_subparsers(dest="session_command")
    show_parser = session_sub.add_parser("show", help="Show a saved session")
    show_parser.add_argument("list_id", type=str)
    clear_parser = session_sub.add_parser("clear", help="Discard a saved session")
    clear_parser.add_argument("list_id", type=str)
    session_sub.add_parser("list", help="List saved sessions")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    load_dotenv()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    config = load_config(args.config)

    match args.command:
        case "route":
            asyncio.run(_cmd_route(config, args))
        case "classify":
            asyncio.run(_cmd_classify(config, args))
        case "session":
            if args.session_command is None:
                session_parser.print_help()
                sys.exit(1)
            _cmd_session(config, args)


def _load_plan_file(path: str) -> dict:
    try:
        return json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        print(f"Cannot read plan file {path}: {e}", file=sys.stderr)
        sys.exit(1)


async def _cmd_route(config: TripConfig, args) -> None:
    payload = _load_plan_file(args.plan)
    try:
        plan = parse_plan(payload, default_retailer=config.route.default_retailer)
    except ValueError as e:
        print(f"Invalid plan: {e}", file=sys.stderr)
        sys.exit(1)

    classifier = create_classifier(config)
    builder = RouteBuilder(classifier, min_confidence=config.classifier.min_confidence)
    route = builder.build_plan_route(plan)

    try:
        if args.refine:
            from .backend import ListAPIClient
            from .machine import TripStateMachine

            async with ListAPIClient(
                base_url=config.backend.base_url,
                api_key=config.backend.api_key,
                timeout=config.backend.timeout,
            ) as backend:
                machine = TripStateMachine(route, builder, backend)
                moved = await machine.refine_route()
            print(f"🔍 {moved} item(s) moved after lookup", file=sys.stderr)
    finally:
        await classifier.aclose()

    if args.json:
        data = {
            "planType": route.plan_type,
            "isMultiStore": route.is_multi_store,
            "estimatedMinutes": route.estimated_minutes,
            "aisleGroups": [
                {
                    "name": a.name,
                    "sectionLabel": a.section_label,
                    "order": a.order,
                    "items": [i.to_dict() for i in a.items],
                }
                for a in route.aisle_groups
            ],
            "stores": [s.to_dict() for s in route.stores],
        }
        print(json.dumps(data, ensure_ascii=False, indent=2))
    else:
        print(render_route(route))


async def _cmd_classify(config: TripConfig, args) -> None:
    classifier = create_classifier(config)
    try:
        results = []
        for name in args.names:
            fast = classifier.classify(name)
            slow = await classifier.classify_async(name) if args.lookup else None
            results.append((name, fast, slow))
    finally:
        await classifier.aclose()

    if args.json:
        data = []
        for name, fast, slow in results:
            entry = {
                "productName": name,
                "category": fast.category,
                "confidence": fast.confidence,
            }
            if slow is not None:
                entry["lookup"] = {
                    "category": slow.category,
                    "confidence": slow.confidence,
                }
            data.append(entry)
        print(json.dumps(data, ensure_ascii=False, indent=2))
        return

    for name, fast, slow in results:
        bar = "█" * int(fast.confidence * 10)
        line = f"  {name:<24} {fast.category:<24} {fast.confidence:.0%} {bar}"
        if slow is not None:
            line += f"  → {slow.category} {slow.confidence:.0%}"
        print(line)


def _cmd_session(config: TripConfig, args) -> None:
    store = SQLiteSessionStore(config.session.db_path)
    try:
        match args.session_command:
            case "list":
                rows = store.list_sessions()
                if not rows:
                    print("No saved sessions.")
                    return
                for row in rows:
                    status = "completed" if row["is_completed"] else "in progress"
                    saved = datetime.fromtimestamp(row["session_timestamp"] / 1000)
                    print(f"  {row['list_id']:<12} {status:<12} {saved:%Y-%m-%d %H:%M}")
            case "show":
                try:
                    session = store.load(args.list_id)
                except SessionCorruptError as e:
                    print(f"Session for {args.list_id} is corrupt: {e}", file=sys.stderr)
                    sys.exit(1)
                if session is None:
                    print(f"No saved session for list {args.list_id}.")
                    return
                print(json.dumps(session.to_dict(), ensure_ascii=False, indent=2))
            case "clear":
                store.clear(args.list_id)
                print(f"Cleared session for list {args.list_id}.")
    finally:
        store.close()


if __name__ == "__main__":
    main()
