#!/usr/bin/env python3
"""
Akwana command line.

Usage:
    python scripts/akwana_cli.py ask "How do I treat tomato blight?"
    python scripts/akwana_cli.py ask --language sw "Nawezaje kutibu ukungu wa nyanya?"
    python scripts/akwana_cli.py scan leaf.jpg --type crop
    python scripts/akwana_cli.py scan soil.jpg --type soil --backend anthropic --format json
    python scripts/akwana_cli.py rules --tag pest
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import mimetypes
import sys
from pathlib import Path

# Add project root to path for akwana.* imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from akwana import AdvisoryEngine, AkwanaConfig, ImageInput, ReportFormat, ScanState, render_report


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Akwana crop, soil and pest advisor")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    parser.add_argument("--config", type=Path, default=None, help="Path to config.json")
    sub = parser.add_subparsers(dest="command", required=True)

    ask = sub.add_parser("ask", help="Ask the farming advisor a question")
    ask.add_argument("question")
    ask.add_argument("--language", choices=["en", "lg", "sw"], default="en")

    scan = sub.add_parser("scan", help="Scan a crop or soil photo")
    scan.add_argument("image", type=Path)
    scan.add_argument("--type", dest="scan_type", choices=["crop", "soil"], default="crop")
    scan.add_argument("--backend", choices=["simulated", "anthropic"], default=None)
    scan.add_argument("--format", dest="fmt", choices=[f.value for f in ReportFormat], default="markdown")

    rules = sub.add_parser("rules", help="List catalog rules")
    rules.add_argument("--tag", default=None, help="Only rules with this domain tag")

    return parser


async def run_ask(engine: AdvisoryEngine, args: argparse.Namespace) -> int:
    chat = engine.new_chat()
    reply = await chat.ask(args.question, language=args.language)
    if reply is None:
        print("No answer.")
        return 1
    print(reply.content)
    if reply.suggestions:
        print("\nYou could also ask: " + " | ".join(reply.suggestions))
    return 0


async def run_scan(engine: AdvisoryEngine, args: argparse.Namespace) -> int:
    if not args.image.exists():
        print(f"Error: {args.image} not found")
        return 1

    media_type = mimetypes.guess_type(args.image.name)[0] or "image/jpeg"
    session = engine.new_session()
    session.capture(ImageInput(args.image.read_bytes(), scan_type=args.scan_type, media_type=media_type))
    session.submit()
    print(f"AI is analyzing your {args.scan_type}...")
    state = await session.wait()

    if state is ScanState.COMPLETED:
        print(render_report(session.artifact, ReportFormat(args.fmt)))
        return 0
    print(f"Scan failed: {session.failure}")
    return 1


def run_rules(engine: AdvisoryEngine, args: argparse.Namespace) -> int:
    catalog = engine.catalog
    rules = catalog.lookup(args.tag) if args.tag else catalog.all()
    print(f"Catalog {catalog.version}: {len(rules)} rule(s)")
    for rule in rules:
        keywords = ", ".join(rule.keywords) or "-"
        print(f"- {rule.rule_id} [{rule.severity.value}] {rule.title} (keywords: {keywords})")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    config = AkwanaConfig.load(args.config)
    if getattr(args, "backend", None):
        config.backend.image_backend = args.backend
    engine = AdvisoryEngine.from_config(config)

    try:
        if args.command == "ask":
            return asyncio.run(run_ask(engine, args))
        if args.command == "scan":
            return asyncio.run(run_scan(engine, args))
        return run_rules(engine, args)
    except Exception as e:
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
