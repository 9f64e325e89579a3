"""
Command line entry point.

    pidlens resolve 10.5281/zenodo.1234 --json
    pidlens classify 0000-0002-1825-0097
    pidlens relations https://ror.org/04t3en479
    pidlens forget 21.T11148/abc
    pidlens clear
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, List, Optional

import yaml
from dotenv import find_dotenv, load_dotenv

from pidlens import __version__
from pidlens.application.services.entity_cache import PidLensRuntime, build_runtime
from pidlens.config import PidLensConfig
from pidlens.core.abstractions.classifier import IdentifierClassifier

load_dotenv(find_dotenv(usecwd=True), override=False)


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pidlens",
        description="pidlens - classify and resolve persistent identifiers",
    )
    parser.add_argument("--version", "-v", action="store_true", help="print the version")
    parser.add_argument("--db-url", help="override PIDLENS_DB_URL")

    subparsers = parser.add_subparsers(dest="command", help="available commands")

    resolve_parser = subparsers.add_parser("resolve", help="classify and resolve a value (cached)")
    resolve_parser.add_argument("value", help="identifier or raw value")
    resolve_parser.add_argument("--settings", "-s", help="JSON/YAML file with per-classifier settings")
    resolve_parser.add_argument("--json", action="store_true", help="print the full result as JSON")

    classify_parser = subparsers.add_parser("classify", help="show the best-fit classifier without resolving")
    classify_parser.add_argument("value", help="identifier or raw value")

    relations_parser = subparsers.add_parser("relations", help="list stored relations of a value")
    relations_parser.add_argument("value", help="identifier or raw value")

    forget_parser = subparsers.add_parser("forget", help="drop a cached entity and its relations")
    forget_parser.add_argument("value", help="identifier or raw value")

    subparsers.add_parser("clear", help="drop all cached entities, relations and HTTP responses")

    return parser


def load_settings(path: Optional[str]) -> List[Any]:
    """Settings file: a list of ``{type, values: [{name, value}]}`` buckets."""
    if not path:
        return []
    raw = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    if raw is None:
        return []
    if isinstance(raw, dict):
        raw = raw.get("settings", [])
    if not isinstance(raw, list):
        raise ValueError(f"{path}: expected a list of settings buckets")
    return raw


def _make_runtime(parsed: argparse.Namespace) -> PidLensRuntime:
    config = PidLensConfig.from_env()
    if parsed.db_url:
        config.db_url = parsed.db_url
    return build_runtime(config)


def _print_classifier(classifier: IdentifierClassifier) -> None:
    print(f"type: {classifier.settings_key()}")
    print(f"value: {classifier.value}")
    if classifier.error:
        print(f"error: {classifier.error}")
    for item in classifier.sorted_items():
        print(f"  [{item.priority}] {item.title}: {item.value}")
    for action in classifier.sorted_actions():
        print(f"  -> {action.title}: {action.link}")


async def _resolve(parsed: argparse.Namespace) -> int:
    settings = load_settings(parsed.settings)
    runtime = _make_runtime(parsed)
    try:
        classifier = await runtime.entity_cache.get_entity(parsed.value, settings)
    finally:
        await runtime.close()
    if parsed.json:
        print(json.dumps(classifier.to_dict(), ensure_ascii=False, indent=2))
    else:
        _print_classifier(classifier)
    return 0


async def _classify(parsed: argparse.Namespace) -> int:
    runtime = _make_runtime(parsed)
    try:
        dispatcher = runtime.entity_cache.dispatcher
        classifier = await dispatcher.best_fit(parsed.value)
        priority = await dispatcher.estimate_priority(parsed.value)
    finally:
        await runtime.close()
    print(f"type: {classifier.settings_key()}")
    print(f"estimated_type_priority: {priority}")
    return 0


async def _with_cache(parsed: argparse.Namespace) -> int:
    runtime = _make_runtime(parsed)
    try:
        cache = runtime.entity_cache
        if parsed.command == "relations":
            rows = cache.list_relations(parsed.value)
            for row in rows:
                print(f"{row.start}\t{row.predicate}\t{row.end}")
            if not rows:
                print("no relations stored")
        elif parsed.command == "forget":
            cache.delete_entity(parsed.value)
            print(f"forgot: {parsed.value}")
        elif parsed.command == "clear":
            cache.clear()
            runtime.fetcher.clear_cache()
            print("cache cleared")
    finally:
        await runtime.close()
    return 0


def run_cli(args: Optional[list] = None) -> int:
    parser = create_parser()
    parsed = parser.parse_args(args)

    if parsed.version:
        print(f"pidlens v{__version__}")
        return 0

    if not parsed.command:
        parser.print_help()
        return 0

    try:
        if parsed.command == "resolve":
            return asyncio.run(_resolve(parsed))
        if parsed.command == "classify":
            return asyncio.run(_classify(parsed))
        return asyncio.run(_with_cache(parsed))
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def main() -> None:
    sys.exit(run_cli())


if __name__ == "__main__":
    main()
