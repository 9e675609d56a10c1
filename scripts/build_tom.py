#!/usr/bin/env python3
"""
Build TOM Collection Script

Thin wrapper around TomGraph ingestion APIs.

Usage:
    python scripts/build_tom.py notes/ra_overview.txt
    python scripts/build_tom.py notes/ --ext .md --concurrency 4
    python scripts/build_tom.py notes/ --store ./my_tom --collection tom_dev
    python scripts/build_tom.py notes/ --tier fast --no-relations
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import time
from pathlib import Path

from dotenv import load_dotenv

from tom_kg.api.tom import TomGraph
from tom_kg.config import TomConfig
from tom_kg.types import FileIngestResult

PROJECT_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(PROJECT_ROOT / ".env")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Extract entities and relations from text files into a TOM collection"
    )
    parser.add_argument("input", type=Path, help="Path to a text file or a directory")
    parser.add_argument(
        "--store",
        type=Path,
        default=None,
        help="LanceDB directory (default: from TomConfig)",
    )
    parser.add_argument(
        "--collection",
        type=str,
        default=None,
        help="Collection name (default: from TomConfig)",
    )
    parser.add_argument(
        "--ext",
        type=str,
        default=None,
        help="File extension for directory input (default: .txt)",
    )
    parser.add_argument(
        "--tier",
        choices=("top", "fast", "cheap"),
        default=None,
        help="Extraction tier (default: top)",
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        default=None,
        help="Files ingested in parallel for directory input (default: 1)",
    )
    parser.add_argument(
        "--min-importance",
        type=float,
        default=None,
        help="Skip entities below this importance (0-1)",
    )
    parser.add_argument(
        "--relations",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Run the relation extraction pass (default: true)",
    )
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Drop and recreate the collection before ingesting",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser.parse_args()


def build_config(args: argparse.Namespace) -> TomConfig:
    overrides = {
        "store_path": str(args.store) if args.store else None,
        "collection_name": args.collection,
        "min_importance": args.min_importance,
        "ingest_concurrency": args.concurrency,
    }
    config = TomConfig().with_overrides(
        extract_relations=args.relations,
        **{k: v for k, v in overrides.items() if v is not None},
    )
    return config


async def main() -> None:
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not args.input.exists():
        raise FileNotFoundError(f"Input not found: {args.input}")

    config = build_config(args)

    start = time.time()
    async with TomGraph(config) as tom:
        if args.reset:
            print(f"Resetting collection {config.collection_name!r}...")
            await tom.reset()

        if args.input.is_dir():
            print(f"Ingesting directory {args.input}...")
            results: list[FileIngestResult] = await tom.ingest_directory(
                args.input, args.ext, tier=args.tier
            )
        else:
            print(f"Ingesting {args.input}...")
            text = args.input.read_text(encoding="utf-8")
            result = await tom.ingest_text(text, tier=args.tier, source=str(args.input))
            results = [FileIngestResult(file=str(args.input), ok=result.ok, result=result)]

        stats = await tom.stats()

    total = time.time() - start
    failed = [r for r in results if not r.ok]
    entities = sum(len(r.result.entity_ids) for r in results if r.result)
    relations = sum(len(r.result.relation_ids) for r in results if r.result)

    print("\nIngestion complete")
    print(f"  Files: {len(results)} ({len(failed)} with errors)")
    print(f"  Entities written: {entities}")
    print(f"  Relations written: {relations}")
    print(f"  Collection: {stats['entities']} entities, {stats['relations']} relations")
    print(f"  Total script duration: {total:.2f}s")
    if failed:
        print("  Errors:")
        for r in failed:
            print(f"    - {r.file}: {r.error}")


if __name__ == "__main__":
    asyncio.run(main())
