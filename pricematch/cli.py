#!/usr/bin/env python3
"""
Catalog comparison from the command line.

Reads one JSONL catalog per store (italo, marcon, alfa), runs the matching
engine and writes the comparison to a JSON file.

Output Format (comparison.json):
- comparedProducts: matched groups with per-store prices and best/worst store
- unmatchedProducts: every record no group claimed
- stats: match counts by type, unmatched count, best-price wins per store
"""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any, Dict, List

from .engine import compare_catalogs
from .models import CatalogError


def load_products(filepath: Path) -> List[Dict[str, Any]]:
    """Load products from JSONL file."""
    products = []

    if not filepath.exists():
        print(f"⚠️  File not found: {filepath}")
        return products

    with filepath.open("r", encoding="utf-8") as f:
        for line_num, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue

            try:
                obj = json.loads(line)
            except json.JSONDecodeError as e:
                print(f"⚠️  Bad JSON in {filepath.name} line {line_num}: {e}")
                continue

            if isinstance(obj, dict):
                products.append(obj)
            else:
                print(f"⚠️  Skipping non-object in {filepath.name} line {line_num}")

    return products


def print_stats(stats: Dict[str, Any]) -> None:
    print("\n" + "=" * 70)
    print("MATCHING STATISTICS")
    print("=" * 70)

    print("\n📦 Input:")
    for store, count in stats["inputCounts"].items():
        print(f"   {store}: {count:,} products")

    print(f"\n📊 Total matches: {stats['totalMatches']:,}")
    for match_type, count in stats["matchesByType"].items():
        print(f"   {match_type}: {count:,}")

    print(f"\n📉 Unmatched products: {stats['unmatchedCount']:,}")

    if stats["totalMatches"]:
        print("\n💰 Best price wins:")
        for store, wins in stats["winsByStore"].items():
            print(f"   {store}: {wins:,} ({wins / stats['totalMatches'] * 100:.1f}%)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Compare three store catalogs (JSONL) by product.")
    parser.add_argument("italo", type=Path, help="Italo catalog (.jsonl)")
    parser.add_argument("marcon", type=Path, help="Marcon catalog (.jsonl)")
    parser.add_argument("alfa", type=Path, help="Alfa catalog (.jsonl)")
    parser.add_argument("-o", "--output", type=Path, default=Path("comparison.json"),
                        help="Where to write the comparison (default: comparison.json)")
    parser.add_argument("--semantic", action="store_true",
                        help="Also run the AI-assisted semantic stage (needs PRICEMATCH_AI_API_KEY)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show engine logs")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")

    print("\n" + "=" * 70)
    print("CROSS-STORE PRICE COMPARISON")
    print("=" * 70)

    print("\n📂 Loading product data...")
    italo = load_products(args.italo)
    marcon = load_products(args.marcon)
    alfa = load_products(args.alfa)

    try:
        result = compare_catalogs(italo, marcon, alfa, use_semantic_ai=args.semantic)
    except CatalogError as e:
        print(f"\n❌ Cannot compare catalogs: {e}")
        return 1

    print(f"\n💾 Writing comparison to {args.output}...")
    args.output.parent.mkdir(parents=True, exist_ok=True)
    with args.output.open("w", encoding="utf-8") as f:
        json.dump(result.to_dict(), f, ensure_ascii=False, indent=2)

    print_stats(result.stats)

    print("\n" + "=" * 70)
    print(f"✅ Output saved to: {args.output}")
    print("=" * 70 + "\n")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
