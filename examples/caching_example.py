"""Example demonstrating snapshot caching and JSON serialization."""

import json
from pathlib import Path
from time import time

from claudemd_rules import RulesLoaderContext, RulesSnapshot, snapshot_is_fresh


def main() -> None:
    """Demonstrate caching functionality."""
    project_dir = Path(__file__).parent.parent

    print("=" * 60)
    print("Caching Example - claudemd-rules")
    print("=" * 60)

    # Example 1: Automatic cache with mtime-based invalidation
    print("\n1. Automatic cache invalidation (based on file mtime):")
    print("-" * 60)

    ctx = RulesLoaderContext(project_dir)

    start = time()
    first = ctx.load_snapshot()
    time1 = time() - start
    print(f"First build:  {first.stats.total_rules} rules in {time1*1000:.2f}ms")

    start = time()
    second = ctx.load_snapshot()
    time2 = time() - start
    print(f"Second build: {second.stats.total_rules} rules in {time2*1000:.2f}ms (cached)")
    print(f"Same snapshot object: {first is second}")

    # Example 2: Serializing for an external cache
    print("\n2. Serialize and check freshness later:")
    print("-" * 60)

    payload = first.to_json()
    restored = RulesSnapshot.from_dict(json.loads(payload))
    print(f"Serialized size: {len(payload)} chars")
    print(f"Still fresh: {snapshot_is_fresh(restored, ctx.discover())}")

    # Example 3: Manual cache invalidation (rarely needed)
    print("\n3. Manual cache invalidation (rarely needed):")
    print("-" * 60)

    ctx.invalidate_cache()
    third = ctx.load_snapshot()
    print(f"Rebuilt after invalidation: {third is not first}")


if __name__ == "__main__":
    main()
