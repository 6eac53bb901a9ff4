#!/usr/bin/env python
"""
Validate a local store directory before pointing the app at it.

Usage:
    python scripts/validate_inputs.py
    python scripts/validate_inputs.py --data-dir /path/to/data
"""
import argparse
import sys
from pathlib import Path

# Add package root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from junket_os.config import config, COLLECTIONS
from junket_os.data.store import LocalStore, StoreConnectionError
from junket_os.data.loader import build_snapshot
from junket_os.data.schema import validate_snapshot, check_record_links


def load_collection(store: LocalStore, collection: str) -> dict:
    """Read one collection file."""
    result = {
        "exists": store._path(collection).exists(),
        "records": [],
        "errors": [],
    }
    if not result["exists"]:
        return result

    try:
        result["records"] = store.get(collection)
    except StoreConnectionError as e:
        result["errors"].append(str(e))

    return result


def main():
    parser = argparse.ArgumentParser(description="Validate local store collections")
    parser.add_argument(
        "--data-dir",
        type=str,
        default=None,
        help="Override data directory"
    )

    args = parser.parse_args()

    # Set data dir
    if args.data_dir:
        data_dir = Path(args.data_dir)
    else:
        data_dir = config.data_dir

    store = LocalStore(data_dir / "store")

    print("=" * 60)
    print("Store Input Validation")
    print("=" * 60)
    print(f"Source directory: {store.directory}")
    print()

    all_valid = True
    raw = {}

    # Read each collection file
    for key, collection in COLLECTIONS.items():
        result = load_collection(store, collection)
        raw[key] = result["records"]

        if result["exists"]:
            print(f"  ✓ {collection}.json: {len(result['records']):,} records")
        else:
            print(f"  ⚠ {collection}.json not found (treated as empty)")

        for err in result["errors"]:
            print(f"  ✗ Error: {err}")
            all_valid = False

    print()

    snapshot = build_snapshot(raw)

    for table_name, result in validate_snapshot(snapshot).items():
        print(f"Validating: {table_name}")
        print("-" * 40)
        print(f"    Rows: {result['total_rows']:,}")

        if result["missing_required"]:
            print(f"  ✗ Missing required: {result['missing_required']}")
        for col, count in result["blank_keys"].items():
            print(f"  ✗ {count:,} row(s) without {col}")

        if result["is_valid"] and not result["blank_keys"]:
            print(f"  ✓ Valid")
        else:
            all_valid = False

        print()

    # Broken references are reported but do not fail the run
    links = {k: v for k, v in check_record_links(snapshot).items() if v}
    if links:
        print("Record links")
        print("-" * 40)
        for check, count in links.items():
            print(f"  ⚠ {check.replace('_', ' ')}: {count:,}")
        print()

    print("=" * 60)
    if all_valid:
        print("✓ All validations passed")
        sys.exit(0)
    else:
        print("✗ Validation failed - see errors above")
        sys.exit(1)


if __name__ == "__main__":
    main()
