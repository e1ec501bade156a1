#!/usr/bin/env python
"""
Build pipeline - builds the catalog snapshot and runs the test suite.

Usage:
    python scripts/build_all.py path/to/catalog_export.csv
"""
import sys
from pathlib import Path

# Add src to path
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

from trip_pricing.config.settings import configure_logging
from trip_pricing.data.build_catalog import build_catalog_snapshot


def main():
    if len(sys.argv) != 2:
        print(__doc__)
        sys.exit(2)

    configure_logging()

    print("=" * 60)
    print("TRIP PRICING BUILD PIPELINE")
    print("=" * 60)
    print()

    print("[1/2] Building catalog snapshot...")
    report = build_catalog_snapshot(sys.argv[1], verbose=True)

    if report["status"] != "success":
        print("\n❌ BUILD FAILED")
        for error in report["errors"]:
            print(f"  ERROR: {error}")
        sys.exit(1)

    print()
    print("[2/2] Running tests...")

    import subprocess
    test_result = subprocess.run(
        [sys.executable, '-m', 'pytest', 'tests', '-q', '--tb=short'],
        cwd=Path(__file__).parent.parent
    )

    if test_result.returncode != 0:
        print("\n❌ TESTS FAILED")
        sys.exit(1)

    print()
    print("=" * 60)
    print("✅ BUILD COMPLETE")
    print("=" * 60)
    print()
    print("Summary:")
    print(f"  Items: {report['metrics']['item_count']}")
    print(f"  Inactive: {report['metrics']['inactive_count']}")
    print(f"  Rows skipped: {report['metrics']['rows_skipped']}")
    print(f"  SKUs generated: {report['metrics']['skus_generated']}")
    if report["warnings"]:
        print()
        print("Warnings:")
        for warning in report["warnings"]:
            print(f"  {warning}")


if __name__ == "__main__":
    main()
