#!/usr/bin/env python
"""
Price a trip draft from the command line.

Usage:
    python scripts/price_trip.py draft.json
    python scripts/price_trip.py draft.json --catalog data/catalog.csv --intents edits.json --trace

The draft file holds a TripDraft document (camelCase keys). The optional
intents file holds a list of {"type": "SelectPark", "day_number": 1, ...}
objects applied in order before pricing.
"""
import argparse
import json
import sys
from pathlib import Path

import pandas as pd

# Add src to path
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

from trip_pricing.config.settings import configure_logging, get_settings
from trip_pricing.data.build_catalog import load_catalog
from trip_pricing.engine import PricingEngine, TripDraft, TripPricingError
from trip_pricing.engine.final_pricing import final_pricing_for
from trip_pricing.engine.reducer import TripStore, intent_from_dict
from trip_pricing.engine.validation import validate_trip


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Price a trip draft against a catalog snapshot")
    parser.add_argument("draft", type=Path, help="TripDraft JSON file")
    parser.add_argument("--catalog", type=Path, help="Catalog CSV/JSON (defaults to TRIP_PRICING_CATALOG)")
    parser.add_argument("--intents", type=Path, help="JSON list of intents to apply first")
    parser.add_argument("--tax-rate", type=float, help="Flat tax rate, e.g. 0.18")
    parser.add_argument("--trace", action="store_true", help="Print per-line resolution traces")
    parser.add_argument("--save", type=Path, help="Write the edited draft to this file")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    configure_logging()
    settings = get_settings()

    try:
        catalog = load_catalog(args.catalog or settings.catalog_path)
        with open(args.draft, 'r', encoding='utf-8') as f:
            draft = TripDraft.from_dict(json.load(f))

        store = TripStore(draft, catalog)
        if args.intents:
            with open(args.intents, 'r', encoding='utf-8') as f:
                store.dispatch_all(intent_from_dict(data) for data in json.load(f))

        engine = PricingEngine(catalog=catalog, settings=settings, tax_rate=args.tax_rate)
        result = engine.calculate(store.draft)
    except TripPricingError as e:
        print(f"ERROR: {e}")
        sys.exit(1)

    print("=" * 60)
    print(f"TRIP: {store.draft.name or args.draft.stem}")
    print(f"{store.draft.travelers} travelers, {store.draft.days} days, tier {store.draft.tier.value}")
    print("=" * 60)

    if result.lines:
        df = pd.DataFrame([line.to_dict() for line in result.lines])
        print(df[['dayNumber', 'category', 'itemName', 'calculationExplanation', 'calculatedTotal']]
              .to_string(index=False))
    else:
        print("No priced lines.")

    print()
    print("Subtotals:")
    for category, subtotal in result.subtotals.items():
        print(f"  {category}: {subtotal:,.2f}")
    print()
    print(f"Grand total:  {result.grand_total:,.2f}")
    print(f"Per person:   {result.per_person_total:,.2f}")
    if result.tax_rate:
        print(f"Tax:          {result.tax_total:,.2f}")
        print(f"With tax:     {result.total_with_tax:,.2f}")

    final = final_pricing_for(result, settings)
    if final.final_total != result.grand_total:
        print(f"Client price: {final.final_total:,.2f} ({final.final_per_person:,.2f} per person)")

    if args.trace:
        print()
        print("Trace:")
        print(result.get_trace_text())
        for line in result.lines:
            print(f"\n[{line.day_number}] {line.item_name}")
            print(line.get_trace_text())

    findings = result.warnings + [w.message for w in validate_trip(store.draft, catalog) if w.severity != "info"]
    if findings:
        print()
        print("Warnings:")
        for warning in findings:
            print(f"  ⚠ {warning}")

    if args.save:
        with open(args.save, 'w', encoding='utf-8') as f:
            json.dump(store.draft.to_dict(), f, indent=2)
        print(f"\nDraft saved to: {args.save}")


if __name__ == "__main__":
    main()
