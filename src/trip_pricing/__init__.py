"""
Trip Pricing Package

Day-state engine and pricing aggregator for multi-day safari trip quotes.
Edits flow through a reducer that keeps derived fees and quantities in sync;
the pricing engine turns the resulting draft into a priced breakdown.
"""

__version__ = "1.0.0"
