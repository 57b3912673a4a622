"""
Smart Ledger - Source Package

A personal income/expense ledger with AI-assisted entry: type a
sentence, snap a receipt, or hold to record a voice memo, and the
model splits it into item-level transactions.

DESIGN PRINCIPLES:
1. One record per purchased item, never per category
2. The model picks from a fixed category vocabulary; unknown ids are repaired
3. Every failure returns the user to a ready-to-retry state
4. Every mutation is written through and audited
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Smart Ledger Team"
