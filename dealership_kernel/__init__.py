"""
Dealership Kernel

The acquisition-to-sale core of a vehicle dealership back office:
- Vehicle lifecycle (acquired, in repair, available, sold)
- Repair work orders with spare part consumption
- Atomic spare part stock ledger
- Cost basis (HPP) and sale profit
"""

__version__ = "0.1.0"
