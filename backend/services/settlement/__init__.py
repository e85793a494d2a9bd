"""
Settlement ledger.

Records one payment per completed ride and credits the driver's balance,
as a single atomic unit.
"""

from .ledger import settle_ride, list_payments, get_balance

__all__ = [
    "settle_ride",
    "list_payments",
    "get_balance",
]
