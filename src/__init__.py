"""
Club Dues Ledger - Source Package

Membership-dues bookkeeping for a small club: members, a monthly
payment matrix and an income/expense ledger kept in sync.

DESIGN PRINCIPLES:
1. One engine owns every mutation
2. Paid months and fee income never drift apart
3. Fail early, fail visibly
4. Every change must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Club Dues Ledger Team"
