"""ORM Models — SQLAlchemy declarative models for the ledger entities.

Invariants:
    - All models inherit from Base (db/base.py)
    - Account is the aggregate root for balance, transactions and ownership

Design Decisions:
    - One file per entity for locality
    - All models imported here so SQLAlchemy resolves string-based relationship()
      references before any query runs
"""

from credit_ledger.models.account import Account  # noqa: F401
from credit_ledger.models.auth_session import AuthSession  # noqa: F401
from credit_ledger.models.item import Item  # noqa: F401
from credit_ledger.models.ledger_transaction import LedgerTransaction  # noqa: F401
from credit_ledger.models.ownership import Ownership  # noqa: F401
