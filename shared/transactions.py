# shared/transactions.py
"""
Helpers for the unit-of-work rules the services follow.

Public service methods open ``transaction.atomic()`` themselves (joining an
outer block when one is active). Internal mutators never open their own
transaction; they call ``require_atomic()`` so a caller that forgets the
outer block fails loudly instead of committing half a movement.
"""
from django.db import DEFAULT_DB_ALIAS, connections
from django.db.transaction import TransactionManagementError


def require_atomic(operation, using=None):
    """Raise TransactionManagementError unless inside transaction.atomic()."""
    connection = connections[using or DEFAULT_DB_ALIAS]
    if not connection.in_atomic_block:
        raise TransactionManagementError(
            f"{operation} must run inside transaction.atomic()."
        )
