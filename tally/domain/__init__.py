"""Domain models and types for tally.

This package contains the functional core:
- Value objects (Money, AuditInfo, UpdatedBy) and typed ids
- Aggregates with their validation rules
- Aggregations over a collection of records
- No I/O operations
"""

from tally.domain.account import Account, AccountType, create_account
from tally.domain.audit import AuditInfo, bump_audit, make_audit_for_creation, make_audit_for_modification
from tally.domain.budget import (
    Budget,
    BudgetPeriodType,
    CategoryBudget,
    create_budget,
    create_category_budget,
)
from tally.domain.category import Category, create_category
from tally.domain.models import AccountId, BudgetId, CategoryId, RecordId, UpdatedBy, UserId, Version
from tally.domain.money import Money, currency_exponent, is_valid_currency
from tally.domain.record import (
    Record,
    Records,
    RecordsSummary,
    RecordType,
    canonical_amount,
    create_record,
    make_transfer_reference,
)
from tally.domain.user import User, create_user

__all__ = [
    # Identity
    "AccountId",
    "BudgetId",
    "CategoryId",
    "RecordId",
    "UpdatedBy",
    "UserId",
    "Version",
    # Values
    "AuditInfo",
    "Money",
    "bump_audit",
    "currency_exponent",
    "is_valid_currency",
    "make_audit_for_creation",
    "make_audit_for_modification",
    # Aggregates
    "Account",
    "AccountType",
    "Budget",
    "BudgetPeriodType",
    "Category",
    "CategoryBudget",
    "Record",
    "RecordType",
    "User",
    "canonical_amount",
    "create_account",
    "create_budget",
    "create_category",
    "create_category_budget",
    "create_record",
    "create_user",
    "make_transfer_reference",
    # Collections
    "Records",
    "RecordsSummary",
]
