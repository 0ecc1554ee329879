"""Database store layer - provides persistence for the application.

This module re-exports all public database functions for easy importing.
"""

from tally.store.accounts import (
    get_account,
    get_account_names,
    get_accounts,
    get_accounts_by_ids,
    save_accounts,
    update_account,
)
from tally.store.budgets import get_budget, save_budget
from tally.store.categories import (
    get_categories,
    get_categories_by_ids,
    get_category,
    get_category_names,
    save_categories,
    update_category,
    update_category_last_used,
)
from tally.store.database import Database, Transaction, is_duplicate_key, rollback
from tally.store.records import (
    RecordSearch,
    get_latest_month,
    get_records_between,
    get_records_for_last_period,
    get_records_for_month,
    get_transfer_records,
    save_record,
    search_records,
)
from tally.store.rows import new_id
from tally.store.schema import database_exists, get_db_path, init_database
from tally.store.users import get_user, save_user

__all__ = [
    # Schema
    "database_exists",
    "get_db_path",
    "init_database",
    # Transactions
    "Database",
    "Transaction",
    "is_duplicate_key",
    "new_id",
    "rollback",
    # Users
    "get_user",
    "save_user",
    # Accounts
    "get_account",
    "get_account_names",
    "get_accounts",
    "get_accounts_by_ids",
    "save_accounts",
    "update_account",
    # Categories
    "get_categories",
    "get_categories_by_ids",
    "get_category",
    "get_category_names",
    "save_categories",
    "update_category",
    "update_category_last_used",
    # Records
    "RecordSearch",
    "get_latest_month",
    "get_records_between",
    "get_records_for_last_period",
    "get_records_for_month",
    "get_transfer_records",
    "save_record",
    "search_records",
    # Budgets
    "get_budget",
    "save_budget",
]
