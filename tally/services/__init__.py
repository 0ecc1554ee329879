"""Services: the transactional orchestrators behind every operation.

Each service begins a store transaction, mints ids, builds validated
aggregates, persists them and commits, then projects the result to a
response. Errors are raised, never returned.
"""

from tally.services.accounts import AccountService
from tally.services.budgets import BudgetService
from tally.services.categories import CategoriesService
from tally.services.health import HealthService
from tally.services.records import RecordService
from tally.services.users import UserService

__all__ = [
    "AccountService",
    "BudgetService",
    "CategoriesService",
    "HealthService",
    "RecordService",
    "UserService",
]
