"""Budget creation and budget tracking."""

from datetime import datetime

import structlog

from tally.context import RequestContext, require_user_id
from tally.dates import CalendarMonth, CalendarWeek
from tally.domain.audit import make_audit_for_creation
from tally.domain.budget import BudgetPeriodType, create_budget, create_category_budget
from tally.domain.models import AccountId, BudgetId, CategoryId, UpdatedBy
from tally.domain.money import Money
from tally.errors import ErrorCode, ValidationError
from tally.services.schema import BudgetResponse, CreateBudgetRequest, budget_response
from tally.store import Database, new_id
from tally.store import accounts as account_store
from tally.store import budgets as budget_store
from tally.store import categories as category_store
from tally.store import records as record_store

log = structlog.get_logger(__name__)


def current_period(period_type: BudgetPeriodType, now: datetime | None = None) -> tuple[datetime, datetime]:
    """Bounds [start, end) of the week or month containing now."""
    if period_type is BudgetPeriodType.WEEK:
        week = CalendarWeek.of_date(now) if now is not None else CalendarWeek.current()
        return week.first_day(), week.next_week().first_day()
    month = CalendarMonth.of_date(now) if now is not None else CalendarMonth.current()
    return month.first_day(), month.next_month().first_day()


class BudgetService:
    def __init__(self, db: Database) -> None:
        self._db = db

    def create_budget(self, ctx: RequestContext, request: CreateBudgetRequest) -> BudgetResponse:
        """Create a budget over some of the caller's accounts.

        Category budgets naming a category the caller doesn't own are dropped.
        The budget row, its category limits and its account links are written
        in that order in one transaction.

        Raises:
            ValidationError: SERVICE_REQUIRED_USER_ID without a caller,
                ACCOUNT_NOT_FOUND for an account the caller doesn't own,
                BUDGET_VALIDATION_FAILED for an invalid budget or an account
                in another currency.
            SystemFailure: If the store fails.
        """
        user_id = require_user_id(ctx)
        with self._db.begin(ctx) as tx:
            account_ids = [AccountId(account_id) for account_id in request.account_ids]
            accounts = account_store.get_accounts_by_ids(tx, account_ids, user_id)
            missing = [account_id for account_id in account_ids if account_id not in accounts]
            if missing:
                raise ValidationError(
                    ErrorCode.ACCOUNT_NOT_FOUND,
                    f"Account with id {missing[0]} not found",
                    {"accountIds": f"unknown accounts {', '.join(str(account_id) for account_id in missing)}"},
                )

            categories = category_store.get_categories_by_ids(
                tx, [CategoryId(item.category_id) for item in request.category_budgets], user_id
            )
            category_budgets = [
                create_category_budget(
                    CategoryId(item.category_id), Money(item.max_amount.currency, item.max_amount.value)
                )
                for item in request.category_budgets
                if item.category_id in categories
            ]

            budget = create_budget(
                budget_id=BudgetId(new_id(tx, "budget")),
                account_ids=account_ids,
                period_type=request.period,
                category_budgets=category_budgets,
                audit=make_audit_for_creation(UpdatedBy.for_user(user_id)),
            )

            foreign = sorted(
                f"{account.name} ({account.currency})"
                for account in accounts.values()
                if account.currency != budget.currency
            )
            if foreign:
                message = f"Accounts must be in {budget.currency}: {', '.join(foreign)}"
                raise ValidationError(ErrorCode.BUDGET_VALIDATION_FAILED, message, {"accountIds": message})

            budget_store.save_budget(tx, user_id, budget)
            tx.commit()

        log.info("budget_created", user_id=user_id, budget_id=budget.id, categories=len(budget.category_budgets))
        return budget_response(budget)

    def get_budget(self, ctx: RequestContext, budget_id: BudgetId, now: datetime | None = None) -> BudgetResponse:
        """A budget with the spending of its current period filled in.

        Args:
            ctx: Request context carrying the caller.
            budget_id: Budget to load.
            now: Instant whose week or month is the current period. Defaults to now.

        Raises:
            ValidationError: BUDGET_VALIDATION_FAILED if the caller has no such budget.
        """
        user_id = require_user_id(ctx)
        with self._db.begin(ctx) as tx:
            budget = budget_store.get_budget(tx, budget_id, user_id)
            start, end = current_period(budget.period_type, now)
            records = record_store.get_records_between(tx, list(budget.account_ids), start, end)
            tx.commit()
        return budget_response(budget.with_amounts_spent(records))
