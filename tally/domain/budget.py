"""Budget aggregate: spending limits per category over a week or a month."""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from enum import Enum

from tally.domain.audit import AuditInfo
from tally.domain.models import AccountId, BudgetId, CategoryId
from tally.domain.money import Money
from tally.domain.record import Record, RecordType
from tally.domain.validation import FieldErrors
from tally.errors import ErrorCode


class BudgetPeriodType(str, Enum):
    WEEK = "Week"
    MONTH = "Month"

    @classmethod
    def parse(cls, value: "str | BudgetPeriodType") -> "BudgetPeriodType | None":
        if isinstance(value, BudgetPeriodType):
            return value
        for member in cls:
            if member.value.lower() == str(value).strip().lower():
                return member
        return None


@dataclass(frozen=True)
class CategoryBudget:
    """Spending limit for one category. amount_spent is derived, never stored."""

    category_id: CategoryId
    max_limit: Money
    amount_spent: Money

    @property
    def exceeded(self) -> bool:
        return self.amount_spent > self.max_limit


@dataclass(frozen=True)
class Budget:
    id: BudgetId
    account_ids: tuple[AccountId, ...]
    period_type: BudgetPeriodType
    category_budgets: tuple[CategoryBudget, ...]
    audit: AuditInfo

    @property
    def currency(self) -> str:
        return self.category_budgets[0].max_limit.currency

    def with_amounts_spent(self, records: Iterable[Record]) -> "Budget":
        """Fill in amount_spent from expense records of the budget's period.

        Args:
            records: Records of the budget's accounts within the current period.

        Returns:
            Copy of the budget with each category's spending summed.
        """
        spent: dict[CategoryId, Money] = {
            item.category_id: Money.zero(self.currency) for item in self.category_budgets
        }
        for record in records:
            if record.record_type is not RecordType.EXPENSE:
                continue
            category_id = record.category.id
            if category_id in spent:
                spent[category_id] = spent[category_id].add(record.amount.abs())

        return replace(
            self,
            category_budgets=tuple(
                replace(item, amount_spent=spent[item.category_id]) for item in self.category_budgets
            ),
        )


def create_category_budget(category_id: CategoryId, max_limit: Money) -> CategoryBudget:
    return CategoryBudget(category_id=category_id, max_limit=max_limit, amount_spent=Money.zero(max_limit.currency))


def create_budget(
    budget_id: BudgetId,
    account_ids: Sequence[AccountId],
    period_type: "str | BudgetPeriodType",
    category_budgets: Sequence[CategoryBudget],
    audit: AuditInfo,
) -> Budget:
    """Build a validated Budget.

    Args:
        budget_id: Store-issued id.
        account_ids: Accounts whose combined activity the budget applies to.
        period_type: "Week" or "Month".
        category_budgets: Per-category limits, all in one currency.
        audit: Audit information.

    Returns:
        The budget.

    Raises:
        ValidationError: BUDGET_VALIDATION_FAILED listing every violated field.
    """
    errors = FieldErrors()
    if budget_id <= 0:
        errors.add("id", "id must be greater than 0")
    if not account_ids:
        errors.add("accountIds", "at least one account is required")

    parsed_period = BudgetPeriodType.parse(period_type)
    if parsed_period is None:
        errors.add("period", f"Unknown budget period '{period_type}'")

    if not category_budgets:
        errors.add("categoryBudgets", "at least one category budget is required")
    else:
        currencies = sorted({item.max_limit.currency for item in category_budgets})
        if len(currencies) > 1:
            errors.add("categoryBudgets", f"category budgets must share one currency, got {', '.join(currencies)}")
        for item in category_budgets:
            if item.max_limit.is_negative:
                errors.add("categoryBudgets", f"limit of category {item.category_id} must not be negative")
        seen: set[CategoryId] = set()
        for item in category_budgets:
            if item.category_id in seen:
                errors.add("categoryBudgets", f"category {item.category_id} appears more than once")
            seen.add(item.category_id)
    errors.raise_if_any(ErrorCode.BUDGET_VALIDATION_FAILED)

    assert parsed_period is not None
    return Budget(
        id=budget_id,
        account_ids=tuple(dict.fromkeys(account_ids)),
        period_type=parsed_period,
        category_budgets=tuple(category_budgets),
        audit=audit,
    )
