"""Budget persistence: the budget row, its category limits and account links."""

from tally.domain.budget import Budget, CategoryBudget, create_budget
from tally.domain.models import AccountId, BudgetId, CategoryId, UserId
from tally.domain.money import Money
from tally.errors import ErrorCode, ValidationError
from tally.store.database import Transaction
from tally.store.rows import AUDIT_COLUMNS, audit_from_row, audit_values


def save_budget(tx: Transaction, user_id: UserId, budget: Budget) -> None:
    """Insert a budget, then its category limits, then its account links.

    Args:
        tx: Open transaction.
        user_id: Owner of the budget.
        budget: Budget to insert.

    Raises:
        SystemFailure: DATABASE_STATE if any insert fails.
    """
    tx.execute(
        f"INSERT INTO budget (id, user_id, period_type, {AUDIT_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
        (budget.id, user_id, budget.period_type.value, *audit_values(budget.audit)),
    )
    tx.executemany(
        """
        INSERT INTO budget_per_category (budget_id, category_id, currency, max_limit_minor_units)
        VALUES (?, ?, ?, ?)
        """,
        [
            (budget.id, item.category_id, item.max_limit.currency, item.max_limit.minor_units)
            for item in budget.category_budgets
        ],
    )
    tx.executemany(
        "INSERT INTO account_budget (account_id, budget_id) VALUES (?, ?)",
        [(account_id, budget.id) for account_id in budget.account_ids],
    )


def get_budget(tx: Transaction, budget_id: BudgetId, user_id: UserId) -> Budget:
    """Load a budget of a user with amount_spent at zero.

    Raises:
        ValidationError: BUDGET_VALIDATION_FAILED if the user has no such budget.
    """
    row = tx.execute(
        f"SELECT id, period_type, {AUDIT_COLUMNS} FROM budget WHERE id = ? AND user_id = ?",
        (budget_id, user_id),
    ).fetchone()
    if row is None:
        raise ValidationError(
            ErrorCode.BUDGET_VALIDATION_FAILED,
            f"Budget with id {budget_id} not found",
            {"id": f"Budget with id {budget_id} not found"},
        )

    limits = tx.execute(
        """
        SELECT category_id, currency, max_limit_minor_units
        FROM budget_per_category WHERE budget_id = ? ORDER BY category_id
        """,
        (budget_id,),
    ).fetchall()
    links = tx.execute(
        "SELECT account_id FROM account_budget WHERE budget_id = ? ORDER BY account_id", (budget_id,)
    ).fetchall()

    return create_budget(
        budget_id=BudgetId(row["id"]),
        account_ids=[AccountId(link["account_id"]) for link in links],
        period_type=row["period_type"],
        category_budgets=[
            CategoryBudget(
                category_id=CategoryId(limit["category_id"]),
                max_limit=Money(limit["currency"], limit["max_limit_minor_units"]),
                amount_spent=Money.zero(limit["currency"]),
            )
            for limit in limits
        ],
        audit=audit_from_row(row),
    )
