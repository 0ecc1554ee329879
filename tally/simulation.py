"""Deterministic fixture generator.

Simulates months of day-to-day activity for a number of users through the
same services the CLI uses, so fixtures obey every rule real data does.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from random import Random

import structlog

from tally.context import RequestContext
from tally.dates import CalendarMonth, format_rfc3339
from tally.domain.models import AccountId, CategoryId, UserId
from tally.services import AccountService, CategoriesService, RecordService, UserService
from tally.services.schema import (
    AccountRequest,
    AmountRequest,
    CategoryRequest,
    CreateAccountsRequest,
    CreateCategoriesRequest,
    CreateRecordRequest,
    CreateUserRequest,
)
from tally.store import Database

log = structlog.get_logger(__name__)

CURRENCY = "AED"

SALARY = 5_000_000
BILLS = 100_000
SAVINGS = 1_000_000
LUNCH = 1_000
DINNER = 2_000
BIRTHDAY = 10_000

CATEGORY_NAMES = ("Salary", "Savings", "Bills", "Food & Drink")


@dataclass(frozen=True)
class SimulatedUser:
    user_id: UserId
    current_account_id: AccountId
    saving_account_id: AccountId
    category_ids: dict[str, CategoryId]
    records_created: int


class _Simulator:
    def __init__(self, db: Database, seed: int) -> None:
        self.users = UserService(db)
        self.accounts = AccountService(db)
        self.categories = CategoriesService(db)
        self.records = RecordService(db, rng=Random(seed))

    def add(
        self,
        ctx: RequestContext,
        category_id: CategoryId,
        note: str,
        value: int,
        when: datetime,
        record_type: str,
        beneficiary_id: AccountId | None = None,
    ) -> None:
        self.records.create_record(
            ctx,
            CreateRecordRequest(
                note=note,
                category_id=category_id,
                amount=AmountRequest(CURRENCY, value),
                date=format_rfc3339(when),
                type=record_type,
                beneficiary_id=beneficiary_id,
            ),
        )


def simulate(
    db: Database,
    users: int,
    start_month: CalendarMonth,
    end_month: CalendarMonth,
    seed: int = 0,
    email_domain: str = "simulation.tally.app",
) -> list[SimulatedUser]:
    """Populate the database with users and their day-to-day records.

    Each user gets a Current and a Saving account in AED, the categories
    Salary, Savings, Bills and Food & Drink, and for every day from the first
    day of start_month to the last day of end_month:
    - on day 1, a salary of 50,000.00, bills of 1,000.00 and a transfer of
      10,000.00 from Current to Saving;
    - every day, lunch for 10.00 and dinner for 20.00;
    - on 2 June, a birthday gift for 100.00.

    Args:
        db: Initialized database.
        users: Number of users to create.
        start_month: First simulated month.
        end_month: Last simulated month, inclusive.
        seed: Seed of the transfer references, for reproducible runs.
        email_domain: Domain of the generated email addresses.

    Returns:
        What was created for each user.

    Raises:
        ValueError: If end_month is before start_month.
    """
    if end_month < start_month:
        raise ValueError(f"End month {end_month} is before start month {start_month}")

    simulator = _Simulator(db, seed)
    simulated: list[SimulatedUser] = []

    for index in range(1, users + 1):
        anonymous = RequestContext()
        user = simulator.users.create_user(anonymous, CreateUserRequest(email=f"user{index}@{email_domain}"))
        ctx = RequestContext(user_id=UserId(user["id"]))

        created = simulator.accounts.create_accounts(
            ctx,
            CreateAccountsRequest(
                accounts=(
                    AccountRequest(name="Current", currency=CURRENCY, type="Current"),
                    AccountRequest(name="Saving", currency=CURRENCY, type="Saving"),
                )
            ),
        )
        current_id = AccountId(created["accounts"][0]["id"])
        saving_id = AccountId(created["accounts"][1]["id"])

        categories = simulator.categories.create_categories(
            ctx, CreateCategoriesRequest(categories=tuple(CategoryRequest(name=name) for name in CATEGORY_NAMES))
        )
        category_ids = {item["name"]: CategoryId(item["id"]) for item in categories["categories"]}

        on_current = ctx.with_account(current_id)
        count = 0
        month = start_month
        while month <= end_month:
            for day in month.days():
                if day.day == 1:
                    simulator.add(on_current, category_ids["Salary"], "Salary", SALARY, day + timedelta(hours=9), "INCOME")
                    simulator.add(on_current, category_ids["Bills"], "Bills", BILLS, day + timedelta(hours=10), "EXPENSE")
                    simulator.add(
                        on_current,
                        category_ids["Savings"],
                        "Savings",
                        SAVINGS,
                        day + timedelta(hours=11),
                        "TRANSFER",
                        beneficiary_id=saving_id,
                    )
                    count += 4
                simulator.add(
                    on_current, category_ids["Food & Drink"], "Lunch", LUNCH, day + timedelta(hours=12, minutes=30), "EXPENSE"
                )
                simulator.add(
                    on_current, category_ids["Food & Drink"], "Dinner", DINNER, day + timedelta(hours=19, minutes=30), "EXPENSE"
                )
                count += 2
                if day.month == 6 and day.day == 2:
                    simulator.add(
                        on_current, category_ids["Food & Drink"], "Birthday gift", BIRTHDAY, day + timedelta(hours=15), "EXPENSE"
                    )
                    count += 1
            month = month.next_month()

        log.info("user_simulated", user_id=user["id"], records=count, start=str(start_month), end=str(end_month))
        simulated.append(
            SimulatedUser(
                user_id=UserId(user["id"]),
                current_account_id=current_id,
                saving_account_id=saving_id,
                category_ids=category_ids,
                records_created=count,
            )
        )

    return simulated
