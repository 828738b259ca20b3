from dataclasses import dataclass
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal

from budgetwise.categories import Category

_CENTS = Decimal("0.01")


@dataclass(slots=True)
class Expense:
    id: int | None
    user_id: int
    amount: Decimal
    category: Category
    expense_date: date
    description: str
    notes: str | None = None
    receipt_url: str | None = None
    recurring_expense_id: int | None = None
    created_at: datetime | None = None

    @classmethod
    def from_row(cls, row) -> "Expense":
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            amount=Decimal(row["amount"]),
            category=Category(row["category"]),
            expense_date=date.fromisoformat(str(row["expense_date"])),
            description=row["description"],
            notes=row["notes"],
            receipt_url=row["receipt_url"],
            recurring_expense_id=row["recurring_expense_id"],
            created_at=row["created_at"],
        )


@dataclass(slots=True)
class Budget:
    id: int | None
    user_id: int
    category: Category
    month: int
    year: int
    monthly_limit: Decimal
    current_spent: Decimal = Decimal("0")

    @classmethod
    def from_row(cls, row) -> "Budget":
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            category=Category(row["category"]),
            month=row["month"],
            year=row["year"],
            monthly_limit=Decimal(row["monthly_limit"]),
            current_spent=Decimal(row["current_spent"]),
        )

    @property
    def remaining(self) -> Decimal:
        return self.monthly_limit - self.current_spent

    @property
    def percentage(self) -> Decimal:
        if self.monthly_limit == 0:
            return Decimal("0.00")
        return (self.current_spent / self.monthly_limit * 100).quantize(_CENTS, rounding=ROUND_HALF_UP)

    @property
    def over_budget(self) -> bool:
        return self.current_spent > self.monthly_limit
