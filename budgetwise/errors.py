"""Error taxonomy shared by the services, the question engine and the bot handlers.

Mutation errors carry a message that is safe to show to the user as-is.
"""

from datetime import date


class BudgetwiseError(Exception):
    pass


class MissingBudgetError(BudgetwiseError):
    def __init__(self, category, month: int, year: int) -> None:
        self.category = category
        self.month = month
        self.year = year
        month_name = date(year, month, 1).strftime("%B")
        super().__init__(
            f"You must create a budget for {category.display_name} in {month_name} {year} "
            f"before adding expenses to this category."
        )


class DuplicateBudgetError(BudgetwiseError):
    def __init__(self, category, month: int, year: int) -> None:
        self.category = category
        self.month = month
        self.year = year
        super().__init__(f"A {category.display_name} budget already exists for {month:02d}/{year}.")


class BudgetInUseError(BudgetwiseError):
    def __init__(self, category, month: int, year: int) -> None:
        self.category = category
        self.month = month
        self.year = year
        super().__init__(
            f"The {category.display_name} budget for {month:02d}/{year} still has expenses. "
            f"Move or delete them first."
        )


class UnauthorizedError(BudgetwiseError):
    def __init__(self, entity: str, entity_id: int) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"You are not allowed to modify {entity} #{entity_id}.")


class ExpenseNotFoundError(BudgetwiseError):
    def __init__(self, expense_id: int) -> None:
        self.expense_id = expense_id
        super().__init__(f"Expense #{expense_id} not found.")


class BudgetNotFoundError(BudgetwiseError):
    def __init__(self, budget_id: int) -> None:
        self.budget_id = budget_id
        super().__init__(f"Budget #{budget_id} not found.")


class InvalidAmountError(BudgetwiseError, ValueError):
    def __init__(self, amount) -> None:
        self.amount = amount
        super().__init__(f"Amount must be greater than 0 (got {amount}).")


class InvalidDateError(BudgetwiseError, ValueError):
    def __init__(self, text: str) -> None:
        self.text = text
        super().__init__(f"'{text}' is not a valid date.")


class UnsafeQueryError(BudgetwiseError):
    def __init__(self, statement: str, reason: str) -> None:
        self.statement = statement
        self.reason = reason
        super().__init__(f"Rejected generated query ({reason})")


class UpstreamServiceError(BudgetwiseError):
    pass
