"""FinanceLedger — balance, recurring expenses, fees, debt and history."""
from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from typing import Any

from pending.config import DebtPolicy
from pending.dates import GameDate, date_or_none, dump_date

# Transaction types counted as immigration costs in month summaries.
_IMMIGRATION_TYPES = ("immigration-fee", "legal-fee")


@dataclass(frozen=True)
class Transaction:
    """Append-only ledger entry. Positive amount is income."""

    id: str
    date: GameDate
    type: str
    amount: float
    description: str
    category: str = "other"


@dataclass(frozen=True)
class RecurringExpense:
    id: str
    name: str
    amount: float
    category: str = "other"
    is_required: bool = True
    can_reduce: bool = False
    minimum_amount: float | None = None


@dataclass(frozen=True)
class PendingFee:
    id: str
    type: str
    amount: float
    description: str
    form_id: str | None = None
    due_date: GameDate | None = None
    is_paid: bool = False


@dataclass(frozen=True)
class MonthlyFinanceSummary:
    month: int
    year: int
    total_income: float
    total_expenses: float
    immigration_costs: float
    remittances: float
    debt_payment: float
    net_change: float
    ending_balance: float


class FinanceLedger:
    """Owns every balance-changing operation.

    ``peak_balance`` and ``lowest_balance`` track on every change, not only
    at month end.
    """

    def __init__(self, debt_policy: DebtPolicy | None = None) -> None:
        self._policy = debt_policy if debt_policy is not None else DebtPolicy()
        self.bank_balance: float = 0.0
        self.monthly_income: float = 0.0
        self.income_source: str = ""
        self.recurring_expenses: list[RecurringExpense] = []
        self.pending_fees: list[PendingFee] = []
        self.paid_fees: list[PendingFee] = []
        self.total_debt: float = 0.0
        self.original_debt: float = 0.0
        self.monthly_debt_payment: float = 0.0
        self.transactions: list[Transaction] = []
        self.monthly_summaries: list[MonthlyFinanceSummary] = []
        self.total_immigration_spending: float = 0.0
        self.total_remittances_sent: float = 0.0
        self.peak_balance: float = 0.0
        self.lowest_balance: float = 0.0
        self._next_id: int = 0

    def _new_id(self, prefix: str) -> str:
        self._next_id += 1
        return f"{prefix}-{self._next_id}"

    def initialize(
        self,
        balance: float,
        income: float,
        expenses: list[RecurringExpense],
        debt: float,
    ) -> None:
        self.bank_balance = balance
        self.monthly_income = income
        self.recurring_expenses = list(expenses)
        self.pending_fees = []
        self.paid_fees = []
        self.total_debt = debt
        self.original_debt = debt
        self.monthly_debt_payment = self._installment(debt)
        self.transactions = []
        self.monthly_summaries = []
        self.total_immigration_spending = 0.0
        self.total_remittances_sent = 0.0
        self.peak_balance = balance
        self.lowest_balance = balance

    def _installment(self, debt: float) -> float:
        if debt <= 0:
            return 0.0
        return min(debt * self._policy.installment_rate, self._policy.installment_cap)

    def _set_balance(self, balance: float) -> None:
        self.bank_balance = balance
        self.peak_balance = max(self.peak_balance, balance)
        self.lowest_balance = min(self.lowest_balance, balance)

    # --- Income & expenses ---

    def set_income(self, amount: float, source: str = "") -> None:
        self.monthly_income = amount
        self.income_source = source

    def add_recurring_expense(
        self, name: str, amount: float, category: str = "other", **kwargs: Any
    ) -> RecurringExpense:
        expense = RecurringExpense(
            id=self._new_id("exp"), name=name, amount=amount, category=category, **kwargs
        )
        self.recurring_expenses.append(expense)
        return expense

    def remove_recurring_expense(self, expense_id: str) -> bool:
        before = len(self.recurring_expenses)
        self.recurring_expenses = [e for e in self.recurring_expenses if e.id != expense_id]
        return len(self.recurring_expenses) < before

    def update_recurring_expense(self, expense_id: str, **updates: Any) -> RecurringExpense | None:
        for i, expense in enumerate(self.recurring_expenses):
            if expense.id == expense_id:
                updated = replace(expense, **updates)
                self.recurring_expenses[i] = updated
                return updated
        return None

    def total_recurring(self) -> float:
        return sum(e.amount for e in self.recurring_expenses)

    # --- Transactions ---

    def add_transaction(
        self,
        date: GameDate,
        type: str,
        amount: float,
        description: str,
        category: str = "other",
    ) -> Transaction:
        txn = Transaction(
            id=self._new_id("txn"),
            date=date,
            type=type,
            amount=amount,
            description=description,
            category=category,
        )
        self.transactions.append(txn)
        self._set_balance(self.bank_balance + amount)
        return txn

    def add_income(self, amount: float, description: str, date: GameDate) -> Transaction:
        return self.add_transaction(date, "income", abs(amount), description)

    def add_expense(
        self, amount: float, description: str, date: GameDate, category: str = "other"
    ) -> Transaction:
        """Record an expense. May drive the balance negative."""
        return self.add_transaction(date, "expense", -abs(amount), description, category)

    def send_remittance(self, amount: float, date: GameDate) -> bool:
        if self.bank_balance < amount:
            return False
        self.add_transaction(date, "remittance", -amount, "Remittance to family", "remittance")
        self.total_remittances_sent += amount
        return True

    def can_afford(self, amount: float) -> bool:
        return self.bank_balance >= amount

    def monthly_net_income(self) -> float:
        return self.monthly_income - self.total_recurring() - self.monthly_debt_payment

    # --- Fees ---

    def add_pending_fee(
        self,
        type: str,
        amount: float,
        description: str,
        form_id: str | None = None,
        due_date: GameDate | None = None,
    ) -> PendingFee:
        fee = PendingFee(
            id=self._new_id("fee"),
            type=type,
            amount=amount,
            description=description,
            form_id=form_id,
            due_date=due_date,
        )
        self.pending_fees.append(fee)
        return fee

    def pay_fee(self, fee_id: str, date: GameDate) -> bool:
        """Pay a pending fee. False if unknown or the balance is insufficient."""
        fee = next((f for f in self.pending_fees if f.id == fee_id), None)
        if fee is None or self.bank_balance < fee.amount:
            return False
        is_legal = fee.type == "legal"
        self.add_transaction(
            date,
            "legal-fee" if is_legal else "immigration-fee",
            -fee.amount,
            fee.description,
            "legal" if is_legal else "immigration",
        )
        self.pending_fees = [f for f in self.pending_fees if f.id != fee_id]
        self.paid_fees.append(replace(fee, is_paid=True))
        self.total_immigration_spending += fee.amount
        return True

    # --- Month end ---

    def process_month_end(self, date: GameDate) -> MonthlyFinanceSummary:
        """Apply income, recurring expenses and the debt installment for *date*'s month."""
        total_expenses = self.total_recurring()
        immigration_costs = sum(
            -t.amount for t in self.transactions
            if t.type in _IMMIGRATION_TYPES and t.date.same_month(date)
        )
        remittances = sum(
            -t.amount for t in self.transactions
            if t.type == "remittance" and t.date.same_month(date)
        )

        self.add_transaction(
            date, "income", self.monthly_income,
            f"Monthly income - {self.income_source or 'Employment'}",
        )
        for expense in self.recurring_expenses:
            self.add_transaction(date, "expense", -expense.amount, expense.name, expense.category)

        payment = min(self.monthly_debt_payment, self.total_debt)
        if payment > 0:
            self.add_transaction(date, "debt-payment", -payment, "Debt installment", "debt")
            self.total_debt = max(0.0, self.total_debt - payment)

        summary = MonthlyFinanceSummary(
            month=date.month,
            year=date.year,
            total_income=self.monthly_income,
            total_expenses=total_expenses,
            immigration_costs=immigration_costs,
            remittances=remittances,
            debt_payment=payment,
            net_change=self.monthly_income - total_expenses - payment,
            ending_balance=self.bank_balance,
        )
        self.monthly_summaries.append(summary)
        return summary

    # --- Serialization ---

    def snapshot(self) -> dict[str, Any]:
        return {
            "bank_balance": self.bank_balance,
            "monthly_income": self.monthly_income,
            "income_source": self.income_source,
            "recurring_expenses": [asdict(e) for e in self.recurring_expenses],
            "pending_fees": [_fee_to_dict(f) for f in self.pending_fees],
            "paid_fees": [_fee_to_dict(f) for f in self.paid_fees],
            "total_debt": self.total_debt,
            "original_debt": self.original_debt,
            "monthly_debt_payment": self.monthly_debt_payment,
            "transactions": [
                {**asdict(t), "date": t.date.to_dict()} for t in self.transactions
            ],
            "monthly_summaries": [asdict(s) for s in self.monthly_summaries],
            "total_immigration_spending": self.total_immigration_spending,
            "total_remittances_sent": self.total_remittances_sent,
            "peak_balance": self.peak_balance,
            "lowest_balance": self.lowest_balance,
            "next_id": self._next_id,
        }

    def restore(self, data: dict[str, Any]) -> None:
        expenses = [RecurringExpense(**e) for e in data.get("recurring_expenses", [])]
        pending = [_fee_from_dict(f) for f in data.get("pending_fees", [])]
        paid = [_fee_from_dict(f) for f in data.get("paid_fees", [])]
        transactions = [
            Transaction(**{**t, "date": GameDate.from_dict(t["date"])})
            for t in data.get("transactions", [])
        ]
        summaries = [MonthlyFinanceSummary(**s) for s in data.get("monthly_summaries", [])]

        self.bank_balance = data["bank_balance"]
        self.monthly_income = data["monthly_income"]
        self.income_source = data.get("income_source", "")
        self.recurring_expenses = expenses
        self.pending_fees = pending
        self.paid_fees = paid
        self.total_debt = data["total_debt"]
        self.original_debt = data.get("original_debt", self.total_debt)
        self.monthly_debt_payment = data["monthly_debt_payment"]
        self.transactions = transactions
        self.monthly_summaries = summaries
        self.total_immigration_spending = data.get("total_immigration_spending", 0.0)
        self.total_remittances_sent = data.get("total_remittances_sent", 0.0)
        self.peak_balance = data.get("peak_balance", self.bank_balance)
        self.lowest_balance = data.get("lowest_balance", self.bank_balance)
        self._next_id = data.get("next_id", len(transactions))


def _fee_to_dict(fee: PendingFee) -> dict[str, Any]:
    return {**asdict(fee), "due_date": dump_date(fee.due_date)}


def _fee_from_dict(data: dict[str, Any]) -> PendingFee:
    return PendingFee(**{**data, "due_date": date_or_none(data.get("due_date"))})
